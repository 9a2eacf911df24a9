import unittest

import numpy as np

from errors import TruncatedInputError
from reader import BitstreamReader


def make_reader(data, byte_ofst=0):
  return BitstreamReader(np.frombuffer(data, dtype=np.uint8), byte_ofst)


class BitstreamReaderTestCase(unittest.TestCase):
  def test_big_endian(self):
    reader = make_reader(b"\x12\x34\x56\x78\x9a")
    self.assertEqual(reader.u16_at(0), 0x1234)
    self.assertEqual(reader.u32_at(1), 0x3456789a)
    self.assertEqual(reader.u8_at(4), 0x9a)
    self.assertEqual(reader.byte_ofst, 0)

  def test_sequential(self):
    reader = make_reader(b"\x01\x02\x03\x04\x05\x06\x07")
    self.assertEqual(reader.read_u8(), 0x01)
    self.assertEqual(reader.read_u16(), 0x0203)
    self.assertEqual(reader.read_u32(), 0x04050607)
    self.assertTrue(reader.at_eof())

  def test_read_u16_words(self):
    reader = make_reader(b"\x30\xa1\x00\x0d\xff")
    words = reader.read_u16_words(2)
    self.assertEqual(words.dtype, np.dtype(">u2"))
    self.assertEqual(list(words), [0x30a1, 0x000d])
    self.assertEqual(reader.byte_ofst, 4)
    self.assertEqual(len(reader.read_u16_words(0)), 0)

  def test_read_past_end(self):
    reader = make_reader(b"\x01\x02\x03")
    reader.read_u16()
    with self.assertRaises(TruncatedInputError) as cm:
      reader.read_u16()
    self.assertEqual(cm.exception.byte_ofst, 2)
    self.assertEqual(cm.exception.num_bytes, 2)
    self.assertEqual(cm.exception.buffer_len, 3)
    self.assertRegex(str(cm.exception), r"^Unexpected EOF")
    # A failed read does not move the cursor.
    self.assertEqual(reader.byte_ofst, 2)

  def test_check(self):
    reader = make_reader(b"\x00" * 8, byte_ofst=4)
    reader.check(4)
    reader.check(8, 0)
    with self.assertRaises(TruncatedInputError):
      reader.check(5)
    with self.assertRaises(TruncatedInputError):
      reader.check(1, 8)
    with self.assertRaises(TruncatedInputError):
      reader.check(-1)

  def test_bytes_at_does_not_return_short_slice(self):
    reader = make_reader(b"\xaa\xbb")
    with self.assertRaises(TruncatedInputError):
      reader.bytes_at(1, 2)

  def test_find_byte(self):
    reader = make_reader(b"\xaa\xff\xff\xaa\x99")
    self.assertEqual(reader.find_byte(0xaa), 0)
    reader.read_u8()
    self.assertEqual(reader.find_byte(0xaa), 3)
    self.assertEqual(reader.find_byte(0x99), 4)
    self.assertIsNone(reader.find_byte(0x55))

  def test_len(self):
    reader = make_reader(b"\x00" * 5)
    self.assertEqual(len(reader), 5)
    self.assertFalse(reader.at_eof())
