import contextlib
import gzip
import io
import os
import tempfile
import unittest
from unittest import mock

import bitstream_spec as bit_spec
import packet_spec as pkt_spec
from bit2txt import main
from bitstream import Bitstream
from errors import StructuralError

from synth import HEADER_LINES, bitfile, noop, type1


class Bit2TxtTestCase(unittest.TestCase):
  def setUp(self):
    self.tmp_dir = tempfile.TemporaryDirectory()
    self.addCleanup(self.tmp_dir.cleanup)

  def write(self, name, data):
    path = os.path.join(self.tmp_dir.name, name)
    opener = gzip.open if name.endswith(".gz") else open
    with opener(path, "wb") as f:
      f.write(data)
    return path

  def run_main(self, *argv):
    out = io.StringIO()
    err = io.StringIO()
    with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
      status = main(list(argv))
    return (status, out.getvalue().splitlines(), err.getvalue().splitlines())

  def test_success(self):
    path = self.write("design.bit", bitfile(noop() + type1(pkt_spec.Register.CMD, [0x0d])))
    (status, out, err) = self.run_main(path)
    self.assertEqual(status, 0)
    self.assertEqual(out, HEADER_LINES + ["noop", "T1 CMD DESYNC"])
    self.assertEqual(err, [])

  def test_info(self):
    path = self.write("design.bit", bitfile(noop()))
    (status, out, _) = self.run_main("--info", path)
    self.assertEqual(status, 0)
    self.assertTrue(any(line.startswith("#I ") for line in out))

  def test_gzip(self):
    path = self.write("design.bit.gz", bitfile(noop()))
    (status, out, _) = self.run_main(path)
    self.assertEqual(status, 0)
    self.assertEqual(out[-1], "noop")

  def test_decode_error(self):
    path = self.write("design.bit", bitfile(noop() + b"\x00\x00"))
    (status, out, err) = self.run_main(path)
    self.assertEqual(status, 1)
    # Output up to the failure is kept.
    self.assertEqual(out[-1], "noop")
    self.assertEqual(err, ["#E 0x61=0x0 Unexpected packet type 0."])

  def test_truncated(self):
    path = self.write("design.bit", bitfile(noop())[:-1])
    (status, _, err) = self.run_main(path)
    self.assertEqual(status, 1)
    self.assertRegex(err[0], r"^#E Unexpected EOF")

  def test_missing_file(self):
    (status, out, err) = self.run_main(os.path.join(self.tmp_dir.name, "missing.bit"))
    self.assertEqual(status, 1)
    self.assertEqual(out, [])
    self.assertRegex(err[0], r"^#E Error opening .*missing\.bit")

  def test_too_large(self):
    path = self.write("design.bit", bitfile(noop()))
    with mock.patch.object(bit_spec, "MAX_BITSTREAM_SIZE", 16):
      with self.assertRaisesRegex(StructuralError, r"^Bitstream size above maximum of 16 bytes\.$"):
        Bitstream.from_file_path(path)
      (status, out, err) = self.run_main(path)
    self.assertEqual(status, 1)
    self.assertEqual(out, [])
    self.assertEqual(err, ["#E Bitstream size above maximum of 16 bytes."])

  def test_version(self):
    out = io.StringIO()
    with contextlib.redirect_stdout(out), self.assertRaises(SystemExit) as cm:
      main(["--version"])
    self.assertEqual(cm.exception.code, 0)
    self.assertEqual(out.getvalue().strip(), bit_spec.PROGRAM_REVISION)

  def test_usage(self):
    with contextlib.redirect_stderr(io.StringIO()), self.assertRaises(SystemExit) as cm:
      main([])
    self.assertEqual(cm.exception.code, 2)
