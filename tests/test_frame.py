import io
import unittest

import numpy as np

import frame
import frame_spec as fr_spec
from emitter import Emitter
from frame import ConfigFrame, Fill


def zeros(num_bytes):
  return np.zeros(num_bytes, dtype=np.uint8)

def decode(payload, byte_ofst=0):
  out = io.StringIO()
  num_frames = frame.decode_frames(payload, byte_ofst, Emitter(out=out, err=io.StringIO()))
  return (num_frames, out.getvalue().splitlines())


class ConfigFrameTestCase(unittest.TestCase):
  def test_uniform(self):
    self.assertEqual(ConfigFrame(0, zeros(130)).render_split(), ["frame_130 all_0"])
    self.assertEqual(ConfigFrame(0, zeros(130) + 0xff).render_split(), ["frame_130 all_1"])

  def test_split(self):
    data = zeros(130)
    data[64:66] = [0x12, 0x34]
    data[66:] = 0xff
    self.assertEqual(ConfigFrame(0, data).fill(), Fill.MIXED)
    self.assertEqual(ConfigFrame(0, data).render_split(), ["frame_64 all_0", "frame_2 0x1234", "frame_64 all_1"])

  def test_split_middle_zero(self):
    data = zeros(130) + 0xff
    data[64:66] = 0
    self.assertEqual(ConfigFrame(0, data).render_split(), ["frame_64 all_1", "frame_2 0x0000", "frame_64 all_1"])

  def test_split_mixed_half(self):
    data = zeros(130)
    data[1] = 0xab
    lines = ConfigFrame(0, data).render_split()
    self.assertEqual(lines[0], "frame_64 00 ab" + " 00" * 62)
    self.assertEqual(lines[1:], ["frame_2 0x0000", "frame_64 all_0"])

  def test_classify(self):
    self.assertEqual(frame.classify(zeros(4)), Fill.ALL_0)
    self.assertEqual(frame.classify(zeros(4) + 0xff), Fill.ALL_1)
    self.assertEqual(frame.classify(np.array([0, 0xff], dtype=np.uint8)), Fill.MIXED)


class FrameLayoutTestCase(unittest.TestCase):
  def test_majors(self):
    self.assertEqual(frame.major_starting_at(0), 0)
    self.assertEqual(frame.major_starting_at(4), 1)
    self.assertEqual(frame.major_starting_at(34), 2)
    self.assertIsNone(frame.major_starting_at(1))
    self.assertEqual(fr_spec.MAJOR_START_FRAMES[-1] + fr_spec.NUM_MINORS_PER_MAJOR[-1], 505)

  def test_brams(self):
    self.assertEqual(frame.bram_starting_at(2020 + 152), 0)
    self.assertEqual(frame.bram_starting_at(2020 + 494), 11)
    self.assertIsNone(frame.bram_starting_at(152))
    self.assertIsNone(frame.bram_starting_at(2020 + 153))


class DecodeFramesTestCase(unittest.TestCase):
  def test_single_frame(self):
    (num_frames, lines) = decode(zeros(130))
    self.assertEqual(num_frames, 1)
    self.assertEqual(lines, ["#D row 0", "#D major 0 (4 minors)", "frame_130 all_0"])

  def test_exact_frames_no_tail(self):
    (num_frames, lines) = decode(zeros(3 * 130))
    self.assertEqual(num_frames, 3)
    self.assertEqual(lines.count("frame_130 all_0"), 3)
    self.assertFalse(any(line.startswith("#D hexdump") for line in lines))

  def test_tail(self):
    payload = zeros(130 + 5)
    payload[130:] = [1, 2, 3, 4, 5]
    (num_frames, lines) = decode(payload)
    self.assertEqual(num_frames, 1)
    self.assertEqual(lines[-2:], ["#D hexdump offset 0x82, len 0x5 (5)", "@00 01 02 03 04 05"])

  def test_major_markers(self):
    (_, lines) = decode(zeros(35 * 130))
    majors = [line for line in lines if line.startswith("#D major")]
    self.assertEqual(majors, ["#D major 0 (4 minors)", "#D major 1 (30 minors)", "#D major 2 (31 minors)"])

  def test_row_markers(self):
    (_, lines) = decode(zeros(506 * 130))
    rows = [line for line in lines if line.startswith("#D row")]
    self.assertEqual(rows, ["#D row 0", "#D row 1"])

  def test_content_start(self):
    payload = zeros(2021 * 130)
    ofst = 2020 * 130
    payload[ofst] = 0x12
    (num_frames, lines) = decode(payload, byte_ofst=0x100)
    self.assertEqual(num_frames, 2021)
    start = lines.index("#D 2020 - content start")
    abs_ofst = 0x100 + ofst
    self.assertEqual(lines[start + 1], f"frame_130 0 off 0x{abs_ofst:x}h ({abs_ofst})")
    self.assertEqual(lines[start + 2], "@00 12 00 00 00 00 00 00 00")
    self.assertEqual(lines[-1], "@80 00 00")
    self.assertEqual(len(lines) - start, 2 + 17)
    # No row markers in the content area.
    self.assertEqual(len([line for line in lines if line.startswith("#D row")]), 4)

  def test_bram(self):
    num_frames = 2020 + 152 + 18
    payload = zeros(num_frames * 130)
    payload[(2020 + 152) * 130 + 19] = 0x20
    (_, lines) = decode(payload)
    start = lines.index("#D 2020 - content start")
    self.assertEqual(lines[start + 1 : start + 153], ["frame_130 all_0"] * 152)
    self.assertEqual(lines[start + 153:], ["RAMB16_X0Y0 data", "INIT_00 \"" + "00" * 31 + "80\""])

  def test_incomplete_bram(self):
    num_frames = 2020 + 152 + 10
    (_, lines) = decode(zeros(num_frames * 130))
    start = lines.index("#D 2020 - content start")
    self.assertEqual(lines[start + 1:], ["frame_130 all_0"] * 162)

  def test_second_bram(self):
    num_frames = 2020 + 170 + 18
    (_, lines) = decode(zeros(num_frames * 130))
    self.assertIn("RAMB16_X0Y0 data", lines)
    self.assertIn("RAMB16_X0Y2 data", lines)
    self.assertEqual(lines[-1], "RAMB16_X0Y2 data")
