# author: Sahand Kashani <sahand.kashani@epfl.ch>

import enum

import numpy as np

import bram
import frame_spec as fr_spec
import helpers
from emitter import Emitter


class Fill(enum.Enum):
  ALL_0 = "all_0"
  ALL_1 = "all_1"
  MIXED = "mixed"

def classify(
  data: np.ndarray
) -> Fill:
  if helpers.is_all_zero(data):
    return Fill.ALL_0
  if helpers.is_all_one(data):
    return Fill.ALL_1
  return Fill.MIXED

# Represents a single 130-byte configuration frame.
class ConfigFrame:
  def __init__(
    self,
    # Byte ofst in the bitstream at which this configuration frame is found.
    byte_ofst: int,
    data: np.ndarray
  ) -> None:
    assert data.size == fr_spec.FRAME_LENGTH, f"Error: Expected frame at byte ofst {byte_ofst} to have size {fr_spec.FRAME_LENGTH} bytes, but is {data.size} bytes"
    self.byte_ofst = byte_ofst
    self.data = data

  @property
  def first_half(self) -> np.ndarray:
    return self.data[fr_spec.FRAME_FIRST_HALF_OFST : fr_spec.FRAME_FIRST_HALF_OFST + fr_spec.FRAME_HALF_LENGTH]

  @property
  def last_half(self) -> np.ndarray:
    return self.data[fr_spec.FRAME_LAST_HALF_OFST : fr_spec.FRAME_LAST_HALF_OFST + fr_spec.FRAME_HALF_LENGTH]

  @property
  def middle_word(self) -> int:
    middle = self.data[fr_spec.FRAME_MIDDLE_OFST : fr_spec.FRAME_MIDDLE_OFST + fr_spec.FRAME_MIDDLE_LENGTH]
    return int.from_bytes(middle.tobytes(), "big")

  def fill(self) -> Fill:
    return classify(self.data)

  # Rendering used for the CLB/IOI rows: uniform frames are compacted to a single
  # line, otherwise the 2 halves and the middle word are printed separately.
  def render_split(self) -> list[str]:
    fill = self.fill()
    if fill != Fill.MIXED:
      return [f"frame_130 {fill.value}"]

    def render_half(half: np.ndarray) -> str:
      half_fill = classify(half)
      if half_fill == Fill.MIXED:
        return f"frame_64 {helpers.hex_bytes(half)}"
      return f"frame_64 {half_fill.value}"

    return [
      render_half(self.first_half),
      f"frame_2 0x{self.middle_word:04x}",
      render_half(self.last_half),
    ]

# Returns the index of the major starting at the given frame of a row, or None
# if the frame is not the first minor of a major.
def major_starting_at(
  frame_idx_in_row: int
) -> int | None:
  try:
    return fr_spec.MAJOR_START_FRAMES.index(frame_idx_in_row)
  except ValueError:
    return None

# Returns the index of the RAMB16 block starting at the given frame, or None.
def bram_starting_at(
  frame_idx: int
) -> int | None:
  content_frame_idx = frame_idx - fr_spec.CONTENT_START_FRAME
  try:
    return fr_spec.BRAM_START_FRAMES.index(content_frame_idx)
  except ValueError:
    return None

# Decodes the payload of a type-2 write to FDRI.
#
# Args:
# - payload: np.ndarray
#     Byte-level view of the payload.
# - byte_ofst: int
#     Offset of the payload in the bitstream (used for annotations only).
# - emitter: Emitter
#     Where the frame records are written.
#
# Returns:
# - num_frames: int
#     Number of complete frames found in the payload.
def decode_frames(
  payload: np.ndarray,
  byte_ofst: int,
  emitter: Emitter
) -> int:
  assert payload.itemsize == 1, f"Error: Expected 8-bit view of payload."

  num_frames = payload.size // fr_spec.FRAME_LENGTH

  def get_frame(frame_idx: int) -> ConfigFrame:
    frame_ofst = frame_idx * fr_spec.FRAME_LENGTH
    return ConfigFrame(byte_ofst + frame_ofst, payload[frame_ofst : frame_ofst + fr_spec.FRAME_LENGTH])

  # CLB, IOI and clocking rows.
  for frame_idx in range(min(num_frames, fr_spec.CONTENT_START_FRAME)):
    frame_idx_in_row = frame_idx % fr_spec.NUM_FRAMES_PER_ROW
    if frame_idx_in_row == 0:
      emitter.debug(f"row {frame_idx // fr_spec.NUM_FRAMES_PER_ROW}")

    major_idx = major_starting_at(frame_idx_in_row)
    if major_idx is not None:
      emitter.debug(f"major {major_idx} ({fr_spec.NUM_MINORS_PER_MAJOR[major_idx]} minors)")

    for line in get_frame(frame_idx).render_split():
      emitter.line(line)

  # IOB and block RAM content.
  frame_idx = fr_spec.CONTENT_START_FRAME
  while frame_idx < num_frames:
    if frame_idx == fr_spec.CONTENT_START_FRAME:
      emitter.debug(f"{fr_spec.CONTENT_START_FRAME} - content start")

    # We are at the beginning of a RAMB16 block (or two RAMB8 blocks) and have
    # the full 18 frames available.
    bram_idx = bram_starting_at(frame_idx)
    if bram_idx is not None and frame_idx + fr_spec.NUM_FRAMES_PER_BRAM <= num_frames:
      region_ofst = frame_idx * fr_spec.FRAME_LENGTH
      region = payload[region_ofst : region_ofst + fr_spec.BRAM_LENGTH]
      for line in bram.render_bram(bram_idx, bram.decode_bram(region)):
        emitter.line(line)
      frame_idx += fr_spec.NUM_FRAMES_PER_BRAM
      continue

    frame = get_frame(frame_idx)
    fill = frame.fill()
    if fill == Fill.MIXED:
      emitter.line(f"frame_130 {frame_idx - fr_spec.CONTENT_START_FRAME} off 0x{frame.byte_ofst:x}h ({frame.byte_ofst})")
      emitter.hexdump(frame.data)
    else:
      emitter.line(f"frame_130 {fill.value}")
    frame_idx += 1

  # Trailing bytes that do not form a complete frame.
  tail_ofst = num_frames * fr_spec.FRAME_LENGTH
  tail_len = payload.size - tail_ofst
  if tail_len > 0:
    emitter.debug(f"hexdump offset 0x{tail_ofst:x}, len 0x{tail_len:x} ({tail_len})")
    emitter.hexdump(payload[tail_ofst:])

  return num_frames
