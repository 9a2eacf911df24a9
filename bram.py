# author: Sahand Kashani <sahand.kashani@epfl.ch>

import typing

import numpy as np

import frame_spec as fr_spec
import helpers

# A RAMB16 block is stored in 18 consecutive configuration frames. The content
# is not laid out linearly: data and parity bits of every INIT/INITP row are
# interleaved across the frames. The functions below recover the INIT_xx and
# INITP_xx attribute strings (as they would appear in a design) from the
# physical bits.
#
# Bits are numbered MSB-first starting at byte BRAM_PADDING_LENGTH of the
# region (the first 18 bytes are padding).

NUM_INITP = 8
NUM_INIT = 32
INIT_NUM_BYTES = 32
# Bit distance between 2 consecutive INIT (or INITP) rows.
INIT_ROW_STRIDE_BITS = 2048 + 256

class BramContent(typing.NamedTuple):
  head: np.ndarray
  tail: np.ndarray
  # Indexed by INITP/INIT number. Each string is 64 hex characters.
  initp: list[str]
  init: list[str]

def _byte_idx() -> np.ndarray:
  return np.arange(INIT_NUM_BYTES).reshape(-1, 1)

def _bit_idx() -> np.ndarray:
  return np.arange(8).reshape(1, -1)

# Bit offsets (shape [32 bytes, 8 bits]) of INITP_<initp_idx>. Column `l` of
# row `k` feeds bit `l` of output byte `k`.
def initp_bit_ofsts(
  initp_idx: int
) -> np.ndarray:
  k = _byte_idx()
  l = _bit_idx()
  return initp_idx * INIT_ROW_STRIDE_BITS + (31 - k) * 4 * 18 + 1 + (l // 2) * 18 - (l & 1)

# Bit offsets (shape [32 bytes, 8 bits]) of INIT_<init_idx>. Column `l` of row
# `k` feeds bit `7 - l` of output byte `k`.
def init_bit_ofsts(
  init_idx: int
) -> np.ndarray:
  k = _byte_idx()
  l = _bit_idx()
  return init_idx * INIT_ROW_STRIDE_BITS + ((31 - k) // 2) * 18 + (8 - ((31 - k) & 1) * 8) + 2 + l

# Looks up the bits at the given offsets. Offsets past the end of the region
# read as 0.
def _gather(
  region_bits: np.ndarray,
  bit_ofsts: np.ndarray
) -> np.ndarray:
  in_range = bit_ofsts < region_bits.size
  clamped = np.where(in_range, bit_ofsts, 0)
  return np.where(in_range, region_bits[clamped], 0).astype(np.uint8)

def region_bits(
  region: np.ndarray
) -> np.ndarray:
  assert region.size == fr_spec.BRAM_LENGTH, f"Error: Expected RAMB16 region of {fr_spec.BRAM_LENGTH} bytes, but received {region.size}"
  return np.unpackbits(region[fr_spec.BRAM_PADDING_LENGTH:])

def decode_initp(
  bits: np.ndarray,
  initp_idx: int
) -> str:
  selected = _gather(bits, initp_bit_ofsts(initp_idx))
  init_bytes = np.packbits(selected, axis=1, bitorder="little").flatten()
  return init_bytes.tobytes().hex()

def decode_init(
  bits: np.ndarray,
  init_idx: int
) -> str:
  selected = _gather(bits, init_bit_ofsts(init_idx))
  init_bytes = np.packbits(selected, axis=1, bitorder="big").flatten()
  return init_bytes.tobytes().hex()

def decode_bram(
  region: np.ndarray
) -> BramContent:
  bits = region_bits(region)
  return BramContent(
    head=region[:fr_spec.BRAM_PADDING_LENGTH],
    tail=region[-fr_spec.BRAM_PADDING_LENGTH:],
    initp=[decode_initp(bits, idx) for idx in range(NUM_INITP)],
    init=[decode_init(bits, idx) for idx in range(NUM_INIT)]
  )

def is_zero_init(
  init_str: str
) -> bool:
  return init_str.strip("0") == ""

# Returns the lines describing a RAMB16 region. `bram_idx` is the index of the
# block in frame_spec.BRAM_START_FRAMES.
def render_bram(
  bram_idx: int,
  content: BramContent
) -> list[str]:
  lines = [f"RAMB16_X0Y{bram_idx * 2} data"]

  if not helpers.is_all_zero(content.head):
    lines.append(f"ramb16_head {helpers.hex_bytes(content.head)}")
  if not helpers.is_all_zero(content.tail):
    lines.append(f"ramb16_tail {helpers.hex_bytes(content.tail)}")

  for (idx, init_str) in enumerate(content.initp):
    if not is_zero_init(init_str):
      lines.append(f"INITP_{idx:02d} \"{init_str}\"")
  for (idx, init_str) in enumerate(content.init):
    if not is_zero_init(init_str):
      lines.append(f"INIT_{idx:02d} \"{init_str}\"")

  return lines
