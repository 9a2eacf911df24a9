# author: Sahand Kashani <sahand.kashani@epfl.ch>

import numpy as np


# Generic helper method to extract a bit slice from an integer.
def bits(
  input: int,
  idx_high: int,
  idx_low: int
) -> int:
  assert idx_high >= idx_low, f"Error: Invalid bit range {idx_high}:{idx_low}"
  # We right-shift the input by idx_low, then mask the bit pattern to isolate
  # the part we are interested in.
  shifted_input = input >> idx_low
  mask = (1 << (idx_high - idx_low + 1)) - 1
  res = shifted_input & mask
  return res

# Returns a mask covering the bits between the 2 indices (inclusive).
def mask(
  idx_high: int,
  idx_low: int
) -> int:
  return ((1 << width(idx_high, idx_low)) - 1) << idx_low

# Returns the number of bits between the 2 indices.
def width(
  idx_high: int,
  idx_low: int
) -> int:
  assert idx_high >= idx_low, f"Error: Expected idx_high >= idx_low"
  return idx_high - idx_low + 1

# Formats a value as a "0b"-prefixed binary string with a fixed number of digits.
def bin_str(
  value: int,
  num_digits: int
) -> str:
  return f"0b{value:0>{num_digits}b}"

# Formats bytes as space-separated 2-digit hex values.
def hex_bytes(
  data: np.ndarray | bytes
) -> str:
  return " ".join(f"{b:02x}" for b in bytes(data))

def is_all_zero(
  data: np.ndarray
) -> bool:
  return not np.any(data)

def is_all_one(
  data: np.ndarray
) -> bool:
  return bool(np.all(data == 0xff))
