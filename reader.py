# author: Sahand Kashani <sahand.kashani@epfl.ch>

import numpy as np

from errors import TruncatedInputError


# Forward-only cursor over a byte-level view of a bitstream. Multi-byte values
# are big-endian. Every read is bounds-checked against the buffer length so a
# declared span that runs past the end of the file raises TruncatedInputError
# instead of silently returning a short slice (numpy slicing does not fail on
# out-of-range indices).
class BitstreamReader:
  def __init__(
    self,
    byte_bitstream: np.ndarray,
    byte_ofst: int = 0
  ) -> None:
    assert byte_bitstream.itemsize == 1, f"Error: Expected 8-bit view of bitstream."
    self._data = byte_bitstream
    self.byte_ofst = byte_ofst

  def __len__(self) -> int:
    return self._data.size

  def at_eof(self) -> bool:
    return self.byte_ofst >= self._data.size

  def check(
    self,
    num_bytes: int,
    byte_ofst: int | None = None
  ) -> None:
    if byte_ofst is None:
      byte_ofst = self.byte_ofst
    if byte_ofst < 0 or num_bytes < 0 or byte_ofst + num_bytes > self._data.size:
      raise TruncatedInputError(byte_ofst, num_bytes, self._data.size)

  # Random access (does not move the cursor).

  def bytes_at(
    self,
    byte_ofst: int,
    num_bytes: int
  ) -> np.ndarray:
    self.check(num_bytes, byte_ofst)
    return self._data[byte_ofst : byte_ofst + num_bytes]

  def uint_at(
    self,
    byte_ofst: int,
    num_bytes: int
  ) -> int:
    return int.from_bytes(self.bytes_at(byte_ofst, num_bytes).tobytes(), "big")

  def u8_at(self, byte_ofst: int) -> int:
    return self.uint_at(byte_ofst, 1)

  def u16_at(self, byte_ofst: int) -> int:
    return self.uint_at(byte_ofst, 2)

  def u32_at(self, byte_ofst: int) -> int:
    return self.uint_at(byte_ofst, 4)

  # Sequential access (advances the cursor).

  def read_bytes(
    self,
    num_bytes: int
  ) -> np.ndarray:
    data = self.bytes_at(self.byte_ofst, num_bytes)
    self.byte_ofst += num_bytes
    return data

  def read_u8(self) -> int:
    value = self.u8_at(self.byte_ofst)
    self.byte_ofst += 1
    return value

  def read_u16(self) -> int:
    value = self.u16_at(self.byte_ofst)
    self.byte_ofst += 2
    return value

  def read_u32(self) -> int:
    value = self.u32_at(self.byte_ofst)
    self.byte_ofst += 4
    return value

  # Reads `num_words` 16-bit big-endian words.
  def read_u16_words(
    self,
    num_words: int
  ) -> np.ndarray:
    return self.read_bytes(num_words * 2).view(dtype=np.dtype(">u2"))

  # Returns the offset of the first byte equal to `value` at or after the cursor,
  # or None if there is no such byte.
  def find_byte(
    self,
    value: int
  ) -> int | None:
    matches = np.flatnonzero(self._data[self.byte_ofst:] == value)
    if matches.size == 0:
      return None
    return self.byte_ofst + int(matches[0])
