# author: Sahand Kashani <sahand.kashani@epfl.ch>

import sys
import typing

import more_itertools as miter
import numpy as np

import helpers

# Line prefixes of the diagnostic records.
DEBUG_PREFIX = "#D"
INFO_PREFIX = "#I"
WARNING_PREFIX = "#W"
ERROR_PREFIX = "#E"

HEXDUMP_BYTES_PER_LINE = 8


# Writes decode records to the output stream, one record per line. Records are
# written in the order they are produced so the output can be diffed.
class Emitter:
  def __init__(
    self,
    out: typing.TextIO = None,
    err: typing.TextIO = None,
    info: bool = False
  ) -> None:
    self.out = sys.stdout if out is None else out
    self.err = sys.stderr if err is None else err
    # Whether "#I" info records are emitted.
    self.info_enabled = info

  def line(
    self,
    *fields: typing.Any
  ) -> None:
    print(" ".join(str(field) for field in fields), file=self.out)

  def hex(
    self,
    data: np.ndarray | bytes
  ) -> None:
    self.line("hex", helpers.hex_bytes(data))

  def debug(
    self,
    msg: str
  ) -> None:
    self.line(DEBUG_PREFIX, msg)

  def info(
    self,
    msg: str
  ) -> None:
    if self.info_enabled:
      self.line(INFO_PREFIX, msg)

  def warn(
    self,
    msg: str
  ) -> None:
    self.line(WARNING_PREFIX, msg)

  def error(
    self,
    msg: str
  ) -> None:
    print(f"{ERROR_PREFIX} {msg}", file=self.err)

  # Dumps bytes 8 per line, each line prefixed with the offset of its first byte.
  # The offset width grows with the size of the dump.
  def hexdump(
    self,
    data: np.ndarray | bytes
  ) -> None:
    data = bytes(data)
    if len(data) <= 0x100:
      ofst_width = 2
    elif len(data) <= 0x10000:
      ofst_width = 4
    else:
      ofst_width = 6

    for (line_idx, chunk) in enumerate(miter.chunked(data, HEXDUMP_BYTES_PER_LINE)):
      ofst = line_idx * HEXDUMP_BYTES_PER_LINE
      self.line(f"@{ofst:0>{ofst_width}x}", helpers.hex_bytes(bytes(chunk)))
