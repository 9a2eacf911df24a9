# author: Sahand Kashani <sahand.kashani@epfl.ch>

# Fatal decode failures. Anything that is only suspicious (reserved bits with an
# unexpected value, unknown IDCODEs/commands/registers) is not an exception but
# a "#W" warning line that is emitted inline.

class DecodeError(Exception):
  pass

# Container-level malformation: bad tag, bad string termination, input too large.
class StructuralError(DecodeError):
  pass

# Invalid packet type/opcode, wrong register for a packet type, word count that
# does not match a register's arity, non-zero data where zero is mandated.
class ProtocolError(DecodeError):
  pass

# A read whose span exceeds the remaining buffer.
class TruncatedInputError(DecodeError):
  def __init__(
    self,
    byte_ofst: int,
    num_bytes: int,
    buffer_len: int
  ) -> None:
    super().__init__(f"Unexpected EOF: {num_bytes} byte(s) requested at offset 0x{byte_ofst:x}, but the input ends at 0x{buffer_len:x}.")
    self.byte_ofst = byte_ofst
    self.num_bytes = num_bytes
    self.buffer_len = buffer_len
