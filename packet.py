# author: Sahand Kashani <sahand.kashani@epfl.ch>

import numpy as np

import helpers
import packet_spec as pkt_spec
from errors import ProtocolError
from reader import BitstreamReader

# This package contains data structures to represent the configuration packets
# encoded in a Spartan-6 bitstream. This design is based entirely off of
# information in "UG380: Spartan-6 FPGA Configuration User Guide".
#
# A packet starts with a 16-bit header:
#
#   [15:13] type     (1 or 2)
#   [12:11] opcode   (0 = noop, 1 = read, 2 = write)
#   [10: 5] register address
#   [ 4: 0] word count (number of 16-bit payload words that follow)
#
# Type-2 packets are always followed by a 32-bit word count and the bulk
# payload. This module only captures the header and the immediate payload words;
# the bulk payload is consumed by the caller as it is streamed through the frame
# decoder.

class Packet:
  def __init__(
    self,
    hdr: int,
    hdr_tpe: pkt_spec.Type,
    opcode: pkt_spec.Opcode,
    reg_addr: int,
    word_count: int,
    data: np.ndarray,
    byte_ofst: int
  ) -> None:
    # We expect a 16-bit word-level array.
    assert data.dtype == np.dtype(">u2"), f"Error: Incorrect endianness."
    self.hdr = hdr
    self.hdr_tpe = hdr_tpe
    self.opcode = opcode
    self.reg_addr = reg_addr
    self.word_count = word_count
    self.data = data
    self.byte_ofst = byte_ofst

  # The register addressed by the packet, or None if the address is undefined.
  @property
  def register(self) -> pkt_spec.Register | None:
    return pkt_spec.register_at(self.reg_addr)

  # Everything below the opcode, which must be 0 for a noop.
  @property
  def noop_payload(self) -> int:
    return helpers.bits(self.hdr, pkt_spec.PACKET_NOOP_PAYLOAD_IDX_HIGH, pkt_spec.PACKET_NOOP_PAYLOAD_IDX_LOW)

  def data_size_bytes(self) -> int:
    return self.data.nbytes

  # Total packet size in bytes, including the header.
  def packet_size_bytes(self) -> int:
    return self.data_size_bytes() + pkt_spec.PACKET_HEADER_LENGTH

  # "<ofst>=<hdr>" prefix used by diagnostics about this packet.
  def location(self) -> str:
    return f"0x{self.byte_ofst:x}=0x{self.hdr:x}"

  def __str__(self) -> str:
    reg = self.register
    reg_name = reg.name if reg is not None else f"RSVD_{self.reg_addr}"
    payload_str = ",".join([f"0x{x:0>4x}" for x in self.data])
    return f"BYTE_OFST = 0x{self.byte_ofst:0>8x}, PKT_HEADER = 0x{self.hdr:0>4x} (PKT_TYPE = {self.hdr_tpe.name:<5}, OP = {self.opcode.name:<5}, REG = {reg_name:<10}, WORD_COUNT = {self.word_count:>2}), PKT_PAYLOAD = {{ {payload_str} }}"

  # Factory method to create a packet from the header found at the reader's
  # cursor. The cursor is advanced past the header and the immediate payload.
  #
  # Raises ProtocolError if the header does not describe a valid packet.
  @staticmethod
  def create_packet(
    reader: BitstreamReader
  ):
    byte_ofst = reader.byte_ofst
    hdr = reader.read_u16()

    # Must decode the header as a simple "int" for now as we don't know yet if
    # it's a type-1 or type-2 packet, or some garbage. Giving garbage to the
    # pkt_spec.Type() enum would throw a ValueError.
    hdr_tpe_int = helpers.bits(hdr, pkt_spec.PACKET_HEADER_TYPE_IDX_HIGH, pkt_spec.PACKET_HEADER_TYPE_IDX_LOW)
    if hdr_tpe_int not in (pkt_spec.Type.TYPE1.value, pkt_spec.Type.TYPE2.value):
      raise ProtocolError(f"0x{byte_ofst:x}=0x{hdr:x} Unexpected packet type {hdr_tpe_int}.")
    hdr_tpe = pkt_spec.Type(hdr_tpe_int)

    opcode = pkt_spec.Opcode(helpers.bits(hdr, pkt_spec.PACKET_OPCODE_IDX_HIGH, pkt_spec.PACKET_OPCODE_IDX_LOW))
    if opcode == pkt_spec.Opcode.RSVD:
      raise ProtocolError(f"0x{byte_ofst:x}=0x{hdr:x} Unexpected packet opcode {opcode.value}.")

    reg_addr = helpers.bits(hdr, pkt_spec.PACKET_REGISTER_ADDRESS_IDX_HIGH, pkt_spec.PACKET_REGISTER_ADDRESS_IDX_LOW)
    word_count = helpers.bits(hdr, pkt_spec.PACKET_WORD_COUNT_IDX_HIGH, pkt_spec.PACKET_WORD_COUNT_IDX_LOW)

    if opcode == pkt_spec.Opcode.NOOP:
      # A noop is just the header, whatever its other fields say.
      data = np.array([], dtype=np.dtype(">u2"))
    else:
      data = reader.read_u16_words(word_count)

    return Packet(
      hdr=hdr,
      hdr_tpe=hdr_tpe,
      opcode=opcode,
      reg_addr=reg_addr,
      word_count=word_count,
      data=data,
      byte_ofst=byte_ofst
    )

# Returns True if the packet is a NOOP.
def is_noop_pkt(
  packet: Packet
) -> bool:
  return packet.opcode == pkt_spec.Opcode.NOOP

# Returns True if the packet's opcode is one its target register supports
# (e.g. STAT can only be read, FDRI can only be written).
def is_supported_access(
  packet: Packet
) -> bool:
  reg = packet.register
  assert reg is not None, f"Error: Packet at byte ofst {packet.byte_ofst} targets an undefined register."
  required = pkt_spec.OPCODE_ACCESS[packet.opcode]
  return bool(pkt_spec.REGISTER_ACCESS[reg] & required)
