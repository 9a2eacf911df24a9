# author: Sahand Kashani <sahand.kashani@epfl.ch>

import gzip
from pathlib import Path

import numpy as np

import bitstream_spec as bit_spec
import frame
import frame_spec as fr_spec
import packet as pkt
import packet_spec as pkt_spec
import registers
from emitter import Emitter
from errors import ProtocolError, StructuralError, TruncatedInputError
from reader import BitstreamReader


class Bitstream:
  class Header:
    def __init__(
      self,
      reader: BitstreamReader,
      emitter: Emitter
    ) -> None:
      # Parses the .bit container up to and including the sync word, leaving
      # the reader's cursor on the first packet header.
      #
      # Args:
      # - reader: BitstreamReader
      #     Reader positioned at the start of the file.
      # - emitter: Emitter
      #     Receives the preamble, the header strings and the raw bytes found
      #     before the sync word.

      # Preamble.
      if len(reader) < bit_spec.PREAMBLE_LENGTH:
        raise StructuralError(f"File size {len(reader)} below minimum of {bit_spec.PREAMBLE_LENGTH} bytes.")
      preamble = reader.read_bytes(bit_spec.PREAMBLE_LENGTH)
      emitter.hex(preamble)
      if preamble.tobytes() != bit_spec.PREAMBLE_EXPECTED:
        emitter.warn("Unexpected magic header.")

      # Tag-Length-Value strings 'a' to 'd'.
      strings: dict[str, str] = dict()
      for tag in bit_spec.HEADER_STR_TAGS:
        reader.check(bit_spec.HEADER_STR_TAG_LENGTH + bit_spec.HEADER_STR_VALUE_LENGTH)
        found_tag = reader.read_u8()
        if found_tag != tag:
          raise StructuralError(f"Expected string code '{chr(tag)}', got '{chr(found_tag)}'.")
        str_len = reader.read_u16()
        value = reader.read_bytes(str_len)
        if str_len == 0 or value[-1] != 0:
          last = f"0x{value[-1]:02x}" if str_len else "nothing"
          raise StructuralError(f"z-terminated string '{chr(tag)}' ends with {last}.")
        strings[chr(tag)] = Bitstream.Header.__nul_terminated_to_str(value)
        emitter.line(f"header_str_{chr(tag)}", strings[chr(tag)])

      # Commands.
      reader.check(bit_spec.COMMANDS_TAG_LENGTH + bit_spec.COMMANDS_VALUE_LENGTH)
      found_tag = reader.read_u8()
      if found_tag != bit_spec.COMMANDS_TAG:
        raise StructuralError(f"Expected string code '{chr(bit_spec.COMMANDS_TAG)}', got '{chr(found_tag)}'.")
      command_length = reader.read_u32()
      command_ofst = reader.byte_ofst
      reader.check(command_length)
      if command_ofst + command_length < len(reader):
        emitter.warn(f"Unexpected continuation after offset {command_ofst + command_length}.")

      # Dump everything until the first byte of the sync word. These are the
      # dummy and bus-width auto-detection words.
      reader.check(1)
      sync_word_ofst = reader.find_byte(bit_spec.SYNC_WORD_FIRST_BYTE)
      if sync_word_ofst is None:
        raise TruncatedInputError(len(reader), bit_spec.SYNC_WORD_LENGTH, len(reader))
      if sync_word_ofst > reader.byte_ofst:
        emitter.hex(reader.read_bytes(sync_word_ofst - reader.byte_ofst))

      reader.check(bit_spec.SYNC_WORD_LENGTH)
      emitter.info(f"sync word at offset 0x{sync_word_ofst:x}.")
      sync_word = reader.read_u32()
      if sync_word != bit_spec.SYNC_WORD:
        raise ProtocolError(f"Unexpected sync word 0x{sync_word:x}.")
      emitter.line("sync_word")

      # The elements of string 'a' are separated by semicolons. The first element
      # is the name of the design, all following elements are key-value-like
      # options separated by "=" such as UserID=0xFFFFFFFF.
      design_and_options = strings["a"].split(bit_spec.DESIGN_OPTIONS_SEPARATOR)
      options = dict()
      for option in design_and_options[1:]:
        (k, _, v) = option.partition("=")
        options[k] = v

      self.strings: dict[str, str] = strings
      self.design_name: str = design_and_options[0]
      self.options: dict[str, str] = options
      self.fpga_part: str = strings["b"]
      self.date: str = strings["c"]
      self.time: str = strings["d"]
      self.command_ofst: int = command_ofst
      self.command_length: int = command_length
      self.sync_word_ofst: int = sync_word_ofst

    def get_option(self, key: str) -> str | None:
      return self.options.get(key)

    # C-like strings: only the characters before the first NUL are kept.
    @staticmethod
    def __nul_terminated_to_str(ntstr: np.ndarray) -> str:
      return ntstr.tobytes().split(b"\x00", 1)[0].decode("utf-8", errors="replace")

  def __init__(
    self,
    byte_bitstream: np.ndarray
  ) -> None:
    # Args:
    # - byte_bitstream: np.ndarray
    #     Byte-view of a bitstream. The bitstream is only decoded when decode()
    #     is called since decoding streams its records to an emitter.
    assert byte_bitstream.itemsize == 1, f"Error: Expected 8-bit view of bitstream."
    self._data = byte_bitstream
    self._hdr: Bitstream.Header | None = None
    self._packets: list[pkt.Packet] = list()

  @property
  def header(self):
    return self._hdr

  # Packets decoded so far, in order of appearance (noops included).
  @property
  def packets(self):
    return tuple(self._packets)

  def __len__(self) -> int:
    return self._data.size

  @staticmethod
  def from_file_path(
    bitstream_path: str | Path
  ):
    if Path(bitstream_path).suffix == ".gz":
      # Decompress file in memory before creating a bitstream object.
      with gzip.open(bitstream_path, "rb") as f:
        data = f.read()
    else:
      with open(bitstream_path, "rb") as f:
        data = f.read()

    if len(data) >= bit_spec.MAX_BITSTREAM_SIZE:
      raise StructuralError(f"Bitstream size above maximum of {bit_spec.MAX_BITSTREAM_SIZE} bytes.")

    return Bitstream.from_string(data)

  @staticmethod
  def from_string(
    bstr: bytes
  ):
    # We parse the bitstream as uint8 as packet headers are 16-bit words that
    # are not necessarily 32-bit aligned.
    byte_bitstream = np.frombuffer(bstr, dtype=np.uint8)
    return Bitstream(byte_bitstream)

  # Decodes the whole bitstream in a single forward pass, emitting one record
  # per line as decoding progresses.
  #
  # Raises a DecodeError subclass on the first fatal problem. Everything decoded
  # up to that point has already been emitted.
  def decode(
    self,
    emitter: Emitter
  ) -> None:
    emitter.line("bit2txt_format", bit_spec.FORMAT_VERSION)

    reader = BitstreamReader(self._data)
    self._hdr = Bitstream.Header(reader, emitter)
    self._packets = list()

    while not reader.at_eof():
      # Packet header: ug380, Configuration Packets.
      emitter.info(f"Packet header at off 0x{reader.byte_ofst:x}.")
      packet = pkt.Packet.create_packet(reader)
      self._packets.append(packet)

      if pkt.is_noop_pkt(packet):
        Bitstream.__decode_noop(packet, emitter)
      elif packet.hdr_tpe == pkt_spec.Type.TYPE1:
        Bitstream.__decode_type1(packet, emitter)
      else:
        Bitstream.__decode_type2(packet, reader, emitter)

  @staticmethod
  def __decode_noop(
    packet: pkt.Packet,
    emitter: Emitter
  ) -> None:
    if packet.hdr_tpe != pkt_spec.Type.TYPE1:
      emitter.warn(f"{packet.location()} Unexpected packet type {packet.hdr_tpe.value} noop.")
    if packet.noop_payload:
      emitter.warn(f"{packet.location()} Unexpected noop header.")
    emitter.line("noop")

  @staticmethod
  def __decode_type1(
    packet: pkt.Packet,
    emitter: Emitter
  ) -> None:
    reg = packet.register
    if reg is None:
      emitter.warn(f"{packet.location()} unknown T1 reg {packet.reg_addr}, skipping {packet.word_count} words.")
      return

    if not pkt.is_supported_access(packet):
      emitter.warn(f"{packet.location()} Unexpected {packet.opcode.name} of {reg.name}.")

    decoder = registers.REGISTER_DECODERS.get(reg)
    if decoder is None:
      # Defined register, but we don't know what its bits mean.
      emitter.warn(" ".join([f"T1 {reg.name} ({packet.word_count} words)", *registers.raw_words(packet.data)]))
      return

    if packet.word_count != decoder.word_count:
      raise ProtocolError(f"{packet.location()} Unexpected {reg.name} wordcount {packet.word_count}.")

    try:
      decoding = decoder.decode(packet.data)
    except ProtocolError as e:
      raise ProtocolError(f"{packet.location()} {e}") from e

    emitter.line("T1", reg.name, *decoding.fields)
    for warning in decoding.warnings:
      emitter.warn(warning)

  @staticmethod
  def __decode_type2(
    packet: pkt.Packet,
    reader: BitstreamReader,
    emitter: Emitter
  ) -> None:
    # The header's word count is meaningless for type-2 packets. The words it
    # announces have already been consumed.
    if packet.word_count != 0:
      emitter.warn(f"{packet.location()} Unexpected Type 2 wordcount.")
    if packet.reg_addr != pkt_spec.Register.FDRI.value:
      raise ProtocolError(f"{packet.location()} Unexpected Type 2 register.")

    word_count = reader.read_u32()
    emitter.line("T2", pkt_spec.Register.FDRI.name)

    payload_len = word_count * pkt_spec.PACKET_WORD_LENGTH
    reader.check(payload_len)
    if payload_len < fr_spec.FRAME_LENGTH:
      raise ProtocolError(f"{packet.location()} Unexpected Type2 length {payload_len}.")

    payload_ofst = reader.byte_ofst
    payload = reader.read_bytes(payload_len)
    frame.decode_frames(payload, payload_ofst, emitter)

    auto_crc_ofst = reader.byte_ofst
    auto_crc = reader.read_u32()
    emitter.info(f"0x{auto_crc_ofst:x}=0x{auto_crc:x} Ignoring Auto-CRC.")
