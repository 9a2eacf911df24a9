# author: Sahand Kashani <sahand.kashani@epfl.ch>

import typing
from collections import namedtuple

import device_spec as dev_spec
import helpers
import packet_spec as pkt_spec
from errors import ProtocolError

# This module decodes the payload of type-1 writes to the Spartan-6
# configuration registers into named fields. The bit meanings come from
# "UG380: Spartan-6 FPGA Configuration User Guide", table 5-30 onwards, and from
# the values observed in bitstreams emitted by ISE.
#
# Every decoder receives the 16-bit payload words of the packet and returns the
# fields to print after "T1 <REG>" as well as the warnings to print after that
# line. Bits that are interpreted are cleared from the value. Whatever is left
# is printed as a raw hex remainder and compared against the reserved pattern
# the register is expected to carry.

class RegisterDecoding(typing.NamedTuple):
  fields: list[str]
  warnings: list[str]

# `word_count` is the exact number of 16-bit payload words the register expects.
RegisterDecoder = namedtuple("RegisterDecoder", ("word_count", "decode"))

# Single-bit flags are (mask, label) pairs checked in order.
Flags = tuple[tuple[int, str], ...]

def _take_flags(
  value: int,
  flags: Flags,
  fields: list[str]
) -> int:
  for (flag_mask, label) in flags:
    if value & flag_mask:
      fields.append(label)
      value &= ~flag_mask
  return value

def _append_remainder(
  value: int,
  fields: list[str]
) -> None:
  if value:
    fields.append(f"0x{value:x}")

def _reserved_warning(
  expected: int,
  value: int
) -> str:
  if expected == 0:
    return f"Expected reserved 0, got 0x{value:x}."
  return f"Expected reserved 0x{expected:x}, got 0x{value:x}."

def _u32(
  words: typing.Sequence[int],
  word_idx: int
) -> int:
  return (int(words[word_idx]) << 16) | int(words[word_idx + 1])

####################################################################################################
# CMD
####################################################################################################

def decode_cmd(
  words: typing.Sequence[int]
) -> RegisterDecoding:
  value = int(words[0])
  try:
    return RegisterDecoding([pkt_spec.Command(value).name], [])
  except ValueError:
    return RegisterDecoding([f"0x{value:x}"], [f"Unknown CMD 0x{value:x}."])

####################################################################################################
# IDCODE
####################################################################################################

def decode_idcode(
  words: typing.Sequence[int]
) -> RegisterDecoding:
  idcode = _u32(words, 0)
  device = dev_spec.lookup_idcode(idcode)

  if device is None:
    return RegisterDecoding([f"0x{idcode:x}"], [f"Unknown IDCODE 0x{idcode:x}."])

  warnings = list()
  if dev_spec.idcode_revision(idcode) != 0:
    warnings.append(f"Unexpected revision bits in IDCODE 0x{idcode:x}.")
  return RegisterDecoding([device.name], warnings)

####################################################################################################
# FLR
####################################################################################################

# There are 3 types of frames. Type0 (clb, ioi and special blocks), type1 (bram)
# and type2 (iob). The size of type0 and type1 frames is fixed, only the size of
# a type2 (iob) frame is specified with the FLR register.
def decode_flr(
  words: typing.Sequence[int]
) -> RegisterDecoding:
  return RegisterDecoding([f"{int(words[0])}"], [])

####################################################################################################
# COR1
####################################################################################################

COR1_FLAGS: Flags = (
  (0x8000, "DRIVE_AWAKE"),
  (0x0010, "CRC_BYPASS"),
  (0x0008, "DONE_PIPE"),
  (0x0004, "DRIVE_DONE"),
)
COR1_SSCLKSRC_IDX_HIGH = 1
COR1_SSCLKSRC_IDX_LOW = 0
# Reserved bits 14:5 should be 0110111000 according to documentation.
COR1_RESERVED_EXPECTED = 0x3700

def decode_cor1(
  words: typing.Sequence[int]
) -> RegisterDecoding:
  fields: list[str] = list()
  warnings: list[str] = list()

  value = _take_flags(int(words[0]), COR1_FLAGS, fields)

  # 00 = CCLK (default, nothing printed), 01 = UserClk, 1x = JTAGClk.
  ssclksrc = helpers.bits(value, COR1_SSCLKSRC_IDX_HIGH, COR1_SSCLKSRC_IDX_LOW)
  if ssclksrc & 0b10:
    fields.append("SSCLKSRC=TCK")
    if ssclksrc == 0b11:
      warnings.append("Unexpected SSCLKSRC 11.")
  elif ssclksrc == 0b01:
    fields.append("SSCLKSRC=UserClk")
  value &= ~helpers.mask(COR1_SSCLKSRC_IDX_HIGH, COR1_SSCLKSRC_IDX_LOW)

  _append_remainder(value, fields)
  if value != COR1_RESERVED_EXPECTED:
    warnings.append(_reserved_warning(COR1_RESERVED_EXPECTED, value))

  return RegisterDecoding(fields, warnings)

####################################################################################################
# COR2
####################################################################################################

COR2_FLAGS: Flags = (
  (0x8000, "RESET_ON_ERROR"),
)
# (label, idx_high, idx_low)
COR2_CYCLES = (
  ("DONE_CYCLE", 11, 9),
  ("LCK_CYCLE", 8, 6),
  ("GTS_CYCLE", 5, 3),
  ("GWE_CYCLE", 2, 0),
)
# Reserved bits 14:12 should be 000 according to documentation.
COR2_RESERVED_EXPECTED = 0

def decode_cor2(
  words: typing.Sequence[int]
) -> RegisterDecoding:
  fields: list[str] = list()
  warnings: list[str] = list()

  value = _take_flags(int(words[0]), COR2_FLAGS, fields)

  cycles: dict[str, int] = dict()
  for (label, idx_high, idx_low) in COR2_CYCLES:
    cycle = helpers.bits(value, idx_high, idx_low)
    cycles[label] = cycle
    fields.append(f"{label}={helpers.bin_str(cycle, helpers.width(idx_high, idx_low))}")
    value &= ~helpers.mask(idx_high, idx_low)

  _append_remainder(value, fields)

  done_cycle = cycles["DONE_CYCLE"]
  if done_cycle == 0 or done_cycle == 7:
    warnings.append(f"Unexpected DONE_CYCLE {helpers.bin_str(done_cycle, 3)}.")
  if cycles["LCK_CYCLE"] == 0:
    warnings.append("Unexpected LCK_CYCLE 0b000.")
  if value != COR2_RESERVED_EXPECTED:
    warnings.append(_reserved_warning(COR2_RESERVED_EXPECTED, value))

  return RegisterDecoding(fields, warnings)

####################################################################################################
# FAR_MAJ (followed by FAR_MIN)
####################################################################################################

FAR_MAJ_BLK_IDX_HIGH = 15
FAR_MAJ_BLK_IDX_LOW = 12
FAR_MAJ_ROW_IDX_HIGH = 11
FAR_MAJ_ROW_IDX_LOW = 8
FAR_MAJ_MAJOR_IDX_HIGH = 7
FAR_MAJ_MAJOR_IDX_LOW = 0
FAR_MIN_BRAM_IDX_HIGH = 15
FAR_MIN_BRAM_IDX_LOW = 14
FAR_MIN_RESERVED_IDX_HIGH = 13
FAR_MIN_RESERVED_IDX_LOW = 10
FAR_MIN_MINOR_IDX_HIGH = 9
FAR_MIN_MINOR_IDX_LOW = 0
FAR_MAJ_MAX_BLK = 7

def decode_far_maj(
  words: typing.Sequence[int]
) -> RegisterDecoding:
  maj_word = int(words[0])
  min_word = int(words[1])

  blk = helpers.bits(maj_word, FAR_MAJ_BLK_IDX_HIGH, FAR_MAJ_BLK_IDX_LOW)
  row = helpers.bits(maj_word, FAR_MAJ_ROW_IDX_HIGH, FAR_MAJ_ROW_IDX_LOW)
  major = helpers.bits(maj_word, FAR_MAJ_MAJOR_IDX_HIGH, FAR_MAJ_MAJOR_IDX_LOW)
  bram = helpers.bits(min_word, FAR_MIN_BRAM_IDX_HIGH, FAR_MIN_BRAM_IDX_LOW)
  minor = helpers.bits(min_word, FAR_MIN_MINOR_IDX_HIGH, FAR_MIN_MINOR_IDX_LOW)
  reserved = min_word & helpers.mask(FAR_MIN_RESERVED_IDX_HIGH, FAR_MIN_RESERVED_IDX_LOW)

  fields = [f"BLK={blk}", f"ROW={row}", f"MAJOR={major}", f"BRAM={bram}", f"MINOR={minor}"]
  _append_remainder(reserved, fields)

  warnings: list[str] = list()
  if blk > FAR_MAJ_MAX_BLK:
    warnings.append("Unexpected BLK bit 4 set.")
  if reserved:
    warnings.append(_reserved_warning(0, reserved))

  return RegisterDecoding(fields, warnings)

####################################################################################################
# MFWR
####################################################################################################

# The multi-frame write register is written with 2 dummy 32-bit words. Anything
# else is not something we know how to interpret.
def decode_mfwr(
  words: typing.Sequence[int]
) -> RegisterDecoding:
  first_dword = _u32(words, 0)
  second_dword = _u32(words, 2)
  if first_dword or second_dword:
    raise ProtocolError(f"Unexpected MFWR data 0x{first_dword:x} 0x{second_dword:x}.")
  return RegisterDecoding([], [])

####################################################################################################
# CTL and MASK
####################################################################################################

CTL_SBITS_IDX_HIGH = 5
CTL_SBITS_IDX_LOW = 4
CTL_SBITS = {
  0b11: "NO_RW",
  0b10: "NO_READ",
  0b01: "ICAP_READ",
}
CTL_DECRYPT_FLAGS: Flags = (
  (0x0040, "DECRYPT"),
)
CTL_TRAILING_FLAGS: Flags = (
  (0x0008, "PERSIST"),
  (0x0004, "USE_EFUSE_KEY"),
  (0x0002, "CRC_EXTSTAT_DISABLE"),
)
# Bit 0 is reserved as 1, and bit 7 is always seen set as well. The same holds
# for MASK where both bits are always masked in.
CTL_RESERVED_EXPECTED = 0x81
MASK_RESERVED_EXPECTED = 0x81

def decode_ctl(
  words: typing.Sequence[int]
) -> RegisterDecoding:
  fields: list[str] = list()
  value = _take_flags(int(words[0]), CTL_DECRYPT_FLAGS, fields)

  sbits = helpers.bits(value, CTL_SBITS_IDX_HIGH, CTL_SBITS_IDX_LOW)
  if sbits:
    fields.append(f"SBITS={CTL_SBITS[sbits]}")
    value &= ~helpers.mask(CTL_SBITS_IDX_HIGH, CTL_SBITS_IDX_LOW)

  value = _take_flags(value, CTL_TRAILING_FLAGS, fields)
  _append_remainder(value, fields)

  warnings: list[str] = list()
  if value != CTL_RESERVED_EXPECTED:
    warnings.append(_reserved_warning(CTL_RESERVED_EXPECTED, value))
  return RegisterDecoding(fields, warnings)

def decode_mask(
  words: typing.Sequence[int]
) -> RegisterDecoding:
  fields: list[str] = list()
  value = _take_flags(int(words[0]), CTL_DECRYPT_FLAGS, fields)

  # The security bits are masked in together.
  sbits_mask = helpers.mask(CTL_SBITS_IDX_HIGH, CTL_SBITS_IDX_LOW)
  if (value & sbits_mask) == sbits_mask:
    fields.append("SECURITY")
    value &= ~sbits_mask

  value = _take_flags(value, CTL_TRAILING_FLAGS, fields)
  _append_remainder(value, fields)

  warnings: list[str] = list()
  if value != MASK_RESERVED_EXPECTED:
    warnings.append(_reserved_warning(MASK_RESERVED_EXPECTED, value))
  return RegisterDecoding(fields, warnings)

####################################################################################################
# PWRDN_REG
####################################################################################################

PWRDN_REG_FLAGS: Flags = (
  (0x4000, "EN_EYES"),
  (0x0020, "FILTER_B"),
  (0x0010, "EN_PGSR"),
  (0x0004, "EN_PWRDN"),
  (0x0001, "KEEP_SCLK"),
)
# Reserved bits 13:6 should be 00100010 according to documentation.
PWRDN_REG_RESERVED_EXPECTED = 0x0880

def decode_pwrdn_reg(
  words: typing.Sequence[int]
) -> RegisterDecoding:
  fields: list[str] = list()
  value = _take_flags(int(words[0]), PWRDN_REG_FLAGS, fields)
  _append_remainder(value, fields)

  warnings: list[str] = list()
  if value != PWRDN_REG_RESERVED_EXPECTED:
    warnings.append(_reserved_warning(PWRDN_REG_RESERVED_EXPECTED, value))
  return RegisterDecoding(fields, warnings)

####################################################################################################
# HC_OPT_REG
####################################################################################################

HC_OPT_REG_FLAGS: Flags = (
  (0x0040, "INIT_SKIP"),
)
# Reserved bits 5:0 should be 011111 according to documentation.
HC_OPT_REG_RESERVED_EXPECTED = 0x001f

def decode_hc_opt_reg(
  words: typing.Sequence[int]
) -> RegisterDecoding:
  fields: list[str] = list()
  value = _take_flags(int(words[0]), HC_OPT_REG_FLAGS, fields)
  _append_remainder(value, fields)

  warnings: list[str] = list()
  if value != HC_OPT_REG_RESERVED_EXPECTED:
    warnings.append(_reserved_warning(HC_OPT_REG_RESERVED_EXPECTED, value))
  return RegisterDecoding(fields, warnings)

####################################################################################################
# Dispatch table
####################################################################################################

REGISTER_DECODERS: dict[pkt_spec.Register, RegisterDecoder] = {
  pkt_spec.Register.CMD: RegisterDecoder(1, decode_cmd),
  pkt_spec.Register.IDCODE: RegisterDecoder(2, decode_idcode),
  pkt_spec.Register.FLR: RegisterDecoder(1, decode_flr),
  pkt_spec.Register.COR1: RegisterDecoder(1, decode_cor1),
  pkt_spec.Register.COR2: RegisterDecoder(1, decode_cor2),
  pkt_spec.Register.FAR_MAJ: RegisterDecoder(2, decode_far_maj),
  pkt_spec.Register.MFWR: RegisterDecoder(4, decode_mfwr),
  pkt_spec.Register.CTL: RegisterDecoder(1, decode_ctl),
  pkt_spec.Register.MASK: RegisterDecoder(1, decode_mask),
  pkt_spec.Register.PWRDN_REG: RegisterDecoder(1, decode_pwrdn_reg),
  pkt_spec.Register.HC_OPT_REG: RegisterDecoder(1, decode_hc_opt_reg),
}

# Number of payload words printed for registers without a dedicated decoder.
MAX_RAW_WORDS = 8

def raw_words(
  words: typing.Sequence[int]
) -> list[str]:
  return [f"0x{int(word):x}" for word in words[:MAX_RAW_WORDS]]
