# author: Sahand Kashani <sahand.kashani@epfl.ch>

# Some information can be found at these addresses:
# - UG380: Spartan-6 FPGA Configuration User Guide
# - http://www.fpga-faq.com/FAQ_Pages/0026_Tell_me_about_bit_files.htm
#
# A .bit file starts with a fixed 13-byte preamble, followed by 4 strings in
# "Tag-Length-Value" (TLV) form, followed by the raw bitstream which is again
# TLV but with a 4-byte length.
#
#   Preamble
#   2 bytes          length 0x0009           (big endian)
#   9 bytes          some sort of header     (0f f0 0f f0 0f f0 0f f0 00)
#   2 bytes          length 0x0001           (the 1-byte value is the tag of the first string)
#
#   Strings 'a' .. 'd'
#   1 byte           key 0x61 .. 0x64        (The letters "a" to "d")
#   2 bytes          length                  (including the trailing 0x00)
#   <length> bytes   design name + options, fpga part name, date, time
#
#   Commands
#   1 byte           key 0x65                (The letter "e")
#   4 bytes          length
#   <length> bytes   dummy/bus-width words, then the 0xaa995566 sync word, then packets.

PREAMBLE_LENGTH = 13
PREAMBLE_EXPECTED = b"\x00\x09\x0f\xf0\x0f\xf0\x0f\xf0\x0f\xf0\x00\x00\x01"

HEADER_STR_TAGS = b"abcd"
HEADER_STR_TAG_LENGTH = 1
HEADER_STR_VALUE_LENGTH = 2

COMMANDS_TAG = ord("e")
COMMANDS_TAG_LENGTH = 1
COMMANDS_VALUE_LENGTH = 4

# The design name and its options are separated by semicolons in string 'a'.
DESIGN_OPTIONS_SEPARATOR = ";"

SYNC_WORD = 0xaa_99_55_66
SYNC_WORD_LENGTH = 4
# Everything before the first byte of the sync word is dumped as-is.
SYNC_WORD_FIRST_BYTE = 0xaa

# The whole bitstream is loaded into memory, so we put a ceiling on its size.
# 30000 pages of 4 KiB (~120 MB) is enough for any Spartan-6 device.
MAX_BITSTREAM_SIZE = 30000 * 4096

# Version of the text format emitted on the first output line.
FORMAT_VERSION = 1
PROGRAM_REVISION = "2012-06-01"
