# author: Sahand Kashani <sahand.kashani@epfl.ch>

import argparse
import sys

import bitstream_spec as bit_spec
from bitstream import Bitstream
from emitter import Emitter
from errors import DecodeError


def bit2txt(
  bitstream_path: str,
  emitter: Emitter
) -> bool:
  try:
    bitstream = Bitstream.from_file_path(bitstream_path)
  except OSError as e:
    emitter.error(f"Error opening {bitstream_path}: {e.strerror or e}.")
    return False
  except DecodeError as e:
    emitter.error(str(e))
    return False

  try:
    bitstream.decode(emitter)
  except DecodeError as e:
    # Whatever was decoded before the failure has already been printed.
    emitter.error(str(e))
    return False

  return True

def main(
  argv: list[str] | None = None
) -> int:
  parser = argparse.ArgumentParser(
    prog="bit2txt",
    description=f"bit2txt {bit_spec.PROGRAM_REVISION} - convert FPGA bitstream to text"
  )
  parser.add_argument("--version", action="version", version=bit_spec.PROGRAM_REVISION, help="print version number")
  parser.add_argument("--info", action="store_true", help="add extra info to output (marked #I)")
  parser.add_argument("bitstream", type=str, help="path to .bit file, printed on stdout")
  args = parser.parse_args(argv)

  emitter = Emitter(info=args.info)
  ok = bit2txt(args.bitstream, emitter)
  return 0 if ok else 1

# Main program (if executed as script)
if __name__ == "__main__":
  sys.exit(main())
