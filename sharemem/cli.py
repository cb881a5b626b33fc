"""Command that writes or reads checksummed test records through shared memory."""

from __future__ import annotations

import argparse
import random
import struct
import sys
import time

from .crc import crc64
from .memory import ShareMemoryError, ShareMemoryReader, ShareMemoryWriter

SHARE_MEMORY_NAME = "SHARE_MEMORY_TEST"
SHARE_MEMORY_SIZE = 1024 * 1024
TEST_DATA_SIZE = 100
ITERATIONS = 1000 * 60
INTERVAL = 0.001

# Payload bytes, padding to 8-byte alignment, then the CRC-64 of the payload.
_RECORD = struct.Struct(f"<{TEST_DATA_SIZE}s4xQ")
RECORD_SIZE = _RECORD.size


def make_test_record(rng: random.Random) -> bytes:
    """Return a record of random payload bytes followed by their CRC-64."""
    payload = bytes(rng.getrandbits(8) for _ in range(TEST_DATA_SIZE))
    return _RECORD.pack(payload, crc64(payload, 0))


def check_test_record(record: bytes) -> int:
    """Verify a record's size and checksum and return the checksum."""
    if len(record) != RECORD_SIZE:
        raise ValueError(f"record has {len(record)} bytes, expected {RECORD_SIZE}")
    payload, crc = _RECORD.unpack(record)
    actual = crc64(payload, 0)
    if actual != crc:
        raise ValueError(f"record checksum {crc} does not match payload checksum {actual}")
    return crc


def run_reader(name: str, iterations: int, interval: float) -> int:
    """Poll the block, check every record found and return how many were read."""
    print("testread")
    count = 0
    with ShareMemoryReader(name) as memory:
        for index in range(iterations):
            time.sleep(interval)
            data = memory.read()
            if data:
                crc = check_test_record(data)
                print(f"read {index}. {crc}")
                count += 1
    return count


def run_writer(name: str, size: int, iterations: int, interval: float) -> int:
    """Write fresh random records into the block and return how many were written."""
    print("testwrite")
    rng = random.Random()
    count = 0
    with ShareMemoryWriter(name, size) as memory:
        for index in range(iterations):
            time.sleep(interval)
            record = make_test_record(rng)
            memory.write(record)
            print(f"write {index}. {check_test_record(record)}")
            count += 1
    return count


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sharemem", description="Exchange checksummed records through shared memory."
    )
    parser.add_argument("mode", nargs="?", choices=("read", "write"))
    parser.add_argument("--name", default=SHARE_MEMORY_NAME)
    parser.add_argument("--size", type=int, default=SHARE_MEMORY_SIZE)
    parser.add_argument("--iterations", type=int, default=ITERATIONS)
    parser.add_argument("--interval", type=float, default=INTERVAL)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the reader or the writer as chosen on the command line."""
    args = _parser().parse_args(argv)
    try:
        if args.mode == "read":
            run_reader(args.name, args.iterations, args.interval)
        elif args.mode == "write":
            run_writer(args.name, args.size, args.iterations, args.interval)
    except (ShareMemoryError, ValueError) as error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())