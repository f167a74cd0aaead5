"""Command line front end for the SM3 hash.

Usage:
    python sm3_cli.py "message" ["message" ...]
    python sm3_cli.py -f path/to/file [-f other/file ...]
    python sm3_cli.py -f -            # read stdin

Each positional argument is hashed as its UTF-8 encoding and the hex digest
is printed on its own line. Files are streamed through `SM3Hash` and printed
as `<digest>  <path>`.
"""

from __future__ import annotations

import argparse
import sys
from typing import BinaryIO, List, Optional

from sm3_hash import SM3Hash, sm3


DEFAULT_CHUNK_SIZE = 65536


def _positive_int(value: str) -> int:
    n = int(value)
    if n <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return n


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sm3sum",
        description="Compute SM3 (GB/T 32905) digests of strings or files",
    )
    parser.add_argument(
        "messages",
        nargs="*",
        help="Message(s) to hash, taken as UTF-8 text",
    )
    parser.add_argument(
        "-f",
        "--file",
        action="append",
        default=[],
        dest="files",
        help="File to hash; may be repeated. Use '-' for stdin",
    )
    parser.add_argument(
        "--chunk-size",
        type=_positive_int,
        default=DEFAULT_CHUNK_SIZE,
        help=f"Read size used when streaming files (default: {DEFAULT_CHUNK_SIZE})",
    )
    parser.add_argument(
        "--upper",
        action="store_true",
        help="Print digests in upper case",
    )
    return parser


def hash_stream(stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bytes:
    """Digest everything readable from a binary stream, chunk by chunk."""
    h = SM3Hash()
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        h.update(chunk)
    return h.digest()


def hash_file(path: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bytes:
    if path == "-":
        return hash_stream(sys.stdin.buffer, chunk_size)
    with open(path, "rb") as f:
        return hash_stream(f, chunk_size)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Returns the process exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not args.messages and not args.files:
        parser.print_usage(sys.stderr)
        sys.stderr.write("sm3sum: give at least one message or -f FILE\n")
        return 1

    def fmt(digest: bytes) -> str:
        text = digest.hex()
        return text.upper() if args.upper else text

    for message in args.messages:
        print(fmt(sm3(message.encode("utf-8"))))

    status = 0
    for path in args.files:
        try:
            digest = hash_file(path, args.chunk_size)
        except OSError as e:
            sys.stderr.write(f"Error reading file '{path}': {e}\n")
            status = 1
            continue
        print(f"{fmt(digest)}  {path}")

    return status


if __name__ == "__main__":
    raise SystemExit(main())
