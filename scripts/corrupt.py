from __future__ import annotations

import argparse
import os
import random
import sys
from typing import Optional

from paket.constants import BLOCK_SIZE, TABLE_SUFFIX
from paket.errors import PaketError
from paket.table import load_table


def _flip_byte(path: str, offset: int, xor_val: int = 0xFF) -> None:
    if offset < 0:
        raise ValueError("Offset must be non-negative")
    with open(path, "r+b") as f:
        f.seek(offset)
        b = f.read(1)
        if not b:
            raise ValueError("Offset beyond end of file")
        f.seek(offset)
        f.write(bytes([b[0] ^ (xor_val & 0xFF)]))
        f.flush()
        os.fsync(f.fileno())


def cmd_by_offset(args: argparse.Namespace) -> None:
    _flip_byte(args.container, args.offset, xor_val=args.xor)
    print(f"Flipped 1 byte at offset {args.offset}")


def cmd_entry(args: argparse.Namespace) -> None:
    table = load_table(args.table or args.container + TABLE_SUFFIX)
    desc = table.lookup(args.name)
    rel: Optional[int] = args.within
    if rel is None:
        rng = random.Random(args.seed)
        # stay past the nonce so the damage lands in ciphertext
        lo = BLOCK_SIZE if desc.encrypted_length > BLOCK_SIZE else 0
        rel = rng.randrange(lo, desc.encrypted_length)
    if not (0 <= rel < desc.encrypted_length):
        raise ValueError(f"--within {rel} outside segment of {desc.encrypted_length} bytes")
    off = desc.start_offset + rel
    _flip_byte(args.container, off, xor_val=args.xor)
    print(f"Flipped 1 byte in {args.name} at offset {off} (segment +{rel})")


def main(argv: Optional[list[str]] = None) -> None:
    ap = argparse.ArgumentParser(prog="paket.corrupt", description="Corrupt paket containers for testing")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_off = sub.add_parser("by-offset", help="Flip one byte at an absolute container offset")
    p_off.add_argument("container", help="Path to container blob")
    p_off.add_argument("--offset", type=int, required=True, help="Absolute byte offset in container")
    p_off.add_argument("--xor", type=lambda x: int(x, 0), default=0xFF, help="XOR mask to apply (default 0xFF)")
    p_off.set_defaults(func=cmd_by_offset)

    p_entry = sub.add_parser("entry", help="Flip one byte inside a named entry's segment")
    p_entry.add_argument("container", help="Path to container blob")
    p_entry.add_argument("name", help="Entry name")
    p_entry.add_argument("--table", help="Table JSON path (default: CONTAINER.json)")
    p_entry.add_argument("--within", type=int, default=None, help="Byte offset within the segment (default: random past the nonce)")
    p_entry.add_argument("--seed", type=int, default=None, help="PRNG seed for reproducibility")
    p_entry.add_argument("--xor", type=lambda x: int(x, 0), default=0xFF, help="XOR mask to apply (default 0xFF)")
    p_entry.set_defaults(func=cmd_entry)

    args = ap.parse_args(argv)
    try:
        args.func(args)
    except (PaketError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
