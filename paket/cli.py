from __future__ import annotations

import os
import sys
import time
import argparse
import binascii
import concurrent.futures as _fut

from pathlib import Path
from typing import List, Optional, Tuple

from paket.constants import DEFAULT_JOBS, DEFAULT_KEY_SIZE, KEY_ENV_VAR, TABLE_SUFFIX
from paket.container import Paket
from paket.crypto import random_key
from paket.errors import (
    PaketError,
    EmptyIndexError,
    PreconditionError,
    TableFormatError,
)
from paket.pathutil import norm_name
from paket.table import load_table
from paket.writer import PaketWriter


def _table_path_for(archive: str, table: Optional[str]) -> str:
    return table if table else archive + TABLE_SUFFIX


def _decode_hex_key(text: str, source: str) -> bytes:
    try:
        return binascii.unhexlify(text.strip())
    except (binascii.Error, ValueError):
        raise ValueError(f"{source} is not valid hex") from None


def resolve_key(key_hex: Optional[str] = None, key_file: Optional[str] = None) -> bytes:
    """Pick the key from --key-file, then --key, then the environment.

    Args:
        key_hex: Key given as a hex string on the command line.
        key_file: Path to a file holding the raw key bytes.

    Returns:
        Raw key bytes. Length is validated by the container/writer.
    """
    if key_file:
        with open(key_file, "rb") as f:
            return f.read()
    if key_hex:
        return _decode_hex_key(key_hex, "--key")
    env = os.environ.get(KEY_ENV_VAR)
    if env:
        return _decode_hex_key(env, KEY_ENV_VAR)
    raise ValueError(f"A key is required. Provide --key-file, --key or set {KEY_ENV_VAR}.")


def _collect_inputs(inputs: List[str]) -> List[Tuple[str, str]]:
    """Expand files and directories to (entry_name, fs_path) pairs.

    Directory contents are named by their path relative to the directory's
    parent, e.g. ``docs/a.txt``. Symlinks are skipped.
    """
    files: List[Tuple[str, str]] = []
    for raw in inputs:
        p = Path(raw)
        if p.is_symlink():
            print(f"Warning: skipping symlink {p}", file=sys.stderr)
            continue
        if p.is_dir():
            base = p.name
            for root, dirnames, filenames in os.walk(str(p)):
                dirnames[:] = sorted(d for d in dirnames if not os.path.islink(os.path.join(root, d)))
                for fn in sorted(filenames):
                    full = os.path.join(root, fn)
                    if os.path.islink(full):
                        print(f"Warning: skipping symlink {full}", file=sys.stderr)
                        continue
                    rel = os.path.relpath(full, start=str(p))
                    files.append((norm_name(os.path.join(base, rel)), full))
        elif p.exists():
            files.append((norm_name(p.name), str(p)))
        else:
            raise FileNotFoundError(f"No such file or directory: {raw}")
    return files


def cmd_keygen(*, size: int = DEFAULT_KEY_SIZE, output: Optional[str] = None) -> bool:
    """Generate a random key.

    Args:
        size: Key length in bytes (16, 24 or 32 for use with a container).
        output: Write the raw key here (mode 0600); print hex when omitted.
    """
    key = random_key(size)
    if output:
        fd = os.open(output, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(key)
        print(f"Wrote {len(key)}-byte key to {output}")
    else:
        print(key.hex())
    return True


def cmd_pack(output: str, inputs: List[str], key: bytes, *, table: Optional[str] = None, quiet: bool = False) -> bool:
    """Pack files/directories into a container and write its table.

    Args:
        output: Container blob path.
        inputs: Files or directories to store.
        key: Raw 16/24/32-byte key.
        table: Table JSON path (default: output + ".json").
        quiet: Only print the summary line.
    """
    files = _collect_inputs(inputs)
    if not files:
        raise ValueError("Nothing to pack")
    table_path = _table_path_for(output, table)
    t0 = time.time()
    with PaketWriter(output, key, table_path=table_path) as w:
        for name, full in files:
            desc = w.add_file(name, full)
            if not quiet:
                print(f"{desc.original_length}\t{name}")
        result = w.finalize()
    original, encrypted = result.totals()
    dt = time.time() - t0
    print(f"Packed {len(result)} file(s), {original} -> {encrypted} bytes in {dt:.2f}s; table: {table_path}")
    return True


def cmd_list(archive: str, *, table: Optional[str] = None) -> bool:
    """List entries from the table. No key is needed."""
    t = load_table(_table_path_for(archive, table))
    for name in sorted(t):
        print(f"{t[name].original_length}\t{name}")
    return True


def cmd_info(archive: str, *, table: Optional[str] = None) -> bool:
    """Show entry count and aggregate sizes from the table."""
    t = load_table(_table_path_for(archive, table))
    try:
        original, encrypted = t.totals()
    except EmptyIndexError:
        print("Warning: table has no entries", file=sys.stderr)
        original, encrypted = (0, 0)
    print(f"Container: {archive}")
    print(f"Entries: {len(t)}")
    print(f"Original bytes: {original}")
    print(f"Encrypted bytes: {encrypted}")
    return True


def cmd_cat(archive: str, name: str, key: bytes, *, table: Optional[str] = None, verify: bool = True) -> bool:
    """Write one decoded entry to stdout.

    Returns False (after writing the data) when verification was requested
    and the digest does not match.
    """
    t = load_table(_table_path_for(archive, table))
    with Paket(key, archive, t) as p:
        data, ok = p.get_file(name, decrypt=True, verify=verify)
    sys.stdout.buffer.write(data)
    sys.stdout.buffer.flush()
    if verify and not ok:
        print(f"Warning: hash mismatch for {name}", file=sys.stderr)
        return False
    return True


def _safe_target(outdir: str, name: str) -> str:
    target = os.path.abspath(os.path.join(outdir, *norm_name(name).split("/")))
    root = os.path.abspath(outdir)
    if os.path.commonpath([root, target]) != root:
        raise ValueError(f"Refusing to write outside output directory: {name}")
    return target


def cmd_unpack(
    archive: str,
    key: bytes,
    *,
    outdir: str = ".",
    names: Optional[List[str]] = None,
    table: Optional[str] = None,
    jobs: int = DEFAULT_JOBS,
    quiet: bool = False,
) -> bool:
    """Extract entries with the parallel read path.

    Args:
        archive: Container blob path.
        key: Raw key.
        outdir: Destination directory.
        names: Entry names to extract (default: all).
        table: Table JSON path.
        jobs: Worker threads.
        quiet: Only print the summary line.
    """
    t = load_table(_table_path_for(archive, table))
    wanted = list(names) if names else sorted(t)
    missing = [n for n in wanted if n not in t]
    if missing:
        raise ValueError(f"Not in table: {', '.join(missing)}")

    with Paket(key, archive, t) as p:

        def _one(name: str) -> str:
            data = p.get_parallel(name)
            target = _safe_target(outdir, name)
            os.makedirs(os.path.dirname(target) or ".", exist_ok=True)
            with open(target, "wb") as wf:
                wf.write(data)
            return name

        with _fut.ThreadPoolExecutor(max_workers=max(1, jobs)) as ex:
            for fut in _fut.as_completed([ex.submit(_one, n) for n in wanted]):
                done = fut.result()
                if not quiet:
                    print(done)
    print(f"Extracted {len(wanted)} file(s) to {outdir}")
    return True


def cmd_verify(archive: str, key: bytes, *, table: Optional[str] = None) -> bool:
    """Decode every entry and compare against its stored digest.

    Prints:
        "OK" when all entries match, otherwise "FAIL" followed by the names.
    """
    t = load_table(_table_path_for(archive, table))
    with Paket(key, archive, t) as p:
        failed = p.verify_all()
    if failed:
        print("FAIL")
        for name in failed:
            print(f"  {name}")
        return False
    print("OK")
    return True


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="paket",
        description="Encrypted random-access container tool",
        epilog=(
            f"Keys are read from --key-file, --key (hex) or ${KEY_ENV_VAR} (hex). "
            "Segments are not authenticated; use 'verify' to check digests."
        ),
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    def _key_args(p: argparse.ArgumentParser):
        p.add_argument("--key-file", help="File holding the raw 16/24/32-byte key")
        p.add_argument("--key", help="Key as hex")

    def _table_arg(p: argparse.ArgumentParser):
        p.add_argument("--table", help="Table JSON path (default: ARCHIVE.json)")

    ap_keygen = sub.add_parser("keygen", help="Generate a random key")
    ap_keygen.add_argument("--size", type=int, default=DEFAULT_KEY_SIZE, help="Key size in bytes (default 32)")
    ap_keygen.add_argument("--output", help="Write raw key to this file instead of printing hex")

    ap_pack = sub.add_parser("pack", help="Pack files into a container")
    ap_pack.add_argument("output", help="Output container path")
    ap_pack.add_argument("inputs", nargs="+", help="Input files/directories")
    ap_pack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")
    _key_args(ap_pack)
    _table_arg(ap_pack)

    ap_list = sub.add_parser("list", help="List container contents")
    ap_list.add_argument("archive", help="Container path")
    _table_arg(ap_list)

    ap_info = sub.add_parser("info", help="Show container information")
    ap_info.add_argument("archive", help="Container path")
    _table_arg(ap_info)

    ap_cat = sub.add_parser("cat", help="Write one entry to stdout")
    ap_cat.add_argument("archive", help="Container path")
    ap_cat.add_argument("name", help="Entry name")
    ap_cat.add_argument("--no-verify", action="store_true", help="Skip the digest check")
    _key_args(ap_cat)
    _table_arg(ap_cat)

    ap_unpack = sub.add_parser("unpack", help="Extract entries")
    ap_unpack.add_argument("archive", help="Container path")
    ap_unpack.add_argument("names", nargs="*", help="Specific entries to extract")
    ap_unpack.add_argument("--outdir", default=".", help="Output directory")
    ap_unpack.add_argument("--jobs", "-j", type=int, default=DEFAULT_JOBS, help="Parallel reads (default 4)")
    ap_unpack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")
    _key_args(ap_unpack)
    _table_arg(ap_unpack)

    ap_verify = sub.add_parser("verify", help="Verify every entry against its digest")
    ap_verify.add_argument("archive", help="Container path")
    _key_args(ap_verify)
    _table_arg(ap_verify)

    args = ap.parse_args(argv)
    try:
        if args.cmd == "keygen":
            ok = cmd_keygen(size=args.size, output=args.output)
        elif args.cmd == "pack":
            key = resolve_key(args.key, args.key_file)
            ok = cmd_pack(args.output, args.inputs, key, table=args.table, quiet=args.quiet)
        elif args.cmd == "list":
            ok = cmd_list(args.archive, table=args.table)
        elif args.cmd == "info":
            ok = cmd_info(args.archive, table=args.table)
        elif args.cmd == "cat":
            key = resolve_key(args.key, args.key_file)
            ok = cmd_cat(args.archive, args.name, key, table=args.table, verify=not args.no_verify)
        elif args.cmd == "unpack":
            key = resolve_key(args.key, args.key_file)
            ok = cmd_unpack(
                args.archive,
                key,
                outdir=args.outdir,
                names=args.names,
                table=args.table,
                jobs=args.jobs,
                quiet=args.quiet,
            )
        elif args.cmd == "verify":
            key = resolve_key(args.key, args.key_file)
            ok = cmd_verify(args.archive, key, table=args.table)
        else:
            raise RuntimeError("Unknown command")
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except PreconditionError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except TableFormatError as e:
        print(f"Error: table is unreadable: {e}", file=sys.stderr)
        sys.exit(2)
    except (PaketError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
