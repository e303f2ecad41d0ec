from __future__ import annotations

import os
from typing import BinaryIO, Dict, Optional

from .crypto import encrypt, validate_key
from .errors import DuplicateEntryError, PaketError
from .hashutil import sha256_hex
from .pathutil import norm_name
from .table import Descriptor, Table, dump_table


class PaketWriter:
    """Build a container blob and the table that describes it.

    Segments are appended in the order entries are added. Each one is
    ``encrypt(key, data)`` and gets a descriptor with its offsets, lengths
    and SHA-256 digests of both the plaintext and the stored segment.
    """

    def __init__(self, path: str, key: bytes, *, table_path: Optional[str] = None):
        validate_key(key)
        self.path = os.fspath(path)
        self.table_path = table_path
        self.key = bytes(key)
        self.f: Optional[BinaryIO] = None
        self.offset = 0
        self.entries: Dict[str, Descriptor] = {}
        self.table: Optional[Table] = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None and self.table is None:
            self._abort()
        else:
            self.close()

    def open(self):
        if self.f is not None:
            return
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        self.f = open(self.path, "wb")
        self.offset = 0

    def close(self):
        if self.f is not None:
            self.f.close()
            self.f = None

    def _abort(self):
        self.close()
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass

    def add_bytes(self, name: str, data: bytes) -> Descriptor:
        if self.f is None:
            raise PaketError("writer not open")
        if self.table is not None:
            raise PaketError("writer already finalized")
        name = norm_name(name)
        if name in self.entries:
            raise DuplicateEntryError(f"duplicate entry name: {name}")
        segment = encrypt(self.key, data)
        start = self.offset
        self.f.write(segment)
        self.offset += len(segment)
        desc = Descriptor(
            start_offset=start,
            end_offset=self.offset,
            original_length=len(data),
            encrypted_length=len(segment),
            hash_original=sha256_hex(data),
            hash_encrypted=sha256_hex(segment),
        )
        self.entries[name] = desc
        return desc

    def add_file(self, name: str, src_path: str) -> Descriptor:
        # whole-file reads; entries are materialized in memory on read as well
        with open(src_path, "rb") as rf:
            data = rf.read()
        return self.add_bytes(name, data)

    def finalize(self) -> Table:
        """Flush the blob, build the table and write it if ``table_path`` was given."""
        if self.f is None:
            raise PaketError("writer not open")
        if self.table is not None:
            return self.table
        self.f.flush()
        os.fsync(self.f.fileno())
        table = Table(self.entries)
        if self.table_path:
            dump_table(table, self.table_path)
        self.table = table
        return table
