from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from typing import BinaryIO, List, Optional, Tuple

from .crypto import decrypt as _decrypt, validate_key
from .errors import (
    ContainerClosedError,
    EmptyContainerError,
    MissingContainerError,
    SegmentBoundsError,
    ShortReadError,
)
from .hashutil import digest_matches
from .table import Descriptor, Table


@dataclass
class ReadResult:
    data: bytes
    verified: bool = False

    def __iter__(self):
        # allows ``data, ok = paket.get_file(...)``
        yield self.data
        yield self.verified


def _read_exact(f: BinaryIO, desc: Descriptor) -> bytes:
    f.seek(desc.start_offset, os.SEEK_SET)
    content = f.read(desc.encrypted_length)
    if len(content) != desc.encrypted_length:
        raise ShortReadError(
            f"short read at offset {desc.start_offset}: wanted {desc.encrypted_length} bytes, got {len(content)}"
        )
    return content


class Paket:
    """Read access to a container blob described by an external :class:`Table`.

    Two read paths are offered:

    - :meth:`get_file` goes through the one handle opened at construction. The
      handle has a single cursor, so calls are serialized by an instance lock
      held across seek, read and decode. Optionally verifies digests.
    - :meth:`get_parallel` opens its own handle for the duration of the call
      and never takes the lock, so any number of calls can run at once. It
      never verifies digests.

    ``close()`` must only be called once all readers have returned.
    """

    def __init__(self, key: bytes, path: str, table: Table):
        validate_key(key)
        path = os.fspath(path)
        if not os.path.exists(path):
            raise MissingContainerError(f"container not found: {path}")
        if os.path.isdir(path):
            raise MissingContainerError(f"container path is a directory: {path}")
        self.path = path
        self.key = bytes(key)
        self.table = table if isinstance(table, Table) else Table(table)
        self._lock = threading.Lock()
        self._encrypted_total: Optional[int] = None
        self.f: Optional[BinaryIO] = open(path, "rb")
        try:
            size = os.fstat(self.f.fileno()).st_size
        except OSError:
            self.close()
            raise
        if size <= 0:
            self.close()
            raise EmptyContainerError(f"there is no data in the container: {path}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<Paket {self.path!r} {len(self.table)} entries {state}>"

    @property
    def closed(self) -> bool:
        return self.f is None

    def _ensure_open(self) -> None:
        if self.f is None:
            raise ContainerClosedError(f"container is closed: {self.path}")

    def names(self) -> List[str]:
        return sorted(self.table)

    def get_file(self, name: str, decrypt: bool = True, verify: bool = True) -> ReadResult:
        """Return the content of ``name`` through the shared handle.

        With ``decrypt`` the segment is decoded; otherwise the raw
        ``nonce || ciphertext`` bytes are returned.

        With ``verify`` the SHA-256 of the returned bytes is compared against
        the table: ``hash_original`` for decoded data, ``hash_encrypted`` for
        raw segments. A mismatch is reported as ``verified=False``, not raised.
        ``verified`` is always False when ``verify`` is off.
        """
        with self._lock:
            self._ensure_open()
            desc = self.table.lookup(name)
            content = _read_exact(self.f, desc)
            if decrypt:
                content = _decrypt(self.key, content)
        if not verify:
            return ReadResult(content, False)
        expected = desc.hash_original if decrypt else desc.hash_encrypted
        return ReadResult(content, digest_matches(content, expected))

    def get_parallel(self, name: str) -> bytes:
        """Return decoded content of ``name`` using a private file handle.

        Safe to call from many threads at once, including alongside
        :meth:`get_file`. No digest verification is done on this path.
        """
        self._ensure_open()
        desc = self.table.lookup(name)
        if self._encrypted_total is None:
            self._encrypted_total = self.table.totals()[1]
        if desc.encrypted_length > self._encrypted_total:
            raise SegmentBoundsError(f"{name}: segment length exceeds total encrypted size of the table")
        with open(self.path, "rb") as f:
            size = os.fstat(f.fileno()).st_size
            end = desc.start_offset + desc.encrypted_length
            if end > size:
                raise SegmentBoundsError(f"{name}: segment ends at {end}, past end of container ({size} bytes)")
            content = _read_exact(f, desc)
        return _decrypt(self.key, content)

    def sizes(self) -> Tuple[int, int]:
        """Return (original_total, encrypted_total) summed over the table.

        Values come straight from the table; the blob is not consulted.
        Raises EmptyIndexError (with ``totals == (0, 0)``) for an empty table.
        """
        return self.table.totals()

    def verify_all(self) -> List[str]:
        """Decode and verify every entry; return the names that failed."""
        failed: List[str] = []
        for name in self.names():
            result = self.get_file(name, decrypt=True, verify=True)
            if not result.verified:
                failed.append(name)
        return failed

    def close(self) -> None:
        """Close the shared handle. Errors from the underlying close propagate."""
        f, self.f = self.f, None
        if f is not None:
            f.close()

