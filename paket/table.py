from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, asdict, fields
from types import MappingProxyType
from typing import Dict, Iterator, Tuple

from .constants import TABLE_FORMAT, TABLE_VERSION
from .errors import EntryNotFoundError, EmptyIndexError, TableFormatError


@dataclass(frozen=True)
class Descriptor:
    """Placement and integrity record for one segment of the blob.

    ``end_offset`` is informational only; reads use ``start_offset`` and
    ``encrypted_length``.
    """

    start_offset: int
    end_offset: int
    original_length: int
    encrypted_length: int
    hash_original: str
    hash_encrypted: str

    def __post_init__(self):
        for name in ("start_offset", "end_offset", "original_length", "encrypted_length"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise TableFormatError(f"{name} must be a non-negative integer, got {value!r}")
        for name in ("hash_original", "hash_encrypted"):
            if not isinstance(getattr(self, name), str):
                raise TableFormatError(f"{name} must be a hex string")

    @classmethod
    def from_dict(cls, obj: Dict) -> "Descriptor":
        if not isinstance(obj, dict):
            raise TableFormatError("descriptor must be an object")
        names = [f.name for f in fields(cls)]
        missing = [n for n in names if n not in obj]
        if missing:
            raise TableFormatError(f"descriptor missing field(s): {', '.join(missing)}")
        return cls(**{n: obj[n] for n in names})


class Table(Mapping):
    """Read-only mapping of logical name to :class:`Descriptor`."""

    def __init__(self, entries: Mapping[str, Descriptor] | None = None):
        data: Dict[str, Descriptor] = {}
        for name, desc in (entries or {}).items():
            if not isinstance(name, str):
                raise TableFormatError(f"entry name must be a string, got {name!r}")
            if not isinstance(desc, Descriptor):
                raise TableFormatError(f"entry {name!r} is not a Descriptor")
            data[name] = desc
        self._entries = MappingProxyType(data)

    def __getitem__(self, name: str) -> Descriptor:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Table({len(self)} entries)"

    def lookup(self, name: str) -> Descriptor:
        try:
            return self._entries[name]
        except KeyError:
            raise EntryNotFoundError(f"file not found in table: {name}") from None

    def totals(self) -> Tuple[int, int]:
        """Return (original_total, encrypted_total) across all entries."""
        if not self._entries:
            raise EmptyIndexError()
        original = 0
        encrypted = 0
        for desc in self._entries.values():
            original += desc.original_length
            encrypted += desc.encrypted_length
        return original, encrypted

    def to_dict(self) -> Dict:
        return {
            "format": TABLE_FORMAT,
            "version": TABLE_VERSION,
            "entries": {name: asdict(desc) for name, desc in sorted(self._entries.items())},
        }

    @classmethod
    def from_dict(cls, obj: Dict) -> "Table":
        if not isinstance(obj, dict):
            raise TableFormatError("table document must be an object")
        if obj.get("format") != TABLE_FORMAT:
            raise TableFormatError(f"not a paket table (format={obj.get('format')!r})")
        if obj.get("version") != TABLE_VERSION:
            raise TableFormatError(f"unsupported table version: {obj.get('version')!r}")
        entries = obj.get("entries")
        if not isinstance(entries, dict):
            raise TableFormatError("table 'entries' must be an object")
        return cls({name: Descriptor.from_dict(d) for name, d in entries.items()})


def dump_table(table: Table, path: str) -> None:
    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(table.to_dict(), f, indent=2, sort_keys=False)
        f.write("\n")
    os.replace(tmp, path)


def load_table(path: str) -> Table:
    with open(path, "r", encoding="utf-8") as f:
        try:
            obj = json.load(f)
        except json.JSONDecodeError as exc:
            raise TableFormatError(f"invalid table JSON in {path}: {exc}") from exc
    return Table.from_dict(obj)
