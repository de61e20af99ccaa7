"""Batch-wide record of which manifests were already rewritten."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from reqfix.core.workspace import normalize_path


@dataclass(frozen=True)
class FixedEntry:
    fixed_in: str  # target file of the unit that rewrote the path


class FixedFileCache:
    """Normalized path -> the unit that first fixed it.

    A path is only ever added once; later units that touch it are reported
    as fixed through the original unit instead of rewriting it again.
    """

    def __init__(self, entries: dict[str, FixedEntry] | None = None):
        self._entries: dict[str, FixedEntry] = dict(entries or {})

    def __contains__(self, path: str) -> bool:
        return normalize_path(path) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, path: str) -> FixedEntry | None:
        return self._entries.get(normalize_path(path))

    def mark_fixed(self, paths: Iterable[str], fixed_in: str) -> None:
        for path in paths:
            self._entries.setdefault(normalize_path(path), FixedEntry(fixed_in=fixed_in))

    def merge(self, other: FixedFileCache) -> FixedFileCache:
        """Return a cache holding both; entries already here win."""
        merged = FixedFileCache(other._entries)
        merged._entries.update(self._entries)
        return merged
