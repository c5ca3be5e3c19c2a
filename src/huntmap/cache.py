"""Caller-owned cache for indexes built from world files."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generic, Hashable, TypeVar

LOGGER = logging.getLogger("huntmap.cache")

T = TypeVar("T")


def _sha256_path(path: Path) -> str:
    """Return the SHA-256 checksum for a file."""
    hasher = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


@dataclass(frozen=True)
class SourceFingerprint:
    """File metadata used to decide whether a cached index is stale."""

    path: str
    size: int
    mtime_ns: int
    sha256: str | None = None

    @classmethod
    def from_path(cls, path: Path, *, compute_sha256: bool = False) -> "SourceFingerprint":
        resolved = Path(path).resolve()
        stat = resolved.stat()
        digest = _sha256_path(resolved) if compute_sha256 else None
        return cls(
            path=str(resolved),
            size=stat.st_size,
            mtime_ns=stat.st_mtime_ns,
            sha256=digest,
        )

    def matches(self, other: "SourceFingerprint", *, validate_hashes: bool) -> bool:
        if (self.path, self.size, self.mtime_ns) != (other.path, other.size, other.mtime_ns):
            return False
        if validate_hashes:
            return self.sha256 is not None and self.sha256 == other.sha256
        return True


@dataclass(frozen=True)
class _Entry(Generic[T]):
    fingerprint: SourceFingerprint
    value: T


class IndexCache(Generic[T]):
    """Cache built indexes per source file and build parameters.

    Entries are revalidated against the source fingerprint on every access and
    rebuilt when the file changed. Nothing is shared between instances.

    This is a library API for long-lived callers that reload the same world,
    passed in through ``load_world(..., cache=...)``. The CLI runs one command
    per process and never builds one.
    """

    def __init__(self, *, validate_hashes: bool = False) -> None:
        self.validate_hashes = validate_hashes
        self._entries: dict[tuple[str, Hashable], _Entry[T]] = {}
        self.hits = 0
        self.misses = 0

    def _key(self, path: Path, params: Hashable) -> tuple[str, Hashable]:
        return (str(Path(path).resolve()), params)

    def get_or_build(self, path: Path, params: Hashable, builder: Callable[[], T]) -> T:
        """Return the cached value for ``path``/``params`` or build and store it."""
        key = self._key(path, params)
        current = SourceFingerprint.from_path(path, compute_sha256=self.validate_hashes)
        entry = self._entries.get(key)
        if entry is not None and current.matches(
            entry.fingerprint, validate_hashes=self.validate_hashes
        ):
            self.hits += 1
            LOGGER.debug("Index cache hit for %s.", key[0])
            return entry.value
        self.misses += 1
        value = builder()
        self._entries[key] = _Entry(current, value)
        return value

    def invalidate(self, path: Path) -> int:
        """Drop every entry built from ``path`` and return how many were removed."""
        resolved = str(Path(path).resolve())
        stale = [key for key in self._entries if key[0] == resolved]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, Any]:
        return {"entries": len(self._entries), "hits": self.hits, "misses": self.misses}

    def __len__(self) -> int:
        return len(self._entries)
