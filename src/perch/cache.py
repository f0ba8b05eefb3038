"""Memoized content digests keyed by canonical path.

The cache belongs to one ``FileServer`` and lives as long as it does.
Entries are never evicted or refreshed: a file edited after its first
lookup keeps its old digest until the server is recreated.

Lookups report their outcome as a ``HashLookup`` value rather than
raising, because two of the outcomes are not failures at all:

- ``CONTINUE``: the canonical file could not be opened. The request may
  still name a literal file, so the caller carries on unhashed.
- ``NOT_REGULAR``: the path is a directory (or similar). The caller
  serves it the ordinary way.

Free-threading safety:
    The digest table is guarded by a ``ReadWriteLock``. Two threads
    missing on the same path both compute the digest; the second insert
    overwrites the first with an equal value.
"""

from __future__ import annotations

import glob
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath

from perch._internal.rwlock import ReadWriteLock
from perch.errors import NotFound
from perch.filesystem import FileResolver
from perch.hashing import Hasher
from perch.paths import canonical_path, digest_of

logger = logging.getLogger("perch.cache")


class LookupStatus(Enum):
    FOUND = "found"
    CONTINUE = "continue"
    NOT_REGULAR = "not_regular"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class HashLookup:
    """Outcome of a digest lookup.

    ``digest`` is set for ``FOUND``; ``error`` holds the underlying
    exception for ``CONTINUE`` and ``FAILED``.
    """

    status: LookupStatus
    digest: str = ""
    error: Exception | None = None

    @property
    def found(self) -> bool:
        return self.status is LookupStatus.FOUND

    @property
    def continuable(self) -> bool:
        return self.status is LookupStatus.CONTINUE


class HashCache:
    """Compute-once digest table for the files behind a ``FileResolver``."""

    __slots__ = ("_filenames", "_hasher", "_hashes", "_lock", "_resolver")

    def __init__(
        self,
        hasher: Hasher,
        resolver: FileResolver,
        *,
        filenames: Iterable[str] | None = None,
    ) -> None:
        self._hasher = hasher
        self._resolver = resolver
        self._filenames = tuple(filenames) if filenames is not None else None
        self._hashes: dict[str, str] = {}
        self._lock = ReadWriteLock()

    @property
    def hasher(self) -> Hasher:
        return self._hasher

    # -- Table access --

    def get(self, path: str) -> str | None:
        with self._lock.read():
            return self._hashes.get(path)

    def _store(self, path: str, digest: str) -> None:
        with self._lock.write():
            self._hashes[path] = digest
        logger.debug("cached digest %r for %s", digest, path)

    def __contains__(self, path: object) -> bool:
        with self._lock.read():
            return path in self._hashes

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._hashes)

    def clear(self) -> None:
        with self._lock.write():
            self._hashes.clear()

    # -- Lookups --

    def lookup_by_content(self, path: str) -> HashLookup:
        """Digest of the file at canonical *path*, hashing it on first use."""
        cached = self.get(path)
        if cached is not None:
            return HashLookup(LookupStatus.FOUND, cached)

        try:
            opened = self._resolver.open(path)
        except OSError as exc:
            return HashLookup(LookupStatus.CONTINUE, error=exc)

        with opened:
            if not opened.is_regular or opened.stream is None:
                return HashLookup(LookupStatus.NOT_REGULAR)
            try:
                digest = self._hasher.hash(opened.stream)
            except OSError as exc:
                logger.error("hashing %s failed: %s", opened.path, exc)
                return HashLookup(LookupStatus.FAILED, error=exc)

        self._store(path, digest)
        return HashLookup(LookupStatus.FOUND, digest)

    def lookup_by_filename(self, path: str) -> HashLookup:
        """Recover the digest of canonical *path* from hashed files on disk.

        Used when the canonical file cannot be opened but a hashed copy
        (``app.1a2b3c4d.css`` for ``app.css``) exists. Candidates come
        from the configured filename list when there is one, otherwise
        from globbing the alternate and primary directories. The first
        candidate whose canonical form is *path* and whose digest
        segment is a valid digest wins.
        """
        cached = self.get(path)
        if cached is not None:
            return HashLookup(LookupStatus.FOUND, cached)

        for candidate in self._candidates(path):
            if canonical_path(candidate, self._hasher.is_hash) != path:
                continue
            digest = digest_of(candidate, self._hasher.is_hash)
            if digest:
                self._store(path, digest)
                return HashLookup(LookupStatus.FOUND, digest)

        return HashLookup(LookupStatus.FAILED, error=NotFound(f"No hashed file for {path}"))

    def _candidates(self, path: str) -> list[str]:
        stem, ext = _split_extension(path)
        if self._filenames is None:
            pattern = glob.escape(stem.lstrip("/")) + ".*" + glob.escape(ext)
            return self._resolver.glob(pattern)

        filenames = [os.path.normpath(filename) for filename in self._filenames]
        matches: list[str] = []
        for directory in self._resolver.search_order:
            directory = os.path.normpath(directory)
            prefix = os.path.normpath(os.path.join(directory, stem.lstrip("/")))
            for filename in filenames:
                if filename.startswith(prefix):
                    relative = PurePath(filename).relative_to(directory).as_posix()
                    matches.append("/" + relative)
        return matches


def _split_extension(path: str) -> tuple[str, str]:
    """Split off the extension the way hashed paths place their digest."""
    name_start = path.rfind("/") + 1
    i = path.rfind(".", name_start)
    if i > name_start:
        return path[:i], path[i:]
    return path, ""
