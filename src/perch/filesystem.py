"""Filesystem access and directory fallback.

``Filesystem`` is the narrow capability the resolver and the hash cache
read through. ``OSFilesystem`` serves real directories; tests and
embedders may inject anything with the same two methods.

``FileResolver`` owns the primary/alternate directory pair: the
alternate directory is searched first and only a missing file sends the
lookup on to the primary directory.
"""

from __future__ import annotations

import errno
import logging
import os
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from stat import S_ISDIR, S_ISREG
from types import TracebackType
from typing import BinaryIO, Protocol

logger = logging.getLogger("perch.filesystem")

# Errors that mean "not here", as opposed to "not allowed" or "broken"
MISSING_ERRORS: tuple[type[OSError], ...] = (FileNotFoundError, NotADirectoryError)


@dataclass(slots=True)
class OpenedFile:
    """A filesystem entry opened for serving.

    Regular files carry an open binary ``stream``; directories and other
    non-regular entries carry ``None``. Use as a context manager so the
    stream is closed on every exit path.
    """

    name: str
    path: str
    stat: os.stat_result
    stream: BinaryIO | None = None

    @property
    def is_dir(self) -> bool:
        return S_ISDIR(self.stat.st_mode)

    @property
    def is_regular(self) -> bool:
        return S_ISREG(self.stat.st_mode)

    @property
    def size(self) -> int:
        return self.stat.st_size

    @property
    def modified(self) -> datetime:
        """Modification time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.stat.st_mtime, tz=UTC)

    def close(self) -> None:
        if self.stream is not None:
            self.stream.close()

    def __enter__(self) -> OpenedFile:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class Filesystem(Protocol):
    """Protocol for the storage the file server reads from.

    ``open`` resolves a slash-separated *path* below *directory* and
    raises ``OSError`` subclasses (``FileNotFoundError``,
    ``PermissionError``, ...) on failure. ``glob`` returns rooted,
    slash-separated paths of the entries below *directory* that match
    *pattern*.
    """

    def open(self, directory: str, path: str) -> OpenedFile: ...
    def glob(self, directory: str, pattern: str) -> list[str]: ...


class OSFilesystem:
    """Local disk access confined to the configured directories.

    Security: resolves symlinks and verifies the final path is within
    the directory; anything outside raises ``PermissionError``.
    """

    __slots__ = ()

    def open(self, directory: str, path: str) -> OpenedFile:
        if "\x00" in path:
            raise FileNotFoundError(errno.ENOENT, "Invalid path", path)

        root = Path(directory).resolve()
        relative = path.lstrip("/")
        target = (root / relative).resolve() if relative else root
        if not target.is_relative_to(root):
            raise PermissionError(errno.EACCES, "Path escapes the served directory", path)

        st = os.stat(target)
        stream = open(target, "rb") if S_ISREG(st.st_mode) else None  # noqa: SIM115
        return OpenedFile(name=target.name, path=str(target), stat=st, stream=stream)

    def glob(self, directory: str, pattern: str) -> list[str]:
        root = Path(directory)
        if not root.is_dir():
            return []
        confined = root.resolve()
        return sorted(
            "/" + match.relative_to(root).as_posix()
            for match in root.glob(pattern.lstrip("/"))
            if match.resolve().is_relative_to(confined)
        )


class FileResolver:
    """Open request paths against a primary and an optional alternate directory.

    Only a not-found condition in the alternate directory falls back to
    the primary directory; permission and I/O errors propagate.
    """

    __slots__ = ("_alt_dir", "_directory", "_filesystem")

    def __init__(
        self,
        directory: str | Path,
        alt_dir: str | Path | None = None,
        *,
        filesystem: Filesystem | None = None,
    ) -> None:
        self._directory = os.fspath(directory)
        self._alt_dir = os.fspath(alt_dir) if alt_dir else None
        self._filesystem = filesystem or OSFilesystem()

    @property
    def search_order(self) -> tuple[str, ...]:
        """Directories in the order they are searched."""
        if self._alt_dir is None:
            return (self._directory,)
        return (self._alt_dir, self._directory)

    def open(self, path: str) -> OpenedFile:
        """Open *path*, preferring the alternate directory when configured."""
        if self._alt_dir is None:
            return self._filesystem.open(self._directory, path)
        try:
            return self._filesystem.open(self._alt_dir, path)
        except MISSING_ERRORS:
            logger.debug("%s not in %s, trying %s", path, self._alt_dir, self._directory)
        return self._filesystem.open(self._directory, path)

    def glob(self, pattern: str) -> list[str]:
        """Glob *pattern* in every directory, alternate matches first."""
        matches: list[str] = []
        for directory in self.search_order:
            matches.extend(self._filesystem.glob(directory, pattern))
        return matches
