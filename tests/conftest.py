"""Shared fixtures: asset trees on disk and a hasher that counts its work."""

import errno
import hashlib
from typing import BinaryIO

import pytest

from perch.filesystem import OpenedFile, OSFilesystem
from perch.hashing import HexHasher


def md5_8(data: bytes) -> str:
    """Digest ``HexHasher()`` produces for *data*."""
    return hashlib.md5(data).hexdigest()[:8]


class CountingHasher:
    """HexHasher wrapper recording how many times content was hashed."""

    def __init__(self) -> None:
        self.inner = HexHasher()
        self.calls = 0

    def hash(self, stream: BinaryIO) -> str:
        self.calls += 1
        return self.inner.hash(stream)

    def is_hash(self, value: str) -> bool:
        return self.inner.is_hash(value)


class DeniedFilesystem(OSFilesystem):
    """Disk access that refuses everything under one directory."""

    def __init__(self, denied: str) -> None:
        self.denied = denied

    def open(self, directory: str, path: str) -> OpenedFile:
        if directory == self.denied:
            raise PermissionError(errno.EACCES, "Permission denied", path)
        return super().open(directory, path)


CSS = b"body { color: red; }"
JS = b"console.log('hello');"
README = b"read me"
DOCS_INDEX = b"<h1>Docs</h1>"


@pytest.fixture
def static_dir(tmp_path):
    """Primary asset directory."""
    static = tmp_path / "static"
    static.mkdir()

    css = static / "css"
    css.mkdir()
    (css / "app.css").write_bytes(CSS)
    (static / "app.js").write_bytes(JS)
    (static / "README").write_bytes(README)
    (static / ".env").write_bytes(b"SECRET=1")

    docs = static / "docs"
    docs.mkdir()
    (docs / "index.html").write_bytes(DOCS_INDEX)

    (static / "empty").mkdir()
    return static


@pytest.fixture
def alt_dir(tmp_path):
    """Alternate directory searched before the primary one."""
    alt = tmp_path / "alt"
    alt.mkdir()
    (alt / "only-alt.txt").write_bytes(b"from alt")
    (alt / "app.js").write_bytes(b"alt wins")
    return alt


@pytest.fixture
def hasher():
    return CountingHasher()
