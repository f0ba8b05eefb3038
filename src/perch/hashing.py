"""Content hashing capability.

A hasher turns a readable byte stream into a digest string and can tell
whether an arbitrary filename segment looks like one of its digests.
The resolver calls nothing else, so any object with these two methods
can be injected::

    class Fixed:
        def hash(self, stream: BinaryIO) -> str:
            return "v1"

        def is_hash(self, value: str) -> bool:
            return value == "v1"
"""

import hashlib
import string
from typing import BinaryIO, Protocol, runtime_checkable

_HEX_DIGITS = frozenset(string.hexdigits.lower())
_CHUNK_SIZE = 64 * 1024


@runtime_checkable
class Hasher(Protocol):
    """Protocol for digest producers used in hashed asset paths."""

    def hash(self, stream: BinaryIO) -> str: ...
    def is_hash(self, value: str) -> bool: ...


class HexHasher:
    """Truncated lowercase hex digest from a ``hashlib`` algorithm.

    Args:
        algorithm: Any name accepted by ``hashlib.new``.
        length: Number of hex characters kept in the digest. ``0`` keeps
            the full digest.

    Usage::

        hasher = HexHasher()  # md5, 8 chars
        hasher.hash(io.BytesIO(b"body { color: red; }"))
    """

    __slots__ = ("_algorithm", "_length")

    def __init__(self, algorithm: str = "md5", length: int = 8) -> None:
        digest_size = hashlib.new(algorithm).digest_size * 2
        if length < 0 or length > digest_size:
            msg = f"length must be between 0 and {digest_size} for {algorithm!r}, got {length}"
            raise ValueError(msg)
        self._algorithm = algorithm
        self._length = length or digest_size

    @property
    def length(self) -> int:
        return self._length

    def hash(self, stream: BinaryIO) -> str:
        """Digest the remaining bytes of *stream*."""
        digest = hashlib.new(self._algorithm)
        while chunk := stream.read(_CHUNK_SIZE):
            digest.update(chunk)
        return digest.hexdigest()[: self._length]

    def is_hash(self, value: str) -> bool:
        """True if *value* has the digest length and only lowercase hex digits."""
        return len(value) == self._length and all(c in _HEX_DIGITS for c in value)

    def __repr__(self) -> str:
        return f"HexHasher(algorithm={self._algorithm!r}, length={self._length})"
