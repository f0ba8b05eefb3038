"""Conversion between canonical and hashed asset paths.

A hashed path carries a content digest as an extra dot-separated segment
in front of the last extension::

    /css/style.css      <->  /css/style.a1b2c3d4.css
    /README             <->  /README.a1b2c3d4
    /.env               <->  /.env.a1b2c3d4

Stripping the digest from a path produced by :func:`hashed_path` always
gives back the original canonical path.
"""

from collections.abc import Callable
from typing import TypeAlias

IsHash: TypeAlias = Callable[[str], bool]


def _split(path: str) -> tuple[str, str]:
    """Split *path* into directory (with trailing slash) and final segment."""
    i = path.rfind("/")
    return path[: i + 1], path[i + 1 :]


def _digest_index(parts: list[str]) -> int | None:
    """Position of the segment that may hold a digest, if any."""
    count = len(parts)
    if count == 1 or (count == 2 and parts[0] == ""):
        # "README" or ".env": nothing in front of the candidate
        return None
    if count > 2 and not (count == 3 and parts[0] == ""):
        return count - 2
    return count - 1


def hashed_path(path: str, digest: str) -> str:
    """Insert *digest* before the extension of the last path segment."""
    if not digest:
        return path
    directory, name = _split(path)
    i = name.rfind(".")
    if i > 0:
        return f"{directory}{name[:i]}.{digest}{name[i:]}"
    return f"{directory}{name}.{digest}"


def digest_of(path: str, is_hash: IsHash) -> str:
    """Return the digest segment embedded in *path*, or ``""``."""
    _, name = _split(path)
    parts = name.split(".")
    i = _digest_index(parts)
    if i is None or not is_hash(parts[i]):
        return ""
    return parts[i]


def canonical_path(path: str, is_hash: IsHash) -> str:
    """Strip the digest segment from *path*, if it carries one."""
    directory, name = _split(path)
    parts = name.split(".")
    i = _digest_index(parts)
    if i is None or not is_hash(parts[i]):
        return path
    return directory + ".".join(parts[:i] + parts[i + 1 :])
