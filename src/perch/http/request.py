"""Immutable HTTP request.

Only what the file server reads: method, path, raw query string and
headers. The resolver rewrites the path of an in-flight request by
deriving a new ``Request`` with ``with_path``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from perch.http.headers import Headers


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request."""

    method: str = "GET"
    path: str = "/"
    query_string: str = ""
    headers: Headers = field(default_factory=Headers)

    @property
    def url(self) -> str:
        """Request path plus query string."""
        if self.query_string:
            return f"{self.path}?{self.query_string}"
        return self.path

    def with_path(self, path: str) -> Request:
        """Return a copy of this request pointing at *path*."""
        return replace(self, path=path)

    @classmethod
    def from_asgi(cls, scope: dict[str, Any]) -> Request:
        """Create a Request from an ASGI HTTP scope."""
        return cls(
            method=scope["method"],
            path=scope["path"],
            query_string=scope.get("query_string", b"").decode("latin-1"),
            headers=Headers.from_raw(scope.get("headers", ())),
        )
