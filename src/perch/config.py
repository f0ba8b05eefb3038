"""File server configuration.

ServerConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass
from pathlib import Path

from perch._internal.types import ErrorHandler


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """File server configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = ServerConfig(root="/assets", redirect_trailing_slash=True)
    """

    # URL layout
    root: str = ""  # Prefix stripped before filesystem lookup (e.g. "/static")
    index_page: str = "index.html"  # "" disables directory index handling
    redirect_trailing_slash: bool = False
    redirect_status: int = 302

    # Hashing
    no_hash_query_strings: bool = False  # Requests with a query string are never rewritten

    # Lookup
    alt_dir: str | Path | None = None  # Searched before the primary directory
    filenames: tuple[str, ...] | None = None  # Known on-disk files, replaces globbing

    # Caching headers
    cache_control: str | None = None
    hashed_cache_control: str | None = "public, max-age=31536000, immutable"

    # Error handlers; None selects the built-in status-only responder
    not_found_handler: ErrorHandler | None = None
    forbidden_handler: ErrorHandler | None = None
    internal_error_handler: ErrorHandler | None = None

    @property
    def url_root(self) -> str:
        """``root`` with a leading slash and no trailing slash ("/" becomes "")."""
        stripped = "/" + self.root.strip("/")
        return stripped if stripped != "/" else ""
