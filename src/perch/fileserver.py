"""Static file server with content-hashed URLs.

Every asset has a canonical path (``/css/app.css``) and a hashed path
carrying a digest of its bytes (``/css/app.1a2b3c4d.css``). Requests for
anything but the current hashed path are redirected to it, so hashed
URLs can be cached forever by browsers and proxies::

    from perch import FileServer, HexHasher, ServerConfig

    assets = FileServer(
        "./static",
        hasher=HexHasher(),
        config=ServerConfig(root="/static", redirect_trailing_slash=True),
    )

    assets.hashed_path("/css/app.css")  # "/static/css/app.1a2b3c4d.css"

``FileServer`` is an ASGI application; mount it under ``root`` in the
host server or router.
"""

import logging
import posixpath
from contextlib import ExitStack
from pathlib import Path

import anyio.to_thread

from perch import paths
from perch._internal.asgi import Receive, Scope, Send
from perch.cache import HashCache, LookupStatus
from perch.config import ServerConfig
from perch.errors import ConfigurationError, HTTPError, InternalServerError, NotFound
from perch.filesystem import FileResolver, Filesystem, OpenedFile
from perch.hashing import Hasher
from perch.http.request import Request
from perch.http.response import Response
from perch.server.content import serve_content
from perch.server.errors import classify, handle_http_error, handle_internal_error
from perch.server.sender import send_response

logger = logging.getLogger("perch.server")

_REDIRECT_CODES = frozenset({301, 302, 303, 307, 308})


def clean_path(path: str) -> str:
    """Resolve ``.``/``..`` segments and duplicate slashes in a rooted path."""
    cleaned = posixpath.normpath("/" + path.lstrip("/"))
    # POSIX keeps a leading "//"; URLs don't
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def resolve_location(base: str, location: str) -> str:
    """Make a relative redirect *location* absolute against request path *base*."""
    if location.startswith("/"):
        return location
    directory = base[: base.rfind("/") + 1]
    resolved = clean_path(directory + location)
    if location.endswith("/") and not resolved.endswith("/"):
        resolved += "/"
    return resolved


class FileServer:
    """Serve files from a directory, redirecting to content-hashed URLs.

    Args:
        directory: Primary directory files are served from.
        hasher: Digest producer. Without one, files are served by their
            literal names and no redirects to hashed paths happen.
        config: Server options; defaults to ``ServerConfig()``.
        filesystem: Storage backend; defaults to the local disk.
    """

    __slots__ = ("_cache", "_config", "_resolver", "_root")

    def __init__(
        self,
        directory: str | Path,
        *,
        hasher: Hasher | None = None,
        config: ServerConfig | None = None,
        filesystem: Filesystem | None = None,
    ) -> None:
        self._config = config or ServerConfig()
        _check_config(directory, self._config, check_dirs=filesystem is None)

        self._root = self._config.url_root
        self._resolver = FileResolver(directory, self._config.alt_dir, filesystem=filesystem)
        self._cache = (
            HashCache(hasher, self._resolver, filenames=self._config.filenames)
            if hasher is not None
            else None
        )

    @property
    def config(self) -> ServerConfig:
        return self._config

    @property
    def hasher(self) -> Hasher | None:
        return self._cache.hasher if self._cache is not None else None

    @property
    def cache(self) -> HashCache | None:
        """The digest cache, or ``None`` when no hasher is configured."""
        return self._cache

    @property
    def root(self) -> str:
        """Normalized URL prefix, ``""`` when serving from ``/``."""
        return self._root

    # ------------------------------------------------------------------
    # ASGI
    # ------------------------------------------------------------------

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        request = Request.from_asgi(scope)
        try:
            response = await anyio.to_thread.run_sync(self.resolve, request)
        except HTTPError as exc:
            response = await handle_http_error(exc, request, self._config)
        except Exception as exc:
            response = await handle_internal_error(exc, request, self._config)
        await send_response(response, send)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Acknowledge lifespan events; there is nothing to set up or tear down."""
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, request: Request) -> Response:
        """Answer *request* with a redirect or the file's content.

        Runs synchronously (the ASGI entry point calls it in a worker
        thread). Failures are raised as ``NotFound``, ``Forbidden`` or
        ``InternalServerError``.
        """
        cfg = self._config
        url_path = request.path
        if not url_path.startswith("/"):
            url_path = "/" + url_path
            request = request.with_path(url_path)

        path = clean_path(url_path)
        if self._root:
            if path != self._root and not path.startswith(self._root + "/"):
                raise NotFound(f"{url_path} is outside {self._root}")
            path = path[len(self._root) :] or "/"

        if cfg.index_page and url_path.endswith(cfg.index_page):
            return self._redirect(request, "./")

        hashed = False
        if self._cache is not None and not (cfg.no_hash_query_strings and request.query_string):
            canonical = paths.canonical_path(path, self._cache.hasher.is_hash)
            lookup = self._cache.lookup_by_content(canonical)
            if lookup.status is LookupStatus.FOUND:
                target = paths.hashed_path(canonical, lookup.digest)
                if target != path:
                    return self._redirect(request, self._root + target)
                if cfg.redirect_trailing_slash and url_path.endswith("/"):
                    return self._redirect(request, self._root + path)
                path = canonical
                request = request.with_path(self._root + canonical)
                hashed = bool(lookup.digest)
            elif lookup.status is LookupStatus.FAILED:
                raise self._fail(lookup.error)

        opened = self._open(path)
        with ExitStack() as stack:
            stack.enter_context(opened)

            if cfg.redirect_trailing_slash:
                url = request.path
                if opened.is_dir and not url.endswith("/"):
                    return self._redirect(request, url + "/")
                if not opened.is_dir and url.endswith("/"):
                    return self._redirect(request, "../" + posixpath.basename(url.rstrip("/")))

            if opened.is_dir and cfg.index_page:
                index = self._open_index(path)
                if index is not None:
                    opened = stack.enter_context(index)

            if opened.is_dir:
                raise NotFound(f"{request.path} is not a file")
            return self._serve(request, opened, hashed=hashed)

    def hashed_path(self, path: str) -> str:
        """Return the URL of *path* with its current digest, for links in pages.

        Hashes the canonical file when it exists; otherwise recovers the
        digest from a hashed copy on disk. Raises ``NotFound`` when
        neither is available.
        """
        path = clean_path(path)
        if self._cache is None:
            return self._root + path

        lookup = self._cache.lookup_by_content(path)
        if lookup.continuable:
            lookup = self._cache.lookup_by_filename(path)
        if lookup.status is LookupStatus.NOT_REGULAR:
            return self._root + path
        if lookup.status is not LookupStatus.FOUND:
            raise self._fail(lookup.error)
        return self._root + paths.hashed_path(path, lookup.digest)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _open(self, path: str) -> OpenedFile:
        try:
            return self._resolver.open(path)
        except OSError as exc:
            raise self._fail(exc) from exc

    def _open_index(self, directory: str) -> OpenedFile | None:
        index_path = directory.rstrip("/") + "/" + self._config.index_page
        try:
            return self._resolver.open(index_path)
        except OSError as exc:
            logger.debug("no index at %s: %s", index_path, exc)
            return None

    def _fail(self, exc: BaseException | None) -> HTTPError:
        error = classify(exc)
        if isinstance(error, InternalServerError) and exc is not error:
            logger.error("filesystem error: %s", exc, exc_info=exc)
        return error

    def _redirect(self, request: Request, location: str) -> Response:
        target = resolve_location(request.path, location)
        if request.query_string:
            target = f"{target}?{request.query_string}"
        logger.debug("redirect %s -> %s", request.path, target)
        return Response(status=self._config.redirect_status, content_type=None).with_header(
            "Location", target
        )

    def _serve(self, request: Request, opened: OpenedFile, *, hashed: bool) -> Response:
        if opened.stream is None:
            raise NotFound(f"{request.path} is not a file")
        response = serve_content(request, opened.name, opened.modified, opened.stream, opened.size)
        cache_control = self._config.hashed_cache_control if hashed else self._config.cache_control
        if cache_control:
            response = response.with_header("Cache-Control", cache_control)
        return response


def _check_config(directory: str | Path, config: ServerConfig, *, check_dirs: bool) -> None:
    if config.redirect_status not in _REDIRECT_CODES:
        msg = f"redirect_status must be one of {sorted(_REDIRECT_CODES)}, got {config.redirect_status}"
        raise ConfigurationError(msg)
    if "/" in config.index_page:
        msg = f"index_page must be a file name, got {config.index_page!r}"
        raise ConfigurationError(msg)
    if not check_dirs:
        return
    for label, value in (("directory", directory), ("alt_dir", config.alt_dir)):
        if value is not None and not Path(value).is_dir():
            msg = f"{label} {str(value)!r} is not a directory"
            raise ConfigurationError(msg)
