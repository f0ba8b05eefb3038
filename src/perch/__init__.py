"""Perch — static files behind content-hashed URLs.

Serves a directory over ASGI and redirects every asset request to a URL
carrying a digest of the file's bytes, so responses can be cached
forever and still change the moment the file does.

Basic usage::

    from perch import FileServer, HexHasher

    assets = FileServer("./static", hasher=HexHasher())

    # ASGI app: GET /app.css -> 302 /app.1a2b3c4d.css
    assets.hashed_path("/app.css")  # "/app.1a2b3c4d.css"

Template links (``pip install perch[templates]``)::

    from perch.templating import register
    register(kida_env, assets)
"""

# Declare free-threading support (PEP 703)
_Py_mod_gil = 0

__version__ = "0.1.0.dev0"
__all__ = [
    "ConfigurationError",
    "FileResolver",
    "FileServer",
    "Filesystem",
    "Forbidden",
    "HTTPError",
    "HashCache",
    "HashLookup",
    "Hasher",
    "HexHasher",
    "InternalServerError",
    "LookupStatus",
    "NotFound",
    "OSFilesystem",
    "PerchError",
    "Request",
    "Response",
    "ServerConfig",
    "canonical_path",
    "hashed_path",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name == "FileServer":
        from perch.fileserver import FileServer

        return FileServer

    if name == "ServerConfig":
        from perch.config import ServerConfig

        return ServerConfig

    if name in ("Hasher", "HexHasher"):
        from perch import hashing as _hashing

        return getattr(_hashing, name)

    if name in ("HashCache", "HashLookup", "LookupStatus"):
        from perch import cache as _cache

        return getattr(_cache, name)

    if name in ("FileResolver", "Filesystem", "OSFilesystem"):
        from perch import filesystem as _fs

        return getattr(_fs, name)

    if name in ("canonical_path", "hashed_path"):
        from perch import paths as _paths

        return getattr(_paths, name)

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name == "Response":
        from perch.http.response import Response

        return Response

    if name in (
        "ConfigurationError",
        "Forbidden",
        "HTTPError",
        "InternalServerError",
        "NotFound",
        "PerchError",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
