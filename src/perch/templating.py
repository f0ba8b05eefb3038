"""Kida template helpers for hashed asset URLs.

Binds a ``FileServer`` to a kida ``Environment`` so templates can link
to the current hashed URL of an asset::

    from kida import Environment

    env = Environment()
    register(env, assets)

    # {{ hashed_url("/css/app.css") }}  ->  /static/css/app.1a2b3c4d.css
    # {{ "/js/app.js" | hashed }}       ->  /static/js/app.5e6f7a8b.js

Requires ``pip install perch[templates]``.
"""

from collections.abc import Callable

from kida import Environment

from perch.fileserver import FileServer


def hashed_url_function(server: FileServer) -> Callable[[str], str]:
    """Return a one-argument callable producing hashed URLs from *server*."""

    def hashed_url(path: str) -> str:
        return server.hashed_path(path)

    return hashed_url


def register(
    env: Environment,
    server: FileServer,
    *,
    global_name: str = "hashed_url",
    filter_name: str = "hashed",
) -> Environment:
    """Add the ``hashed_url`` global and ``hashed`` filter to *env*."""
    hashed_url = hashed_url_function(server)
    env.add_global(global_name, hashed_url)
    env.update_filters({filter_name: hashed_url})
    return env
