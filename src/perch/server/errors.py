"""Error handling pipeline for file server requests.

Filesystem failures are classified once into one of three HTTP errors
(not found, forbidden, internal) and rendered by the matching handler
from ``ServerConfig``, or by a minimal status-only default.
"""

import inspect
import logging
from collections.abc import Callable
from http import HTTPStatus
from typing import Any

from perch.config import ServerConfig
from perch.errors import Forbidden, HTTPError, InternalServerError, NotFound
from perch.filesystem import MISSING_ERRORS
from perch.http.request import Request
from perch.http.response import Response

logger = logging.getLogger("perch.server")


def classify(exc: BaseException | None) -> HTTPError:
    """Map a filesystem or lookup failure to exactly one HTTP error."""
    if isinstance(exc, HTTPError):
        return exc
    if isinstance(exc, MISSING_ERRORS):
        return NotFound()
    if isinstance(exc, PermissionError):
        return Forbidden()
    return InternalServerError()


def default_error_response(exc: HTTPError) -> Response:
    """Plain-text body carrying the status line, nothing else."""
    try:
        phrase = HTTPStatus(exc.status).phrase
    except ValueError:
        phrase = "Error"
    return Response(body=f"{exc.status} {phrase}", status=exc.status)


def _select_handler(exc: HTTPError, config: ServerConfig) -> Callable[..., Any] | None:
    if exc.status == 404:
        return config.not_found_handler
    if exc.status == 403:
        return config.forbidden_handler
    return config.internal_error_handler


async def call_error_handler(
    handler: Callable[..., Any],
    request: Request,
    exc: HTTPError,
) -> Response:
    """Invoke a user error handler with introspected arguments.

    Error handlers may accept zero, one (request), or two (request, exc) args.
    Supports both sync and async error handlers. A ``str`` or ``bytes``
    result becomes the body of a response carrying the error status.
    """
    sig = inspect.signature(handler)
    params = list(sig.parameters.values())

    if len(params) >= 2:
        result = handler(request, exc)
    elif len(params) == 1:
        result = handler(request)
    else:
        result = handler()

    if inspect.isawaitable(result):
        result = await result

    if isinstance(result, Response):
        return result
    if isinstance(result, (str, bytes)):
        return Response(body=result, status=exc.status)
    msg = f"Error handler {handler!r} returned {type(result).__name__}, expected Response, str or bytes"
    raise TypeError(msg)


async def handle_http_error(exc: HTTPError, request: Request, config: ServerConfig) -> Response:
    """Render *exc* with the configured handler or the default responder."""
    if exc.status == 403:
        logger.warning("403 %s %s", request.method, request.path)
    else:
        logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)

    handler = _select_handler(exc, config)
    if handler is None:
        return default_error_response(exc)
    try:
        return await call_error_handler(handler, request, exc)
    except Exception:
        logger.exception("error handler for %d failed on %s %s", exc.status, request.method, request.path)
        return default_error_response(exc)


async def handle_internal_error(exc: Exception, request: Request, config: ServerConfig) -> Response:
    """Handle unexpected exceptions as 500 errors."""
    logger.error("500 %s %s", request.method, request.path, exc_info=exc)
    return await handle_http_error(InternalServerError(), request, config)
