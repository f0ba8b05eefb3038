"""Serve the bytes of an opened file.

``serve_content`` handles what a browser expects from a static file
response: a guessed ``Content-Type``, ``Last-Modified`` with conditional
requests, single byte ranges, and header-only ``HEAD`` replies.
"""

import mimetypes
from dataclasses import replace
from datetime import UTC, datetime
from email.utils import format_datetime, parsedate_to_datetime
from typing import BinaryIO

from perch.http.request import Request
from perch.http.response import Response

# Marker for a syntactically valid range that lies outside the file
_UNSATISFIABLE = (-1, -1)


def _parse_http_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed.tzinfo is not None else None


def _parse_range(value: str | None, size: int) -> tuple[int, int] | None:
    """Parse a single ``bytes=`` range into inclusive (start, end).

    Returns ``None`` for absent, malformed, or multi-part ranges (served
    as a full response) and ``_UNSATISFIABLE`` for ranges past the end.
    """
    if not value or not value.startswith("bytes="):
        return None
    spec = value[len("bytes=") :].strip()
    if "," in spec or "-" not in spec:
        return None
    first, _, last = spec.partition("-")
    first, last = first.strip(), last.strip()
    if not (first.isdigit() or first == "") or not (last.isdigit() or last == ""):
        return None

    if first == "":
        # Suffix range: the last N bytes
        if last == "":
            return None
        length = int(last)
        if length == 0 or size == 0:
            return _UNSATISFIABLE
        return max(size - length, 0), size - 1

    start = int(first)
    if start >= size:
        return _UNSATISFIABLE
    end = size - 1 if last == "" else min(int(last), size - 1)
    if end < start:
        return None
    return start, end


def serve_content(
    request: Request,
    name: str,
    modified: datetime,
    stream: BinaryIO,
    size: int,
) -> Response:
    """Build the response for *stream*, honoring conditional and range headers.

    Args:
        request: The request being answered.
        name: File name, used to guess the content type.
        modified: Aware modification time of the file.
        stream: Seekable binary reader positioned anywhere.
        size: Total size of the file in bytes.
    """
    content_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
    modified = modified.astimezone(UTC).replace(microsecond=0)
    last_modified = format_datetime(modified, usegmt=True)
    headers = request.headers

    unmodified_since = _parse_http_date(headers.get("if-unmodified-since"))
    if unmodified_since is not None and modified > unmodified_since:
        return Response(body=b"", status=412, content_type=None)

    if request.method in ("GET", "HEAD"):
        modified_since = _parse_http_date(headers.get("if-modified-since"))
        if modified_since is not None and modified <= modified_since:
            return Response(body=b"", status=304, content_type=None).with_header(
                "Last-Modified", last_modified
            )

    response = (
        Response(body=b"", content_type=content_type)
        .with_header("Last-Modified", last_modified)
        .with_header("Accept-Ranges", "bytes")
    )

    byte_range = _parse_range(headers.get("range"), size)
    if byte_range == _UNSATISFIABLE:
        return (
            response.with_status(416)
            .with_content_type(None)
            .with_header("Content-Range", f"bytes */{size}")
        )

    if byte_range is None:
        start, length, status = 0, size, 200
    else:
        start, end = byte_range
        length, status = end - start + 1, 206
        response = response.with_header("Content-Range", f"bytes {start}-{end}/{size}")

    response = response.with_status(status).with_header("Content-Length", str(length))
    if request.method == "HEAD":
        return response

    stream.seek(start)
    return replace(response, body=stream.read(length))
