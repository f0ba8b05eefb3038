"""Shared type aliases used across perch modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Error handler: receives (request, error?) and returns a Response, sync or async
ErrorHandler: TypeAlias = Callable[..., Any]
