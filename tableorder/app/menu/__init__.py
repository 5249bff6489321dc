"""Menu lookups used while placing orders."""

from .validation import (
    LineRequest,
    ResolvedLine,
    resolve_lines,
    validate_line,
    validate_lines,
)

__all__ = [
    "LineRequest",
    "ResolvedLine",
    "resolve_lines",
    "validate_line",
    "validate_lines",
]
