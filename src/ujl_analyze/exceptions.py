"""Exceptions raised while reading unified JVM GC logs.

Exception Hierarchy:
    UnifiedLogError (base)
    ├── LineRejectedError
    ├── UnknownGcTypeError
    └── UnsupportedLogFormatError

All of them are also ``ValueError`` subclasses, so a caller that only cares
about "this input could not be parsed" can keep catching ``ValueError``.
"""

from __future__ import annotations

from typing import Literal, TypeAlias

RejectReason: TypeAlias = Literal["no-match", "no-time"]


class UnifiedLogError(Exception):
    """Base exception for all ujl-analyze errors."""


class LineRejectedError(UnifiedLogError, ValueError):
    """Raised when a log line cannot be turned into an event.

    Attributes:
        reason: ``"no-match"`` if the decorator skeleton was not found,
            ``"no-time"`` if neither a wall-clock nor an uptime stamp could be derived.
        line: The offending line.
    """

    def __init__(self, reason: RejectReason, line: str) -> None:
        self.reason = reason
        self.line = line
        super().__init__(f"Failed to parse line ({reason}): {line}")


class UnknownGcTypeError(UnifiedLogError, ValueError):
    """Raised when a type label is not known to the type classifier."""

    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(f"Unknown gc type: '{label}'")


class UnsupportedLogFormatError(UnifiedLogError, ValueError):
    """Raised when an input produced no usable gc event at all."""
