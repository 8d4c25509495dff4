"""Diagnostics side channel.

Every anomaly found while reading a log (unparseable line, unknown type,
tail mismatch, orphan detail line, ...) is reported to a sink. Sinks never
influence control flow; they only record or log what happened.
"""

from __future__ import annotations

import logging
from collections import Counter
from enum import Enum
from typing import Protocol

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class DiagnosticKind(Enum):
    UNPARSEABLE_LINE = "unparseable line"
    NO_TIME = "no time"
    UNKNOWN_TYPE = "unknown type"
    NUMBER_FORMAT = "number format"
    TAIL_MISMATCH = "tail mismatch"
    UNEXPECTED_TAIL = "unexpected tail"
    MISSING_PARENT = "missing parent"
    UNMERGEABLE_PARENT = "unmergeable parent"
    UNEXPECTED_TAG = "unexpected tag"
    BAD_REGION_SIZE = "bad region size"


class ParseDiagnostic(BaseModel):
    """One anomaly, tied to the line that caused it."""

    model_config = ConfigDict(frozen=True)

    kind: DiagnosticKind
    line_number: int
    line: str
    message: str

    def __str__(self) -> str:
        return f'{self.message} on line number {self.line_number} (line="{self.line}")'


class DiagnosticsSink(Protocol):
    """Protocol for receivers of parse diagnostics."""

    def report(self, diagnostic: ParseDiagnostic) -> None:
        """Record a single diagnostic."""
        ...


class LoggingDiagnosticsSink:
    """Writes every diagnostic as a warning to the module logger."""

    def report(self, diagnostic: ParseDiagnostic) -> None:
        logger.warning("%s", diagnostic)


class CollectingDiagnosticsSink(LoggingDiagnosticsSink):
    """Keeps all diagnostics for later inspection (and still logs them)."""

    def __init__(self, log: bool = True) -> None:
        self.diagnostics: list[ParseDiagnostic] = []
        self._log = log

    def report(self, diagnostic: ParseDiagnostic) -> None:
        self.diagnostics.append(diagnostic)
        if self._log:
            super().report(diagnostic)

    def counts(self) -> Counter[DiagnosticKind]:
        return Counter(diagnostic.kind for diagnostic in self.diagnostics)

    def of_kind(self, kind: DiagnosticKind) -> list[ParseDiagnostic]:
        return [diagnostic for diagnostic in self.diagnostics if diagnostic.kind is kind]

    def __len__(self) -> int:
        return len(self.diagnostics)
