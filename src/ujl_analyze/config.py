"""Configuration models for the parser and the summary."""

from __future__ import annotations

from datetime import tzinfo
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, field_validator

# 2001-09-09T01:46:40Z; smaller millisecond decorators cannot be a real epoch time
MIN_VALID_UNIX_TIME_MILLIS = 1_000_000_000_000


class ParserConfig(BaseModel):
    """Settings that influence how decorators are interpreted."""

    model_config = ConfigDict(frozen=True)

    timezone: str | None = None
    min_valid_unix_time_millis: int = Field(default=MIN_VALID_UNIX_TIME_MILLIS, gt=0)

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str | None) -> str | None:
        if value is not None:
            # raises ZoneInfoNotFoundError (a KeyError) for unknown names
            try:
                ZoneInfo(value)
            except KeyError as e:
                raise ValueError(f"Unknown timezone: {value}") from e
        return value

    def zone(self) -> tzinfo | None:
        """Zone for epoch-derived wall-clock stamps (None = local zone of the host)."""
        return ZoneInfo(self.timezone) if self.timezone else None


class SummaryThresholds(BaseModel):
    """Configurable thresholds used when summarizing a model."""

    long_pause_seconds: float = Field(default=1.0, gt=0.0)
