"""Decorator extraction and timestamp resolution for unified log lines.

A fully decorated line looks like this (every decorator before the level is
optional, see JEP 158)::

    [2023-01-01T00:00:14.206+0000][14.206s][1672531214206ms][14205ms][1000014205707082ns]
    [14205707082ns][6000][6008][info ][gc                      ] GC(0) Pause Young (Normal)
    (G1 Evacuation Pause) 4115M->103M(8192M) 28.115ms

(one line in the log). The decorators are independent of the collector; the
type label and the tail after it are not.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict

from ujl_analyze.config import ParserConfig
from ujl_analyze.exceptions import LineRejectedError
from ujl_analyze.units import parse_decimal

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# The type label alternatives, in order:
#   - serial/G1 full gc phases ("Phase 1: Mark live objects"), the only labels with a digit and ':'
#   - plain labels; [^0-9]+ would be simpler but G1 labels contain a "1"
#   - G1 labels ("Pause Young (Normal) (G1 Evacuation Pause)")
#   - ZGC stall labels with arbitrary thread names ("Allocation Stall (C2 CompilerThread0)")
DECORATORS_PATTERN: re.Pattern[str] = re.compile(
    r"^"
    r"(?:\[(?P<time>[-0-9T:.+Z]*)\])?"
    r"(?:\[(?P<uptime>[0-9.,]+)s *\])?"
    r"(?:\[(?P<time_millis>[0-9]+)ms *\])?"
    r"(?:\[(?P<uptime_millis>[0-9]+)ms *\])?"
    r"(?:\[(?P<time_nanos>[0-9]+)ns *\])?"
    r"(?:\[(?P<uptime_nanos>[0-9]+)ns *\])?"
    r"(?:\[(?P<pid>[0-9]+) *\])?"
    r"(?:\[(?P<tid>[0-9]+) *\])?"
    r"\[(?P<level>[^\]]+)\]"
    r"\[(?P<tags>[^\] ]+) *\]"
    r" "
    r"(?:GC\((?P<gc_number>[0-9]+)\) )?"
    r"(?P<type>Phase [0-9]: [a-zA-Z ]+|[-.a-zA-Z: ()]+|[a-zA-Z1 ()]+|[a-zA-Z ]+\(.+\))"
    r"(?: (?P<tail>[0-9].*)|$)"
)

_ISO_OFFSET_WITHOUT_COLON: re.Pattern[str] = re.compile(r"[+-]\d{4}$")


class Decorators(BaseModel):
    """Header fields of one line, as raw text."""

    model_config = ConfigDict(frozen=True)

    time: str | None = None
    uptime: str | None = None
    time_millis: str | None = None
    uptime_millis: str | None = None
    time_nanos: str | None = None
    uptime_nanos: str | None = None
    pid: int | None = None
    tid: int | None = None
    level: str
    tags: str
    gc_number: int | None = None
    type_label: str
    tail: str | None = None


class ResolvedTime(NamedTuple):
    datestamp: datetime | None
    uptime: float | None


def extract_decorators(line: str) -> Decorators:
    """Split a line into its decorators, type label and tail.

    Raises:
        LineRejectedError: with reason "no-match" if level, tags or type label are missing.
    """
    match = DECORATORS_PATTERN.match(line)
    if match is None:
        raise LineRejectedError("no-match", line)
    return Decorators(
        time=match.group("time"),
        uptime=match.group("uptime"),
        time_millis=match.group("time_millis"),
        uptime_millis=match.group("uptime_millis"),
        time_nanos=match.group("time_nanos"),
        uptime_nanos=match.group("uptime_nanos"),
        pid=int(pid) if (pid := match.group("pid")) else None,
        tid=int(tid) if (tid := match.group("tid")) else None,
        level=match.group("level").strip(),
        tags=match.group("tags"),
        gc_number=int(number) if (number := match.group("gc_number")) else None,
        type_label=match.group("type"),
        tail=match.group("tail"),
    )


def parse_wall_clock(text: str) -> datetime:
    """Parse an ISO-8601 'time' decorator like 2023-01-01T00:00:14.206+0000."""
    timestamp_str = text.replace("Z", "+00:00")
    if _ISO_OFFSET_WITHOUT_COLON.search(timestamp_str):
        timestamp_str = f"{timestamp_str[:-2]}:{timestamp_str[-2:]}"
    if "+" not in timestamp_str and "-" not in timestamp_str[-6:]:
        timestamp_str += "+00:00"
    return datetime.fromisoformat(timestamp_str)


def datestamp_from_epoch_millis(millis: int, config: ParserConfig) -> datetime:
    return (EPOCH + timedelta(milliseconds=millis)).astimezone(config.zone())


def resolve_time(decorators: Decorators, config: ParserConfig | None = None) -> ResolvedTime:
    """Derive wall-clock and/or uptime from whichever time decorators are present.

    Raises:
        LineRejectedError: with reason "no-time" if neither could be derived.
        ValueError: if a present decorator is malformed.
    """
    config = config or ParserConfig()
    datestamp: datetime | None = None
    uptime: float | None = None

    if decorators.time:
        datestamp = parse_wall_clock(decorators.time)
    if decorators.uptime:
        uptime = parse_decimal(decorators.uptime)

    if decorators.time_millis is not None and decorators.uptime_millis is not None:
        # two millisecond decorators: the second one is the uptime for sure
        if datestamp is None:
            datestamp = datestamp_from_epoch_millis(int(decorators.time_millis), config)
        uptime = int(decorators.uptime_millis) / 1000
    elif decorators.time_millis is not None:
        millis = int(decorators.time_millis)
        if millis < config.min_valid_unix_time_millis:
            uptime = millis / 1000
        else:
            datestamp = datestamp_from_epoch_millis(millis, config)

    # nanoseconds only identify the uptime if both are present
    if decorators.time_nanos is not None and decorators.uptime_nanos is not None:
        uptime = int(decorators.uptime_nanos) / 1_000_000_000

    if datestamp is None and uptime is None:
        raise LineRejectedError("no-time", decorators.type_label)
    return ResolvedTime(datestamp, uptime)
