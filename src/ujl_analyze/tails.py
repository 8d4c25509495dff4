"""Parsers for the text following the type label ("tail").

Which grammar applies is decided by the event's ExtendedType. Each parser
mutates the event in place and returns an anomaly message if the tail does
not have the expected shape (the event keeps whatever was set before).
"""

from __future__ import annotations

import re
from collections.abc import Callable

from ujl_analyze.events import GCEvent
from ujl_analyze.gc_types import TailGrammar
from ujl_analyze.units import memory_in_kb, parse_decimal

_PAUSE = r"(?P<pause>[0-9]+(?:[.,][0-9]+)?)ms"
# 257K(448K)->257K(448K): the first "(448K)" is optional
_MEMORY = (
    r"(?P<before>[0-9]+)(?P<before_unit>[BKMG])(?:\([0-9]+[BKMG]\))?"
    r"->(?P<after>[0-9]+)(?P<after_unit>[BKMG])"
    r"\((?P<total>[0-9]+)(?P<total_unit>[BKMG])\)"
)

# 1.070ms
PAUSE_PATTERN: re.Pattern[str] = re.compile(rf"^{_PAUSE}")
# 4848M->4855M(4998M)
MEMORY_PATTERN: re.Pattern[str] = re.compile(rf"^{_MEMORY}")
# 4848M->4855M(4998M) 2.872ms
MEMORY_PAUSE_PATTERN: re.Pattern[str] = re.compile(rf"^{_MEMORY}(?: {_PAUSE})?")
# 7->3(2)
REGION_PATTERN: re.Pattern[str] = re.compile(
    r"^(?P<before>[0-9]+)->(?P<after>[0-9]+)(?:\((?P<total>[0-9]+)\))?"
)
# 106M(0%)->88M(0%)
MEMORY_PERCENTAGE_PATTERN: re.Pattern[str] = re.compile(
    r"^(?P<before>[0-9]+)(?P<before_unit>[BKMG])\((?P<before_pct>[0-9]+)%\)"
    r"->(?P<after>[0-9]+)(?P<after_unit>[BKMG])\((?P<after_pct>[0-9]+)%\)"
)
# 300M (1%)
HEAP_MEMORY_PERCENTAGE_PATTERN: re.Pattern[str] = re.compile(
    r"^(?P<value>[0-9]+)(?P<unit>[BKMG]) \((?P<pct>[0-9]+)%\)"
)
# 0.0001215 seconds, Stopping threads took: 0.0000271 seconds
SAFEPOINT_PATTERN: re.Pattern[str] = re.compile(
    r"^(?P<value>[0-9]+(?:[.,][0-9]+)?)(?:\s*(?P<unit>ms|seconds|secs|s)\b)?"
)


def _set_pause(event: GCEvent, pause_ms: str | None) -> None:
    if pause_ms:
        event.pause = parse_decimal(pause_ms) / 1000


def _set_memory(event: GCEvent, match: re.Match[str]) -> None:
    event.pre_used = memory_in_kb(int(match.group("before")), match.group("before_unit"))
    event.post_used = memory_in_kb(int(match.group("after")), match.group("after_unit"))
    event.total = memory_in_kb(int(match.group("total")), match.group("total_unit"))


def parse_none_tail(event: GCEvent, tail: str | None, region_size_kb: int | None) -> str | None:
    if tail:
        return f'Unexpected tail present in the end of line (expected nothing, tail="{tail}")'
    return None


def parse_pause_tail(event: GCEvent, tail: str | None, region_size_kb: int | None) -> str | None:
    # G1 and CMS log concurrent phases under "gc" once without pause (start of the
    # phase) and once with pause (end of the phase), hence the accepted missing tail
    if tail is None:
        return None
    if match := PAUSE_PATTERN.match(tail):
        _set_pause(event, match.group("pause"))
        return None
    return "Expected only pause in the end of line"


def parse_memory_tail(event: GCEvent, tail: str | None, region_size_kb: int | None) -> str | None:
    if tail and (match := MEMORY_PATTERN.match(tail)):
        _set_memory(event, match)
        return None
    return "Expected only memory in the end of line"


def parse_memory_pause_tail(
    event: GCEvent, tail: str | None, region_size_kb: int | None
) -> str | None:
    if tail and (match := MEMORY_PAUSE_PATTERN.match(tail)):
        _set_pause(event, match.group("pause"))
        # detail lines already summed up the generations; keep those numbers
        if not event.has_memory:
            _set_memory(event, match)
        return None
    return "Expected memory and pause in the end of line"


def parse_region_tail(event: GCEvent, tail: str | None, region_size_kb: int | None) -> str | None:
    if tail and (match := REGION_PATTERN.match(tail)):
        # without a "Heap region size" line the size is unknown; record 0
        size = region_size_kb or 0
        event.pre_used = int(match.group("before")) * size
        event.post_used = int(match.group("after")) * size
        if match.group("total") is not None:
            event.total = int(match.group("total")) * size
        return None
    return "Expected region information in the end of line"


def parse_memory_percentage_tail(
    event: GCEvent, tail: str | None, region_size_kb: int | None
) -> str | None:
    if tail and (match := MEMORY_PERCENTAGE_PATTERN.match(tail)):
        event.pre_used = memory_in_kb(int(match.group("before")), match.group("before_unit"))
        event.post_used = memory_in_kb(int(match.group("after")), match.group("after_unit"))
        after_pct = int(match.group("after_pct"))
        if event.total == 0 and after_pct != 0:
            # truncating division, see DESIGN.md
            event.total = event.post_used // after_pct * 100
        return None
    return "Expected memory percentage in the end of line"


def parse_heap_memory_percentage_tail(
    event: GCEvent, tail: str | None, region_size_kb: int | None
) -> str | None:
    if tail and (match := HEAP_MEMORY_PERCENTAGE_PATTERN.match(tail)):
        event.total = memory_in_kb(int(match.group("value")), match.group("unit"))
        return None
    return "Expected heap memory percentage in the end of line"


TailParser = Callable[[GCEvent, str | None, int | None], str | None]

TAIL_PARSERS: dict[TailGrammar, TailParser] = {
    TailGrammar.NONE: parse_none_tail,
    TailGrammar.PAUSE: parse_pause_tail,
    TailGrammar.MEMORY: parse_memory_tail,
    TailGrammar.MEMORY_PAUSE: parse_memory_pause_tail,
    TailGrammar.REGION: parse_region_tail,
    TailGrammar.MEMORY_PERCENTAGE: parse_memory_percentage_tail,
    TailGrammar.HEAP_MEMORY_PERCENTAGE: parse_heap_memory_percentage_tail,
}


def parse_tail(event: GCEvent, tail: str | None, region_size_kb: int | None = None) -> str | None:
    """Apply the grammar of the event's type to the tail.

    Returns:
        None on success, otherwise a message describing the mismatch.

    Raises:
        ValueError: if a matched number cannot be converted.
    """
    return TAIL_PARSERS[event.extended_type.grammar](event, tail, region_size_kb)


def parse_safepoint_tail(event: GCEvent, tail: str | None) -> None:
    """Set the pause of an "application threads were stopped" line.

    Raises:
        ValueError: if the tail does not start with a number.
    """
    match = SAFEPOINT_PATTERN.match(tail or "")
    if match is None:
        raise ValueError(f"Expected leading stopped time in tail: {tail!r}")
    value = parse_decimal(match.group("value"))
    # the JVM prints "Total time for which application threads were stopped: N seconds"
    event.pause = value / 1000 if match.group("unit") == "ms" else value
