"""Cheap substring based pre-filter for unified log lines.

Only lines carrying one of the gc tag markers are worth running the decorator
regex on. Known noise is dropped, and a handful of informational lines are
only logged (the heap region size announcement also feeds the parse state).
"""

from __future__ import annotations

import logging
import re
from enum import Enum

logger = logging.getLogger(__name__)

APPLICATION_STOPPED_TIME_LABEL = "Total time for which application threads were stopped:"

# a line must contain at least one of these to be considered
INCLUDE_MARKERS: tuple[str, ...] = (
    "[gc ",
    "[gc]",
    "[gc,start",
    "[gc,heap",
    "[gc,metaspace",
    "[gc,phases",
    "[gc,init",
    APPLICATION_STOPPED_TIME_LABEL,
)

# gc lines that are not gc events; these win over INCLUDE_MARKERS
EXCLUDE_MARKERS: tuple[str, ...] = (
    "Cancelling concurrent GC",
    "[debug",
    "[trace",
    "gc,heap,coops",
    "gc,heap,exit",
    "gc,metaspace,freelist,oom",
    "[gc,phases,start",
    "Trigger: ",
    "Failed to allocate",
    "Cancelling GC",
    # metaspace preamble since JDK 17
    "CDS archive(s) mapped at",
    "Compressed class space mapped at",
    "Narrow klass base",
    # ZGC heap table since JDK 11
    "  Mark Start  ",
    "Reserve:",
    "Free:",
    "Used:",
    "Live:",
    "Allocated:",
    "Garbage:",
    "Reclaimed:",
    "Page Cache Flushed:",
    "Min Capacity:",
    "Max Capacity:",
    "Soft Max Capacity:",
    "Uncommitted:",
)

# gc lines that are only logged, never parsed into events
LOG_ONLY_MARKERS: tuple[str, ...] = (
    "Using",
    "Heap region size",  # JDK 11
    "Heap Region Size",  # JDK 17
    "Consider",
    "Heuristics ergonomically sets",
    "Soft Max Heap Size",  # Shenandoah
    "[gc,init",
)

HEAP_REGION_SIZE_PATTERN: re.Pattern[str] = re.compile(r"^Heap [Rr]egion [Ss]ize: (?P<size>[0-9]+)M$")


class LineClass(Enum):
    CANDIDATE = "candidate"
    NOISE = "noise"
    AUXILIARY = "auxiliary"


def classify_line(line: str) -> LineClass:
    """Decide whether a line is parsed, only logged, or ignored."""
    if not any(marker in line for marker in INCLUDE_MARKERS):
        return LineClass.NOISE
    if any(marker in line for marker in EXCLUDE_MARKERS):
        return LineClass.NOISE
    if any(marker in line for marker in LOG_ONLY_MARKERS):
        return LineClass.AUXILIARY
    return LineClass.CANDIDATE


def auxiliary_tail(line: str) -> str:
    """Text after the last decorator bracket."""
    return line[line.rfind("]") + 1 :]


def extract_region_size_kb(tail: str) -> int | None:
    """Return the G1 region size in KB if the tail announces it."""
    if match := HEAP_REGION_SIZE_PATTERN.match(tail.strip()):
        return int(match.group("size")) * 1024
    return None
