"""Reader for gc logs written by the JVM unified logging facility (JDK 9+).

Works with the "gc" selector at "info" level and at least one time decorator,
e.g. ``-Xlog:gc:file=gc.log`` or ``-Xlog:gc*:file=gc.log:time,uptime,level,tags``.
The most detailed configuration understood is
``-Xlog:gc*=trace:file=gc.log:time,uptime,timemillis,uptimemillis,timenanos,uptimenanos,pid,tid,level,tags``
(debug and trace lines are skipped). Serial, Parallel, CMS, G1, Shenandoah and
ZGC logs are supported::

    [0.731s][info][gc           ] GC(0) Pause Init Mark 1.021ms
    [0.735s][info][gc           ] GC(0) Concurrent marking 74M->74M(128M) 3.688ms
    [43.948s][info][gc             ] GC(831) Pause Full (Allocation Failure) 7943M->6013M(8192M) 14289.335ms

One collection is usually spread over several lines sharing the same GC(n)
number: a ``gc,start`` line opens it, ``gc,heap``/``gc,metaspace``/``gc,phases``
lines add details, and a ``gc`` line with the same type label closes it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple

from ujl_analyze.config import ParserConfig
from ujl_analyze.decorators import extract_decorators, resolve_time
from ujl_analyze.diagnostics import (
    DiagnosticKind,
    DiagnosticsSink,
    LoggingDiagnosticsSink,
    ParseDiagnostic,
)
from ujl_analyze.events import GCEvent, create_event
from ujl_analyze.exceptions import LineRejectedError, UnknownGcTypeError
from ujl_analyze.gc_types import EventKind, TailGrammar, classify_type
from ujl_analyze.line_filter import (
    LineClass,
    auxiliary_tail,
    classify_line,
    extract_region_size_kb,
)
from ujl_analyze.tails import parse_safepoint_tail, parse_tail

logger = logging.getLogger(__name__)


class Tag(Enum):
    """Tag-sets that are routed; everything else is reported and dropped."""

    SAFEPOINT = "safepoint"
    GC_START = "gc,start"
    GC_HEAP = "gc,heap"
    GC_METASPACE = "gc,metaspace"
    GC = "gc"
    GC_PHASES = "gc,phases"

    @classmethod
    def parse(cls, tags: str) -> Tag | None:
        try:
            return cls(tags)
        except ValueError:
            return None


@dataclass
class ParseState:
    """State shared across the lines of one log.

    Owns the events waiting for their closing line, keyed by GC number, and the
    G1 region size announced at startup.
    """

    pending: dict[str, GCEvent] = field(default_factory=dict)
    region_size_kb: int | None = None

    def store(self, event: GCEvent) -> bool:
        """Keep an event as pending; events without GC number are never stored."""
        if not event.has_number:
            return False
        self.pending[str(event.number)] = event
        return True

    def get(self, number: int) -> GCEvent | None:
        if number < 0:
            return None
        return self.pending.get(str(number))

    def pop(self, number: int) -> GCEvent | None:
        return self.pending.pop(str(number), None)

    def clear(self) -> None:
        self.pending.clear()


class LineContext(NamedTuple):
    line_number: int
    line: str


class UnifiedLogReader:
    """Turns unified logging lines into completed gc events.

    Processing is strictly sequential: a start line must be seen before the
    lines that complete it. Every problem is local to a line; it is reported
    to the diagnostics sink and the line is dropped (or, for tail mismatches,
    the event is kept with what could be parsed).
    """

    def __init__(
        self,
        config: ParserConfig | None = None,
        sink: DiagnosticsSink | None = None,
    ) -> None:
        self.config = config or ParserConfig()
        self.sink: DiagnosticsSink = sink if sink is not None else LoggingDiagnosticsSink()

    def read(self, lines: Iterable[str]) -> Iterator[GCEvent]:
        """Lazily yield each event as soon as its last line has been read."""
        logger.info("Reading Oracle / OpenJDK unified jvm logging format...")
        state = ParseState()
        try:
            for line_number, raw_line in enumerate(lines, start=1):
                ctx = LineContext(line_number, raw_line.rstrip())
                line_class = classify_line(ctx.line)
                if line_class is LineClass.NOISE:
                    continue
                if line_class is LineClass.AUXILIARY:
                    self._enrich_state(state, ctx)
                    continue
                if (event := self._parse_line(state, ctx)) is not None:
                    yield event
        finally:
            if state.pending:
                logger.debug(
                    "Dropping %d incomplete event(s) at end of log: %s",
                    len(state.pending),
                    ", ".join(str(event) for event in state.pending.values()),
                )
            state.clear()
            logger.info("Reading done.")

    # ------------------------------------------------------------
    # line level
    # ------------------------------------------------------------

    def _enrich_state(self, state: ParseState, ctx: LineContext) -> None:
        tail = auxiliary_tail(ctx.line)
        logger.info("%s", tail.strip())
        region_size_kb = extract_region_size_kb(tail)
        if region_size_kb is None:
            return
        if region_size_kb <= 0:
            self._report(ctx, DiagnosticKind.BAD_REGION_SIZE, "Failed to parse heap region size")
            return
        state.region_size_kb = region_size_kb

    def _parse_line(self, state: ParseState, ctx: LineContext) -> GCEvent | None:
        try:
            decorators = extract_decorators(ctx.line)
            event = create_event(classify_type(decorators.type_label))
            event.line_number = ctx.line_number
            if decorators.gc_number is not None:
                event.number = decorators.gc_number
            event.datestamp, event.uptime = resolve_time(decorators, self.config)
            return self._route(state, ctx, event, Tag.parse(decorators.tags), decorators.tail)
        except LineRejectedError as e:
            if e.reason == "no-time":
                self._report(ctx, DiagnosticKind.NO_TIME, "Failed to parse line (no valid time or timestamp)")
            else:
                self._report(ctx, DiagnosticKind.UNPARSEABLE_LINE, "Failed to parse line (no match)")
        except UnknownGcTypeError as e:
            self._report(ctx, DiagnosticKind.UNKNOWN_TYPE, f"Failed to parse gc event ({e})")
        except (ValueError, ArithmeticError) as e:
            self._report(ctx, DiagnosticKind.NUMBER_FORMAT, f"Failed to parse gc event ({e!r})")
        return None

    # ------------------------------------------------------------
    # tag routing
    # ------------------------------------------------------------

    def _route(
        self,
        state: ParseState,
        ctx: LineContext,
        event: GCEvent,
        tag: Tag | None,
        tail: str | None,
    ) -> GCEvent | None:
        match tag:
            case Tag.SAFEPOINT:
                parse_safepoint_tail(event, tail)
                return event
            case Tag.GC_START:
                # type known now; details and the closing line follow later
                if not state.store(event):
                    logger.debug("Ignoring start line without GC number: %s", ctx.line)
                return None
            case Tag.GC_HEAP:
                return self._handle_heap(state, ctx, event, tail)
            case Tag.GC_METASPACE:
                return self._merge_detail(state, ctx, event, tail)
            case Tag.GC:
                return self._handle_gc(state, ctx, event, tail)
            case Tag.GC_PHASES:
                return self._handle_phase(state, ctx, event, tail)
            case None:
                self._report(
                    ctx, DiagnosticKind.UNEXPECTED_TAG, f'Unexpected tag-set (tail="{tail}")'
                )
                return None

    def _handle_heap(
        self, state: ParseState, ctx: LineContext, event: GCEvent, tail: str | None
    ) -> GCEvent | None:
        parent = state.get(event.number)
        if event.kind is EventKind.ZGC_HEAP_CAPACITY and parent is not None:
            # ZGC: the capacity line only carries the total heap of the cycle
            self._apply_tail(state, ctx, event, tail)
            parent.total = event.total
            return None
        return self._merge_detail(state, ctx, event, tail)

    def _merge_detail(
        self, state: ParseState, ctx: LineContext, event: GCEvent, tail: str | None
    ) -> GCEvent | None:
        """Fold a generation / region / metaspace line into its pending parent."""
        # ZGC: "Metaspace: 19M used, 19M capacity, 19M committed, 20M reserved" has no range
        if (
            event.kind is EventKind.METASPACE
            and tail is not None
            and "used," in tail
            and "committed," in tail
        ):
            return None
        # Shenandoah logs a metaspace line without GC number
        if not event.has_number:
            return None

        self._apply_tail(state, ctx, event, tail)
        # the CMS "Old" line is often logged after the next pauses already happened;
        # the aggregate container reconciles it
        if event.kind is not EventKind.CMS_CONCURRENT_OLD:
            self._add_to_parent(state, ctx, event)
        return None

    def _handle_gc(
        self, state: ParseState, ctx: LineContext, event: GCEvent, tail: str | None
    ) -> GCEvent | None:
        parent = state.get(event.number)
        if parent is None:
            self._apply_tail(state, ctx, event, tail)
            return event
        if parent.extended_type == event.extended_type:
            # the closing line's time decorators are authoritative
            parent.datestamp = event.datestamp
            parent.uptime = event.uptime
            self._apply_tail(state, ctx, parent, tail)
            state.pop(event.number)
            return parent
        # more detail for the pending event
        self._apply_tail(state, ctx, event, tail)
        self._add_to_parent(state, ctx, event)
        return None

    def _handle_phase(
        self, state: ParseState, ctx: LineContext, event: GCEvent, tail: str | None
    ) -> GCEvent | None:
        parent = state.get(event.number)
        if parent is None or not parent.accumulates_phases:
            return None
        self._apply_tail(state, ctx, event, tail)
        # ZGC logs its concurrent phases as phases of the collection; surface
        # them as concurrent events of their own
        if event.is_concurrent:
            return event
        parent.add_phase(event)
        return None

    # ------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------

    def _add_to_parent(self, state: ParseState, ctx: LineContext, event: GCEvent) -> None:
        parent = state.get(event.number)
        if parent is None:
            self._report(
                ctx, DiagnosticKind.MISSING_PARENT, f"Didn't find parent event for partial event {event}"
            )
        elif not parent.accepts_details:
            self._report(
                ctx,
                DiagnosticKind.UNMERGEABLE_PARENT,
                f"Parent ({parent}) event for {event} should be a stop-the-world gc event",
            )
        else:
            parent.add_detail(event)

    def _apply_tail(
        self, state: ParseState, ctx: LineContext, event: GCEvent, tail: str | None
    ) -> None:
        if message := parse_tail(event, tail, state.region_size_kb):
            kind = (
                DiagnosticKind.UNEXPECTED_TAIL
                if event.extended_type.grammar is TailGrammar.NONE
                else DiagnosticKind.TAIL_MISMATCH
            )
            self._report(ctx, kind, message)

    def _report(self, ctx: LineContext, kind: DiagnosticKind, message: str) -> None:
        self.sink.report(
            ParseDiagnostic(kind=kind, line_number=ctx.line_number, line=ctx.line, message=message)
        )


def read_events(
    lines: Iterable[str],
    config: ParserConfig | None = None,
    sink: DiagnosticsSink | None = None,
) -> Iterator[GCEvent]:
    """Convenience wrapper around ``UnifiedLogReader(config, sink).read(lines)``."""
    return UnifiedLogReader(config, sink).read(lines)
