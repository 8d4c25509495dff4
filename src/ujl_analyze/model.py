"""Aggregate container for parsed events and the summary derived from it."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import datetime
from statistics import mean, median

from pydantic import BaseModel, Field

from ujl_analyze.config import ParserConfig, SummaryThresholds
from ujl_analyze.diagnostics import DiagnosticsSink
from ujl_analyze.events import EventVariant, GCEvent, SecondsValue
from ujl_analyze.reader import read_events

# ============================================================
# SUMMARY MODELS
# ============================================================


class PauseStatistics(BaseModel):
    """Distribution of a set of pause times (seconds)."""

    count: int = 0
    total: SecondsValue = 0.0
    average: SecondsValue = 0.0
    median: SecondsValue = 0.0
    p95: SecondsValue = 0.0
    p99: SecondsValue = 0.0
    maximum: SecondsValue = 0.0

    @classmethod
    def from_pauses(cls, pauses: list[float]) -> PauseStatistics:
        if not pauses:
            return cls()
        sorted_pauses = sorted(pauses)
        return cls(
            count=len(sorted_pauses),
            total=sum(sorted_pauses),
            average=mean(sorted_pauses),
            median=median(sorted_pauses),
            p95=percentile_sorted(sorted_pauses, 95),
            p99=percentile_sorted(sorted_pauses, 99),
            maximum=sorted_pauses[-1],
        )


class GCSummary(BaseModel):
    """Summary statistics of one parsed log."""

    total_event_count: int
    gc_event_count: int
    concurrent_event_count: int
    vm_operation_count: int

    first_datestamp: datetime | None = None
    last_datestamp: datetime | None = None
    first_uptime: SecondsValue | None = None
    last_uptime: SecondsValue | None = None
    runtime_seconds: SecondsValue = 0.0

    gc_pauses: PauseStatistics
    vm_operation_pauses: PauseStatistics
    gc_overhead_pct: float = 0.0
    throughput_pct: float = 100.0
    long_pause_count: int = 0

    peak_post_used_kb: int = 0
    peak_total_kb: int = 0

    events_per_kind: dict[str, int] = Field(default_factory=dict)


def percentile_sorted(sorted_data: list[float], pct: float) -> float:
    """Calculate percentile from a pre-sorted list."""
    if not sorted_data:
        return 0.0
    k = (len(sorted_data) - 1) * (pct / 100)
    f = int(k)
    c = k - f
    if f + 1 < len(sorted_data):
        return sorted_data[f] + c * (sorted_data[f + 1] - sorted_data[f])
    return sorted_data[f]


# ============================================================
# MODEL
# ============================================================


class GCModel:
    """Receives finished events in log order and keeps them segregated by variant."""

    def __init__(self) -> None:
        self.events: list[GCEvent] = []
        self.gc_events: list[GCEvent] = []
        self.concurrent_events: list[GCEvent] = []
        self.vm_operations: list[GCEvent] = []

    @classmethod
    def from_lines(
        cls,
        lines: Iterable[str],
        config: ParserConfig | None = None,
        sink: DiagnosticsSink | None = None,
    ) -> GCModel:
        model = cls()
        for event in read_events(lines, config, sink):
            model.add(event)
        return model

    def add(self, event: GCEvent) -> None:
        self.events.append(event)
        match event.variant:
            case EventVariant.CONCURRENT:
                self.concurrent_events.append(event)
            case EventVariant.VM_OPERATION:
                self.vm_operations.append(event)
            case _:
                self.gc_events.append(event)

    def __len__(self) -> int:
        return len(self.events)

    def summarize(self, thresholds: SummaryThresholds | None = None) -> GCSummary:
        thresholds = thresholds or SummaryThresholds()
        gc_pauses = [event.pause for event in self.gc_events if event.pause is not None]
        vm_pauses = [event.pause for event in self.vm_operations if event.pause is not None]

        uptimes = [event.uptime for event in self.events if event.uptime is not None]
        datestamps = [event.datestamp for event in self.events if event.datestamp is not None]
        first_uptime = min(uptimes) if uptimes else None
        last_uptime = max(uptimes) if uptimes else None
        first_datestamp = min(datestamps) if datestamps else None
        last_datestamp = max(datestamps) if datestamps else None

        if first_uptime is not None and last_uptime is not None:
            runtime_seconds = last_uptime - first_uptime
        elif first_datestamp is not None and last_datestamp is not None:
            runtime_seconds = (last_datestamp - first_datestamp).total_seconds()
        else:
            runtime_seconds = 0.0

        gc_pause_stats = PauseStatistics.from_pauses(gc_pauses)
        gc_overhead_pct = 0.0
        if runtime_seconds > 0:
            gc_overhead_pct = min(100.0, gc_pause_stats.total / runtime_seconds * 100)

        kinds = Counter(event.kind.value for event in self.events)

        return GCSummary(
            total_event_count=len(self.events),
            gc_event_count=len(self.gc_events),
            concurrent_event_count=len(self.concurrent_events),
            vm_operation_count=len(self.vm_operations),
            first_datestamp=first_datestamp,
            last_datestamp=last_datestamp,
            first_uptime=first_uptime,
            last_uptime=last_uptime,
            runtime_seconds=runtime_seconds,
            gc_pauses=gc_pause_stats,
            vm_operation_pauses=PauseStatistics.from_pauses(vm_pauses),
            gc_overhead_pct=gc_overhead_pct,
            throughput_pct=100.0 - gc_overhead_pct,
            long_pause_count=sum(1 for p in gc_pauses if p > thresholds.long_pause_seconds),
            peak_post_used_kb=max((event.post_used for event in self.gc_events), default=0),
            peak_total_kb=max((event.total for event in self.gc_events), default=0),
            events_per_kind=dict(kinds.most_common()),
        )
