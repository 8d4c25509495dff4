"""Event records produced by the unified log reader."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import ClassVar, TypeAlias

from pydantic import BaseModel, Field

from ujl_analyze.gc_types import EventKind, ExtendedType
from ujl_analyze.units import KilobytesValue

SecondsValue: TypeAlias = float

UNKNOWN_NUMBER = -1


class EventVariant(Enum):
    SIMPLE = "simple"
    CONCURRENT = "concurrent"
    VM_OPERATION = "vm operation"


class GCEvent(BaseModel):
    """One garbage collection event (or a phase/detail of one).

    Events are mutable on purpose: a cycle starts as a provisional event in the
    partial-event store and is completed by the lines that follow it.
    """

    variant: ClassVar[EventVariant] = EventVariant.SIMPLE
    accumulates_phases: ClassVar[bool] = True
    accepts_details: ClassVar[bool] = True

    extended_type: ExtendedType
    number: int = UNKNOWN_NUMBER
    datestamp: datetime | None = None
    uptime: SecondsValue | None = None
    pause: SecondsValue | None = None

    pre_used: KilobytesValue = 0
    post_used: KilobytesValue = 0
    total: KilobytesValue = 0

    phases: list[GCEvent] = Field(default_factory=list)
    details: list[GCEvent] = Field(default_factory=list)
    line_number: int | None = None

    @property
    def kind(self) -> EventKind:
        return self.extended_type.kind

    @property
    def is_concurrent(self) -> bool:
        return self.extended_type.is_concurrent

    @property
    def has_number(self) -> bool:
        return self.number >= 0

    @property
    def has_memory(self) -> bool:
        """True once a total size is known; summary lines must not overwrite it."""
        return self.total > 0

    def add_phase(self, phase: GCEvent) -> None:
        if not self.accumulates_phases:
            raise TypeError(f"{type(self).__name__} does not accumulate phases")
        self.phases.append(phase)

    def add_detail(self, detail: GCEvent) -> None:
        """Fold a detail line (generation, regions, metaspace) into this event."""
        if not self.accepts_details:
            raise TypeError(f"{type(self).__name__} does not accept detail events")
        self.details.append(detail)
        self.pre_used += detail.pre_used
        self.post_used += detail.post_used
        self.total += detail.total

    def __str__(self) -> str:
        number = f"GC({self.number}) " if self.has_number else ""
        return f"{number}{self.extended_type.name}"


class SimpleGCEvent(GCEvent):
    """Stop-the-world collection event."""


class ConcurrentGCEvent(GCEvent):
    """Event of a phase running alongside the application threads."""

    variant: ClassVar[EventVariant] = EventVariant.CONCURRENT
    accepts_details: ClassVar[bool] = False


class VmOperationEvent(GCEvent):
    """Safepoint bookkeeping ("application threads were stopped")."""

    variant: ClassVar[EventVariant] = EventVariant.VM_OPERATION
    accumulates_phases: ClassVar[bool] = False
    accepts_details: ClassVar[bool] = False


def create_event(extended_type: ExtendedType) -> GCEvent:
    """Instantiate the event variant matching a classified type."""
    if extended_type.is_concurrent:
        return ConcurrentGCEvent(extended_type=extended_type)
    if extended_type.kind is EventKind.APPLICATION_STOPPED_TIME:
        return VmOperationEvent(extended_type=extended_type)
    return SimpleGCEvent(extended_type=extended_type)
