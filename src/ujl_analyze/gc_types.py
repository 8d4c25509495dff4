"""Classification of unified logging type labels.

Every gc line carries a free-form, collector specific label ("Pause Young (Normal)
(G1 Evacuation Pause)", "Concurrent marking", "Eden regions", ...). The label
decides which tail grammar applies to the rest of the line and whether the
event is concurrent or stop-the-world.
"""

from __future__ import annotations

import re
from enum import Enum
from functools import lru_cache
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict

from ujl_analyze.exceptions import UnknownGcTypeError

# ============================================================
# ENUMS
# ============================================================


class TailGrammar(Enum):
    """Shape of the text following the type label."""

    NONE = "none"
    PAUSE = "pause"
    MEMORY = "memory"
    MEMORY_PAUSE = "memory pause"
    REGION = "region"
    MEMORY_PERCENTAGE = "memory percentage"
    HEAP_MEMORY_PERCENTAGE = "heap memory percentage"


class Concurrency(Enum):
    STOP_THE_WORLD = "stop-the-world"
    CONCURRENT = "concurrent"


class EventKind(str, Enum):
    """Stable identifier of what a label means, independent of its qualifiers."""

    # shared by several collectors
    PAUSE_YOUNG = "pause young"
    PAUSE_FULL = "pause full"
    PAUSE_INITIAL_MARK = "pause initial mark"
    PAUSE_REMARK = "pause remark"
    PAUSE_CLEANUP = "pause cleanup"
    CONCURRENT_MARK = "concurrent mark"
    METASPACE = "metaspace"
    APPLICATION_STOPPED_TIME = "application stopped time"

    # generation sizes logged under gc,heap
    HEAP_YOUNG = "young generation"
    HEAP_TENURED = "tenured generation"

    # serial / parallel full gc phases
    PHASE_MARK = "phase mark"
    PHASE_COMPUTE_ADDRESSES = "phase compute addresses"
    PHASE_ADJUST_POINTERS = "phase adjust pointers"
    PHASE_COMPACT = "phase compact"
    PHASE_SUMMARY = "phase summary"
    PHASE_POST_COMPACT = "phase post compact"

    # CMS
    CMS_CONCURRENT_PRECLEAN = "CMS concurrent preclean"
    CMS_CONCURRENT_ABORTABLE_PRECLEAN = "CMS concurrent abortable preclean"
    CMS_CONCURRENT_SWEEP = "CMS concurrent sweep"
    CMS_CONCURRENT_RESET = "CMS concurrent reset"
    CMS_CONCURRENT_OLD = "CMS concurrent old"

    # G1
    G1_YOUNG_NORMAL = "G1 young normal"
    G1_YOUNG_CONCURRENT_START = "G1 young concurrent start"
    G1_YOUNG_PREPARE_MIXED = "G1 young prepare mixed"
    G1_MIXED = "G1 mixed"
    G1_CONCURRENT_CYCLE = "G1 concurrent cycle"
    G1_CONCURRENT_UNDO_CYCLE = "G1 concurrent undo cycle"
    G1_TO_SPACE_EXHAUSTED = "G1 to-space exhausted"
    G1_REGION_EDEN = "G1 eden regions"
    G1_REGION_SURVIVOR = "G1 survivor regions"
    G1_REGION_OLD = "G1 old regions"
    G1_REGION_HUMONGOUS = "G1 humongous regions"
    G1_REGION_ARCHIVE = "G1 archive regions"
    G1_PHASE_PRE_EVACUATE = "G1 pre evacuate collection set"
    G1_PHASE_MERGE_HEAP_ROOTS = "G1 merge heap roots"
    G1_PHASE_EVACUATE = "G1 evacuate collection set"
    G1_PHASE_POST_EVACUATE = "G1 post evacuate collection set"
    G1_PHASE_OTHER = "G1 other"

    # Shenandoah
    SHEN_PAUSE_INIT_MARK = "Shenandoah pause init mark"
    SHEN_PAUSE_FINAL_MARK = "Shenandoah pause final mark"
    SHEN_PAUSE_INIT_UPDATE_REFS = "Shenandoah pause init update refs"
    SHEN_PAUSE_FINAL_UPDATE_REFS = "Shenandoah pause final update refs"
    SHEN_PAUSE_FINAL_EVAC = "Shenandoah pause final evac"
    SHEN_PAUSE_DEGENERATED = "Shenandoah pause degenerated gc"
    SHEN_CONCURRENT_RESET = "Shenandoah concurrent reset"
    SHEN_CONCURRENT_MARKING = "Shenandoah concurrent marking"
    SHEN_CONCURRENT_PRECLEANING = "Shenandoah concurrent precleaning"
    SHEN_CONCURRENT_EVACUATION = "Shenandoah concurrent evacuation"
    SHEN_CONCURRENT_UPDATE_REFS = "Shenandoah concurrent update references"
    SHEN_CONCURRENT_CLEANUP = "Shenandoah concurrent cleanup"
    SHEN_CONCURRENT_UNCOMMIT = "Shenandoah concurrent uncommit"
    SHEN_CONCURRENT_ROOTS = "Shenandoah concurrent roots"
    SHEN_CONCURRENT_CLASS_UNLOADING = "Shenandoah concurrent class unloading"

    # ZGC
    ZGC_GARBAGE_COLLECTION = "ZGC garbage collection"
    ZGC_MAJOR_COLLECTION = "ZGC major collection"
    ZGC_MINOR_COLLECTION = "ZGC minor collection"
    ZGC_PAUSE_MARK_START = "ZGC pause mark start"
    ZGC_PAUSE_MARK_END = "ZGC pause mark end"
    ZGC_PAUSE_RELOCATE_START = "ZGC pause relocate start"
    ZGC_CONCURRENT_PHASE = "ZGC concurrent phase"
    ZGC_HEAP_CAPACITY = "heap capacity"
    ZGC_ALLOCATION_STALL = "ZGC allocation stall"
    ZGC_RELOCATION_STALL = "ZGC relocation stall"


# ============================================================
# EXTENDED TYPE
# ============================================================


class ExtendedType(BaseModel):
    """Canonical classification of one type label as it appeared in the log."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: EventKind
    grammar: TailGrammar
    concurrency: Concurrency

    @property
    def is_concurrent(self) -> bool:
        return self.concurrency is Concurrency.CONCURRENT

    def __str__(self) -> str:
        return self.name


class _TypeSpec(NamedTuple):
    kind: EventKind
    grammar: TailGrammar
    concurrency: Concurrency = Concurrency.STOP_THE_WORLD


_STW = Concurrency.STOP_THE_WORLD
_CONC = Concurrency.CONCURRENT
_G = TailGrammar

_TYPE_TABLE: dict[str, _TypeSpec] = {
    # Serial, Parallel, CMS, G1 (JDK 9+)
    "Pause Young": _TypeSpec(EventKind.PAUSE_YOUNG, _G.MEMORY_PAUSE),
    "Pause Full": _TypeSpec(EventKind.PAUSE_FULL, _G.MEMORY_PAUSE),
    "Pause Initial Mark": _TypeSpec(EventKind.PAUSE_INITIAL_MARK, _G.MEMORY_PAUSE),
    "Pause Remark": _TypeSpec(EventKind.PAUSE_REMARK, _G.MEMORY_PAUSE),
    "Pause Cleanup": _TypeSpec(EventKind.PAUSE_CLEANUP, _G.MEMORY_PAUSE),
    "Metaspace": _TypeSpec(EventKind.METASPACE, _G.MEMORY),
    "Total time for which application threads were stopped": _TypeSpec(
        EventKind.APPLICATION_STOPPED_TIME, _G.PAUSE
    ),
    "DefNew": _TypeSpec(EventKind.HEAP_YOUNG, _G.MEMORY),
    "PSYoungGen": _TypeSpec(EventKind.HEAP_YOUNG, _G.MEMORY),
    "ParNew": _TypeSpec(EventKind.HEAP_YOUNG, _G.MEMORY),
    "Tenured": _TypeSpec(EventKind.HEAP_TENURED, _G.MEMORY),
    "ParOldGen": _TypeSpec(EventKind.HEAP_TENURED, _G.MEMORY),
    "CMS": _TypeSpec(EventKind.HEAP_TENURED, _G.MEMORY),
    # Serial and G1 full gc phases
    "Phase 1: Mark live objects": _TypeSpec(EventKind.PHASE_MARK, _G.PAUSE),
    "Phase 2: Compute new object addresses": _TypeSpec(
        EventKind.PHASE_COMPUTE_ADDRESSES, _G.PAUSE
    ),
    "Phase 2: Prepare for compaction": _TypeSpec(EventKind.PHASE_COMPUTE_ADDRESSES, _G.PAUSE),
    "Phase 3: Adjust pointers": _TypeSpec(EventKind.PHASE_ADJUST_POINTERS, _G.PAUSE),
    "Phase 4: Move objects": _TypeSpec(EventKind.PHASE_COMPACT, _G.PAUSE),
    "Phase 4: Compact heap": _TypeSpec(EventKind.PHASE_COMPACT, _G.PAUSE),
    # Parallel full gc phases
    "Marking Phase": _TypeSpec(EventKind.PHASE_MARK, _G.PAUSE),
    "Summary Phase": _TypeSpec(EventKind.PHASE_SUMMARY, _G.PAUSE),
    "Adjust Roots": _TypeSpec(EventKind.PHASE_ADJUST_POINTERS, _G.PAUSE),
    "Compaction Phase": _TypeSpec(EventKind.PHASE_COMPACT, _G.PAUSE),
    "Post Compact": _TypeSpec(EventKind.PHASE_POST_COMPACT, _G.PAUSE),
    # CMS
    "Concurrent Mark": _TypeSpec(EventKind.CONCURRENT_MARK, _G.PAUSE, _CONC),
    "Concurrent Preclean": _TypeSpec(EventKind.CMS_CONCURRENT_PRECLEAN, _G.PAUSE, _CONC),
    "Concurrent Abortable Preclean": _TypeSpec(
        EventKind.CMS_CONCURRENT_ABORTABLE_PRECLEAN, _G.PAUSE, _CONC
    ),
    "Concurrent Sweep": _TypeSpec(EventKind.CMS_CONCURRENT_SWEEP, _G.PAUSE, _CONC),
    "Concurrent Reset": _TypeSpec(EventKind.CMS_CONCURRENT_RESET, _G.PAUSE, _CONC),
    "Old": _TypeSpec(EventKind.CMS_CONCURRENT_OLD, _G.MEMORY, _CONC),
    # G1
    "Pause Young (Normal)": _TypeSpec(EventKind.G1_YOUNG_NORMAL, _G.MEMORY_PAUSE),
    "Pause Young (Concurrent Start)": _TypeSpec(
        EventKind.G1_YOUNG_CONCURRENT_START, _G.MEMORY_PAUSE
    ),
    "Pause Young (Prepare Mixed)": _TypeSpec(EventKind.G1_YOUNG_PREPARE_MIXED, _G.MEMORY_PAUSE),
    "Pause Young (Mixed)": _TypeSpec(EventKind.G1_MIXED, _G.MEMORY_PAUSE),
    "Pause Mixed": _TypeSpec(EventKind.G1_MIXED, _G.MEMORY_PAUSE),
    "Concurrent Cycle": _TypeSpec(EventKind.G1_CONCURRENT_CYCLE, _G.PAUSE, _CONC),
    "Concurrent Undo Cycle": _TypeSpec(EventKind.G1_CONCURRENT_UNDO_CYCLE, _G.PAUSE, _CONC),
    "To-space exhausted": _TypeSpec(EventKind.G1_TO_SPACE_EXHAUSTED, _G.NONE),
    "Eden regions": _TypeSpec(EventKind.G1_REGION_EDEN, _G.REGION),
    "Survivor regions": _TypeSpec(EventKind.G1_REGION_SURVIVOR, _G.REGION),
    "Old regions": _TypeSpec(EventKind.G1_REGION_OLD, _G.REGION),
    "Humongous regions": _TypeSpec(EventKind.G1_REGION_HUMONGOUS, _G.REGION),
    "Archive regions": _TypeSpec(EventKind.G1_REGION_ARCHIVE, _G.REGION),
    "Pre Evacuate Collection Set": _TypeSpec(EventKind.G1_PHASE_PRE_EVACUATE, _G.PAUSE),
    "Merge Heap Roots": _TypeSpec(EventKind.G1_PHASE_MERGE_HEAP_ROOTS, _G.PAUSE),
    "Evacuate Collection Set": _TypeSpec(EventKind.G1_PHASE_EVACUATE, _G.PAUSE),
    "Post Evacuate Collection Set": _TypeSpec(EventKind.G1_PHASE_POST_EVACUATE, _G.PAUSE),
    "Other": _TypeSpec(EventKind.G1_PHASE_OTHER, _G.PAUSE),
    # Shenandoah
    "Pause Init Mark": _TypeSpec(EventKind.SHEN_PAUSE_INIT_MARK, _G.PAUSE),
    "Pause Final Mark": _TypeSpec(EventKind.SHEN_PAUSE_FINAL_MARK, _G.PAUSE),
    "Pause Init Update Refs": _TypeSpec(EventKind.SHEN_PAUSE_INIT_UPDATE_REFS, _G.PAUSE),
    "Pause Final Update Refs": _TypeSpec(EventKind.SHEN_PAUSE_FINAL_UPDATE_REFS, _G.PAUSE),
    "Pause Final Evac": _TypeSpec(EventKind.SHEN_PAUSE_FINAL_EVAC, _G.PAUSE),
    "Pause Degenerated GC": _TypeSpec(EventKind.SHEN_PAUSE_DEGENERATED, _G.MEMORY_PAUSE),
    "Concurrent reset": _TypeSpec(EventKind.SHEN_CONCURRENT_RESET, _G.MEMORY_PAUSE, _CONC),
    "Concurrent marking": _TypeSpec(EventKind.SHEN_CONCURRENT_MARKING, _G.MEMORY_PAUSE, _CONC),
    "Concurrent precleaning": _TypeSpec(
        EventKind.SHEN_CONCURRENT_PRECLEANING, _G.MEMORY_PAUSE, _CONC
    ),
    "Concurrent evacuation": _TypeSpec(
        EventKind.SHEN_CONCURRENT_EVACUATION, _G.MEMORY_PAUSE, _CONC
    ),
    "Concurrent update references": _TypeSpec(
        EventKind.SHEN_CONCURRENT_UPDATE_REFS, _G.MEMORY_PAUSE, _CONC
    ),
    "Concurrent cleanup": _TypeSpec(EventKind.SHEN_CONCURRENT_CLEANUP, _G.MEMORY_PAUSE, _CONC),
    "Concurrent uncommit": _TypeSpec(EventKind.SHEN_CONCURRENT_UNCOMMIT, _G.MEMORY_PAUSE, _CONC),
    "Concurrent marking roots": _TypeSpec(EventKind.SHEN_CONCURRENT_ROOTS, _G.PAUSE, _CONC),
    "Concurrent thread roots": _TypeSpec(EventKind.SHEN_CONCURRENT_ROOTS, _G.PAUSE, _CONC),
    "Concurrent weak references": _TypeSpec(EventKind.SHEN_CONCURRENT_ROOTS, _G.PAUSE, _CONC),
    "Concurrent weak roots": _TypeSpec(EventKind.SHEN_CONCURRENT_ROOTS, _G.PAUSE, _CONC),
    "Concurrent strong roots": _TypeSpec(EventKind.SHEN_CONCURRENT_ROOTS, _G.PAUSE, _CONC),
    "Concurrent update thread roots": _TypeSpec(EventKind.SHEN_CONCURRENT_ROOTS, _G.PAUSE, _CONC),
    "Concurrent class unloading": _TypeSpec(
        EventKind.SHEN_CONCURRENT_CLASS_UNLOADING, _G.PAUSE, _CONC
    ),
    # ZGC
    "Garbage Collection": _TypeSpec(EventKind.ZGC_GARBAGE_COLLECTION, _G.MEMORY_PERCENTAGE),
    "Major Collection": _TypeSpec(EventKind.ZGC_MAJOR_COLLECTION, _G.MEMORY_PERCENTAGE),
    "Minor Collection": _TypeSpec(EventKind.ZGC_MINOR_COLLECTION, _G.MEMORY_PERCENTAGE),
    "Pause Mark Start": _TypeSpec(EventKind.ZGC_PAUSE_MARK_START, _G.PAUSE),
    "Pause Mark End": _TypeSpec(EventKind.ZGC_PAUSE_MARK_END, _G.PAUSE),
    "Pause Relocate Start": _TypeSpec(EventKind.ZGC_PAUSE_RELOCATE_START, _G.PAUSE),
    "Concurrent Mark Free": _TypeSpec(EventKind.ZGC_CONCURRENT_PHASE, _G.PAUSE, _CONC),
    "Concurrent Mark Continue": _TypeSpec(EventKind.ZGC_CONCURRENT_PHASE, _G.PAUSE, _CONC),
    "Concurrent Process Non-Strong References": _TypeSpec(
        EventKind.ZGC_CONCURRENT_PHASE, _G.PAUSE, _CONC
    ),
    "Concurrent Reset Relocation Set": _TypeSpec(EventKind.ZGC_CONCURRENT_PHASE, _G.PAUSE, _CONC),
    "Concurrent Select Relocation Set": _TypeSpec(
        EventKind.ZGC_CONCURRENT_PHASE, _G.PAUSE, _CONC
    ),
    "Concurrent Relocate": _TypeSpec(EventKind.ZGC_CONCURRENT_PHASE, _G.PAUSE, _CONC),
    "Capacity": _TypeSpec(EventKind.ZGC_HEAP_CAPACITY, _G.HEAP_MEMORY_PERCENTAGE),
    "Allocation Stall": _TypeSpec(EventKind.ZGC_ALLOCATION_STALL, _G.PAUSE),
    "Relocation Stall": _TypeSpec(EventKind.ZGC_RELOCATION_STALL, _G.PAUSE),
}

# trailing "(...)" qualifier, allowing one level of nesting as in "(System.gc())"
_TRAILING_QUALIFIER: re.Pattern[str] = re.compile(r"\s*\((?:[^()]|\([^()]*\))*\)$")


def normalize_label(label: str) -> str:
    """Strip padding and a trailing ':' from a type label."""
    return label.strip().removesuffix(":").rstrip()


@lru_cache(maxsize=512)
def classify_type(label: str) -> ExtendedType:
    """Map a type label to its ExtendedType.

    Unknown labels are retried with their trailing parenthesized qualifiers
    removed one at a time, so "Pause Young (Normal) (G1 Evacuation Pause)" is
    found as "Pause Young (Normal)" and "Pause Full (System.gc())" as "Pause Full".

    Raises:
        UnknownGcTypeError: if no prefix of the label is known.
    """
    name = normalize_label(label)
    candidate = name
    while candidate:
        if spec := _TYPE_TABLE.get(candidate):
            return ExtendedType(
                name=name, kind=spec.kind, grammar=spec.grammar, concurrency=spec.concurrency
            )
        shorter = _TRAILING_QUALIFIER.sub("", candidate)
        if shorter == candidate:
            break
        candidate = shorter
    raise UnknownGcTypeError(name)
