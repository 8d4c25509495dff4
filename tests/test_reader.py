"""Tests for the unified log reader (tag routing and partial events)."""

import logging

import pytest

from ujl_analyze.config import ParserConfig
from ujl_analyze.diagnostics import CollectingDiagnosticsSink
from ujl_analyze.diagnostics import DiagnosticKind
from ujl_analyze.events import EventVariant
from ujl_analyze.events import GCEvent
from ujl_analyze.events import create_event
from ujl_analyze.gc_types import EventKind
from ujl_analyze.gc_types import classify_type
from ujl_analyze.reader import ParseState
from ujl_analyze.reader import Tag
from ujl_analyze.reader import UnifiedLogReader
from ujl_analyze.reader import read_events

WITHOUT_LINE_NUMBERS = {
    "line_number": True,
    "phases": {"__all__": {"line_number"}},
    "details": {"__all__": {"line_number"}},
}


def _read(
    lines: list[str], config: ParserConfig | None = None
) -> tuple[list[GCEvent], CollectingDiagnosticsSink]:
    sink = CollectingDiagnosticsSink(log=False)
    events = list(read_events(lines, config, sink))
    return events, sink


class TestTag:
    """Tests for Tag.parse."""

    def test_known(self) -> None:
        """Test routed tag-sets."""
        assert Tag.parse("gc,start") is Tag.GC_START
        assert Tag.parse("safepoint") is Tag.SAFEPOINT

    def test_unknown(self) -> None:
        """Test other tag-sets are not routed."""
        assert Tag.parse("gc,heap,region") is None


class TestParseState:
    """Tests for ParseState."""

    def test_store_and_get(self) -> None:
        """Test events are found by their GC number."""
        state = ParseState()
        event = create_event(classify_type("Pause Remark"))
        event.number = 3
        assert state.store(event)
        assert state.get(3) is event
        assert state.pop(3) is event
        assert state.get(3) is None

    def test_event_without_number_is_not_stored(self) -> None:
        """Test events without GC number never enter the store."""
        state = ParseState()
        assert not state.store(create_event(classify_type("Pause Remark")))
        assert state.pending == {}
        assert state.get(-1) is None


class TestG1:
    """Tests reading a G1 log."""

    def test_merged_collection(self, g1_lines: list[str]) -> None:
        """Test start, phases, regions, metaspace and end become one event."""
        events, sink = _read(g1_lines)

        assert len(sink) == 0
        assert len(events) == 2
        event = events[0]
        assert event.kind is EventKind.G1_YOUNG_NORMAL
        assert event.number == 0
        assert event.uptime == pytest.approx(0.305)
        assert event.pause == pytest.approx(0.005232)
        assert len(event.phases) == 4
        assert [phase.kind for phase in event.phases][0] is EventKind.G1_PHASE_PRE_EVACUATE
        assert len(event.details) == 5
        assert event.pre_used == 24 * 1024 + 6740
        assert event.post_used == 3 * 1024 + 2 * 1024 + 6740
        assert event.total == 150 * 1024 + 3 * 1024 + 1056768

    def test_safepoint(self, g1_lines: list[str]) -> None:
        """Test the application stopped time becomes a VM operation."""
        events, _ = _read(g1_lines)
        safepoint = events[1]
        assert safepoint.variant is EventVariant.VM_OPERATION
        assert safepoint.pause == pytest.approx(0.0053)
        assert not safepoint.has_number

    def test_truncated_log(self, g1_lines: list[str], caplog: pytest.LogCaptureFixture) -> None:
        """Test a collection without end line is dropped without diagnostic."""
        truncated = [line for line in g1_lines if "24M->4M(256M)" not in line]
        with caplog.at_level(logging.DEBUG, logger="ujl_analyze.reader"):
            events, sink = _read(truncated)
        assert [event.variant for event in events] == [EventVariant.VM_OPERATION]
        assert len(sink) == 0
        assert "Dropping 1 incomplete event(s)" in caplog.text

    def test_without_region_size(self, g1_lines: list[str]) -> None:
        """Test region counts without a region size line contribute nothing."""
        events, sink = _read(g1_lines[1:])
        assert len(sink) == 0
        assert events[0].pre_used == 6740
        assert events[0].total == 1056768

    def test_jdk17_region_size(self, g1_lines: list[str]) -> None:
        """Test the capitalized region size line of JDK 17."""
        lines = ["[0.003s][info][gc,init] Heap Region Size: 2M", *g1_lines[1:]]
        events, _ = _read(lines)
        assert events[0].pre_used == 24 * 2048 + 6740

    def test_closing_line_time_wins(self, g1_lines: list[str]) -> None:
        """Test the time of the end line is used, not the one of the start line."""
        events, _ = _read(g1_lines)
        assert events[0].uptime == pytest.approx(0.305)
        assert events[0].line_number == 3


class TestSerial:
    """Tests reading a Serial log."""

    def test_young_collection(self, serial_lines: list[str]) -> None:
        """Test generation and metaspace sizes are summed up."""
        events, sink = _read(serial_lines)
        assert len(sink) == 0
        young = events[0]
        assert young.kind is EventKind.PAUSE_YOUNG
        assert (young.pre_used, young.post_used, young.total) == (3888, 2556, 1066688)
        assert young.pause == pytest.approx(0.002412)

    def test_full_collection_phases(self, serial_lines: list[str]) -> None:
        """Test full gc phases are attached, the phase start line is ignored."""
        events, _ = _read(serial_lines)
        full = events[1]
        assert full.kind is EventKind.PAUSE_FULL
        assert full.extended_type.name == "Pause Full (System.gc())"
        assert [phase.kind for phase in full.phases] == [
            EventKind.PHASE_MARK,
            EventKind.PHASE_COMPUTE_ADDRESSES,
            EventKind.PHASE_ADJUST_POINTERS,
            EventKind.PHASE_COMPACT,
        ]
        assert full.phases[0].pause == pytest.approx(0.00195)
        assert (full.pre_used, full.post_used, full.total) == (2556, 2436, 1066688)
        assert full.pause == pytest.approx(0.00487)

    def test_phases_do_not_change_memory(self, serial_lines: list[str]) -> None:
        """Test phases are not merged into the memory figures."""
        without_phases = [line for line in serial_lines if "Phase" not in line]
        with_phases, _ = _read(serial_lines)
        plain, _ = _read(without_phases)
        assert with_phases[1].total == plain[1].total
        assert plain[1].phases == []


class TestCMS:
    """Tests reading a CMS log."""

    def test_events(self, cms_lines: list[str]) -> None:
        """Test pauses and both lines of the concurrent mark are emitted."""
        events, sink = _read(cms_lines)
        assert len(sink) == 0
        assert [event.kind for event in events] == [
            EventKind.PAUSE_YOUNG,
            EventKind.PAUSE_INITIAL_MARK,
            EventKind.CONCURRENT_MARK,
            EventKind.CONCURRENT_MARK,
        ]
        assert (events[0].pre_used, events[0].post_used, events[0].total) == (5416, 3512, 1072640)
        assert events[1].total == 15 * 1024
        assert events[2].pause is None
        assert events[3].pause == pytest.approx(0.003611)
        assert events[3].variant is EventVariant.CONCURRENT

    def test_old_generation_line_is_dropped(self, cms_lines: list[str]) -> None:
        """Test the concurrent old generation line neither emits nor warns."""
        events, sink = _read(cms_lines)
        assert all(event.kind is not EventKind.CMS_CONCURRENT_OLD for event in events)
        assert len(sink) == 0


class TestShenandoah:
    """Tests reading a Shenandoah log."""

    def test_events(self, shenandoah_lines: list[str]) -> None:
        """Test pauses and concurrent phases sharing one GC number."""
        events, sink = _read(shenandoah_lines)
        assert len(sink) == 0
        assert [event.variant for event in events] == [
            EventVariant.SIMPLE,
            EventVariant.CONCURRENT,
            EventVariant.SIMPLE,
            EventVariant.CONCURRENT,
        ]
        assert all(event.number == 0 for event in events)
        assert events[0].pause == pytest.approx(0.001021)
        marking = events[1]
        assert (marking.pre_used, marking.post_used, marking.total) == (75776, 75776, 131072)
        assert marking.pause == pytest.approx(0.003688)
        assert events[3].post_used == 20 * 1024

    def test_metaspace_without_number(self, shenandoah_lines: list[str]) -> None:
        """Test a metaspace line outside of a cycle is ignored silently."""
        events, sink = _read(shenandoah_lines[-2:])
        assert events == []
        assert len(sink) == 0

    def test_detail_for_concurrent_parent(self) -> None:
        """Test details cannot be merged into a concurrent event."""
        lines = [
            "[0.731s][info][gc,start     ] GC(0) Concurrent marking",
            "[0.733s][info][gc,metaspace ] GC(0) Metaspace: 1K->1K(2K)",
            "[0.735s][info][gc           ] GC(0) Concurrent marking 74M->74M(128M) 3.688ms",
        ]
        events, sink = _read(lines)
        assert [diagnostic.kind for diagnostic in sink.diagnostics] == [
            DiagnosticKind.UNMERGEABLE_PARENT
        ]
        assert len(events) == 1
        assert events[0].total == 128 * 1024


class TestZGC:
    """Tests reading a ZGC log."""

    def test_events(self, zgc_lines: list[str]) -> None:
        """Test concurrent phases are emitted on their own, pauses are attached."""
        events, sink = _read(zgc_lines)
        assert len(sink) == 0
        assert [event.variant for event in events] == [
            EventVariant.CONCURRENT,
            EventVariant.CONCURRENT,
            EventVariant.CONCURRENT,
            EventVariant.SIMPLE,
        ]
        assert events[0].pause == pytest.approx(0.008123)

        collection = events[3]
        assert collection.kind is EventKind.ZGC_GARBAGE_COLLECTION
        assert [phase.kind for phase in collection.phases] == [
            EventKind.ZGC_PAUSE_MARK_START,
            EventKind.ZGC_PAUSE_MARK_END,
        ]
        assert collection.pre_used == 20 * 1024
        assert collection.post_used == 10 * 1024
        # from the heap table, not from the percentage
        assert collection.total == 114 * 1024
        assert collection.uptime == pytest.approx(0.116)

    def test_without_heap_table(self) -> None:
        """Test the total is derived from the percentage if no capacity was logged."""
        events, _ = _read(
            ["[1.000s][info][gc] GC(3) Garbage Collection (Allocation Rate) 50M(10%)->20M(4%)"]
        )
        assert events[0].total == 20 * 1024 // 4 * 100

    def test_allocation_stall(self) -> None:
        """Test stalls with a thread name are pauses."""
        events, sink = _read(["[2.100s][info][gc] Allocation Stall (C2 CompilerThread0) 0.204ms"])
        assert len(sink) == 0
        assert events[0].kind is EventKind.ZGC_ALLOCATION_STALL
        assert events[0].pause == pytest.approx(0.000204)


class TestRouting:
    """Tests for routing edge cases."""

    def test_start_without_number_is_ignored(self) -> None:
        """Test a start line without GC number is not stored."""
        events, sink = _read(["[0.300s][info][gc,start] Pause Young (Normal) (G1 Evacuation Pause)"])
        assert events == []
        assert len(sink) == 0

    def test_phase_without_parent(self) -> None:
        """Test a phase line without pending collection is ignored."""
        events, sink = _read(["[0.305s][info][gc,phases] GC(5)   Other: 0.2ms"])
        assert events == []
        assert len(sink) == 0

    def test_phase_for_vm_operation_parent(self) -> None:
        """Test phases are only attached to parents that accumulate them."""
        lines = [
            "[0.300s][info][gc,start] GC(5) Total time for which application threads were stopped:",
            "[0.305s][info][gc,phases] GC(5)   Other: 0.2ms",
        ]
        events, sink = _read(lines)
        assert events == []
        assert len(sink) == 0

    def test_different_type_under_gc_tag(self) -> None:
        """Test a gc line of another type adds detail to the pending collection."""
        lines = [
            "[0.300s][info][gc,start] GC(0) Pause Young (Normal) (G1 Evacuation Pause)",
            "[0.304s][info][gc      ] GC(0) To-space exhausted",
            "[0.305s][info][gc      ] GC(0) Pause Young (Normal) (G1 Evacuation Pause) 24M->4M(256M) 5.232ms",
        ]
        events, sink = _read(lines)
        assert len(sink) == 0
        assert len(events) == 1
        assert [detail.kind for detail in events[0].details] == [EventKind.G1_TO_SPACE_EXHAUSTED]
        # the detail carried no memory, so the summary line provides it
        assert events[0].total == 256 * 1024

    def test_standalone_gc_line(self) -> None:
        """Test a gc line without pending start is emitted right away."""
        events, _ = _read(["[0.731s][info][gc] GC(0) Pause Init Mark 1.021ms"])
        assert len(events) == 1
        assert events[0].pause == pytest.approx(0.001021)

    def test_heap_capacity_without_parent(self) -> None:
        """Test a capacity line without pending collection takes the detail path."""
        events, sink = _read(["[0.116s][info][gc,heap] GC(9)  Capacity:      114M (1%)"])
        assert events == []
        assert [diagnostic.kind for diagnostic in sink.diagnostics] == [
            DiagnosticKind.MISSING_PARENT
        ]

    def test_noise_does_not_change_results(self, g1_lines: list[str]) -> None:
        """Test interleaved noise neither emits nor changes events."""
        noisy: list[str] = []
        for line in g1_lines:
            noisy.append(line)
            noisy.append("[0.305s][debug][gc,heap] GC(0) Heap before GC invocations=0 (full 0)")
            noisy.append("application says hello")
        plain_events, _ = _read(g1_lines)
        noisy_events, sink = _read(noisy)
        assert len(sink) == 0
        assert [e.model_dump(exclude=WITHOUT_LINE_NUMBERS) for e in noisy_events] == [
            e.model_dump(exclude=WITHOUT_LINE_NUMBERS) for e in plain_events
        ]

    def test_idempotent(self, zgc_lines: list[str]) -> None:
        """Test reading the same lines twice gives the same events."""
        reader = UnifiedLogReader(sink=CollectingDiagnosticsSink(log=False))
        first = [event.model_dump() for event in reader.read(zgc_lines)]
        second = [event.model_dump() for event in reader.read(zgc_lines)]
        assert first == second

    def test_lazy(self, g1_lines: list[str]) -> None:
        """Test events are produced while reading, not after the last line."""
        consumed: list[str] = []

        def lines():
            for line in g1_lines:
                consumed.append(line)
                yield line

        iterator = read_events(lines(), sink=CollectingDiagnosticsSink(log=False))
        first = next(iterator)
        assert first.kind is EventKind.G1_YOUNG_NORMAL
        assert len(consumed) == len(g1_lines) - 1

    def test_trailing_whitespace(self, g1_lines: list[str]) -> None:
        """Test line endings are stripped."""
        events, sink = _read([line + "\r\n" for line in g1_lines])
        assert len(sink) == 0
        assert len(events) == 2


class TestDiagnostics:
    """Tests for reported anomalies."""

    @pytest.mark.parametrize(
        ("line", "kind"),
        [
            ("[0.500s][info][gc] 42", DiagnosticKind.UNPARSEABLE_LINE),
            (
                "[info][gc] GC(0) Pause Young (Normal) (G1 Evacuation Pause) 24M->4M(256M) 5.232ms",
                DiagnosticKind.NO_TIME,
            ),
            ("[0.500s][info][gc] GC(7) Pause Something Else 1.0ms", DiagnosticKind.UNKNOWN_TYPE),
            (
                "[2023-13-45T00:00:00.000+0000][info][gc] GC(7) Pause Init Mark 1.0ms",
                DiagnosticKind.NUMBER_FORMAT,
            ),
            ("[0.500s][info][gc,heap] GC(10) Eden regions: 1->0(5)", DiagnosticKind.MISSING_PARENT),
            (
                "[0.500s][info][gc,heap,region] GC(0) Eden regions: 1->0(5)",
                DiagnosticKind.UNEXPECTED_TAG,
            ),
            ("[0.003s][info][gc,heap] Heap region size: 0M", DiagnosticKind.BAD_REGION_SIZE),
            (
                "[0.306s][info][safepoint] Total time for which application threads were stopped:",
                DiagnosticKind.NUMBER_FORMAT,
            ),
        ],
    )
    def test_dropped_lines(self, line: str, kind: DiagnosticKind) -> None:
        """Test each anomaly is reported once and nothing is emitted."""
        events, sink = _read([line])
        assert events == []
        assert [diagnostic.kind for diagnostic in sink.diagnostics] == [kind]
        assert sink.diagnostics[0].line_number == 1
        assert sink.diagnostics[0].line == line

    def test_tail_mismatch_keeps_event(self) -> None:
        """Test an event with an unexpected tail shape is still emitted."""
        events, sink = _read(["[0.500s][info][gc] GC(8) Pause Young (Normal) (G1 Evacuation Pause) 12ms"])
        assert [diagnostic.kind for diagnostic in sink.diagnostics] == [DiagnosticKind.TAIL_MISMATCH]
        assert len(events) == 1
        assert events[0].pause is None

    def test_unexpected_tail(self) -> None:
        """Test a tail on a type that expects none."""
        events, sink = _read(["[0.500s][info][gc] GC(9) To-space exhausted 12"])
        assert [diagnostic.kind for diagnostic in sink.diagnostics] == [DiagnosticKind.UNEXPECTED_TAIL]
        assert len(events) == 1

    def test_errors_do_not_stop_reading(self, g1_lines: list[str]) -> None:
        """Test a bad line in the middle does not affect the rest."""
        lines = [*g1_lines[:5], "[0.500s][info][gc] GC(7) Pause Something Else 1.0ms", *g1_lines[5:]]
        events, sink = _read(lines)
        assert len(sink) == 1
        assert sink.diagnostics[0].line_number == 6
        assert len(events) == 2

    def test_default_sink_logs_warnings(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test diagnostics are logged as warnings without an explicit sink."""
        with caplog.at_level(logging.WARNING):
            assert list(read_events(["[0.500s][info][gc] GC(7) Pause Something Else 1.0ms"])) == []
        assert "Unknown gc type: 'Pause Something Else'" in caplog.text
        assert "on line number 1" in caplog.text

    def test_given_sink_is_used(self) -> None:
        """Test an empty collecting sink is kept rather than replaced."""
        sink = CollectingDiagnosticsSink(log=False)
        reader = UnifiedLogReader(sink=sink)
        assert reader.sink is sink
        assert list(reader.read(["[0.500s][info][gc,metaspace] GC(3) Metaspace: 1K->1K(2K)"])) == []
        assert [diagnostic.kind for diagnostic in sink.diagnostics] == [DiagnosticKind.MISSING_PARENT]

    def test_reading_done_when_stopped_early(
        self, g1_lines: list[str], caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test pending events are dropped when the consumer stops early."""
        second_start = "[0.900s][info][gc,start] GC(1) Pause Young (Normal) (G1 Evacuation Pause)"
        lines = [*g1_lines[2:13], second_start, g1_lines[13], g1_lines[14]]
        with caplog.at_level(logging.DEBUG, logger="ujl_analyze.reader"):
            reader = UnifiedLogReader(sink=CollectingDiagnosticsSink(log=False))
            events = reader.read(lines)
            assert next(events).number == 0
            events.close()
        assert "Dropping 1 incomplete event(s)" in caplog.text
        assert "Reading done." in caplog.text
