"""Shared test fixtures for ujl-analyze tests."""

from pathlib import Path

import pytest


@pytest.fixture
def g1_lines() -> list[str]:
    """One G1 young collection (JDK 11, -Xlog:gc*) plus a safepoint line."""
    return [
        "[0.003s][info][gc,heap] Heap region size: 1M",
        "[0.005s][info][gc     ] Using G1",
        "[0.300s][info][gc,start     ] GC(0) Pause Young (Normal) (G1 Evacuation Pause)",
        "[0.300s][info][gc,task      ] GC(0) Using 2 workers of 4 for evacuation",
        "[0.305s][info][gc,phases    ] GC(0)   Pre Evacuate Collection Set: 0.0ms",
        "[0.305s][info][gc,phases    ] GC(0)   Evacuate Collection Set: 4.5ms",
        "[0.305s][info][gc,phases    ] GC(0)   Post Evacuate Collection Set: 0.3ms",
        "[0.305s][info][gc,phases    ] GC(0)   Other: 0.2ms",
        "[0.305s][info][gc,heap      ] GC(0) Eden regions: 24->0(150)",
        "[0.305s][info][gc,heap      ] GC(0) Survivor regions: 0->3(3)",
        "[0.305s][info][gc,heap      ] GC(0) Old regions: 0->2",
        "[0.305s][info][gc,heap      ] GC(0) Humongous regions: 0->0",
        "[0.305s][info][gc,metaspace ] GC(0) Metaspace: 6740K->6740K(1056768K)",
        "[0.305s][info][gc           ] GC(0) Pause Young (Normal) (G1 Evacuation Pause) 24M->4M(256M) 5.232ms",
        "[0.306s][info][safepoint    ] Total time for which application threads were stopped: "
        "0.0053000 seconds, Stopping threads took: 0.0000271 seconds",
    ]


@pytest.fixture
def serial_lines() -> list[str]:
    """A young and a full collection of the Serial collector."""
    return [
        "[0.010s][info][gc] Using Serial",
        "[0.150s][info][gc,start     ] GC(0) Pause Young (Allocation Failure)",
        "[0.152s][info][gc,heap      ] GC(0) DefNew: 2752K->320K(3072K)",
        "[0.152s][info][gc,heap      ] GC(0) Tenured: 0K->1100K(6848K)",
        "[0.152s][info][gc,metaspace ] GC(0) Metaspace: 1136K->1136K(1056768K)",
        "[0.152s][info][gc           ] GC(0) Pause Young (Allocation Failure) 2M->1M(9M) 2.412ms",
        "[0.900s][info][gc,start       ] GC(1) Pause Full (System.gc())",
        "[0.901s][info][gc,phases,start] GC(1) Phase 1: Mark live objects",
        "[0.903s][info][gc,phases      ] GC(1) Phase 1: Mark live objects 1.950ms",
        "[0.903s][info][gc,phases      ] GC(1) Phase 2: Compute new object addresses 0.413ms",
        "[0.904s][info][gc,phases      ] GC(1) Phase 3: Adjust pointers 0.801ms",
        "[0.905s][info][gc,phases      ] GC(1) Phase 4: Move objects 0.300ms",
        "[0.905s][info][gc,heap        ] GC(1) DefNew: 320K->0K(3072K)",
        "[0.905s][info][gc,heap        ] GC(1) Tenured: 1100K->1300K(6848K)",
        "[0.905s][info][gc,metaspace   ] GC(1) Metaspace: 1136K->1136K(1056768K)",
        "[0.905s][info][gc             ] GC(1) Pause Full (System.gc()) 1M->1M(9M) 4.870ms",
    ]


@pytest.fixture
def cms_lines() -> list[str]:
    """ParNew collection, initial mark and a concurrent mark of CMS."""
    return [
        "[0.010s][info][gc] Using Concurrent Mark Sweep",
        "[0.200s][info][gc,start     ] GC(0) Pause Young (Allocation Failure)",
        "[0.203s][info][gc,heap      ] GC(0) ParNew: 4416K->512K(4928K)",
        "[0.203s][info][gc,heap      ] GC(0) CMS: 0K->2000K(10944K)",
        "[0.203s][info][gc,metaspace ] GC(0) Metaspace: 1000K->1000K(1056768K)",
        "[0.203s][info][gc           ] GC(0) Pause Young (Allocation Failure) 4M->2M(15M) 3.112ms",
        "[0.400s][info][gc,start     ] GC(1) Pause Initial Mark",
        "[0.401s][info][gc           ] GC(1) Pause Initial Mark 5M->5M(15M) 0.356ms",
        "[0.401s][info][gc           ] GC(1) Concurrent Mark",
        "[0.405s][info][gc           ] GC(1) Concurrent Mark 3.611ms",
        "[0.406s][info][gc,heap      ] GC(1) Old: 5000K->5000K(10944K)",
    ]


@pytest.fixture
def shenandoah_lines() -> list[str]:
    """Start of a Shenandoah cycle, including preamble lines without GC number."""
    return [
        "[0.008s][info][gc     ] Using Shenandoah",
        "[0.010s][info][gc,init] Heap Region Size: 256K",
        "[0.730s][info][gc,start     ] GC(0) Pause Init Mark (unload classes)",
        "[0.731s][info][gc           ] GC(0) Pause Init Mark (unload classes) 1.021ms",
        "[0.731s][info][gc,start     ] GC(0) Concurrent marking (unload classes)",
        "[0.735s][info][gc           ] GC(0) Concurrent marking (unload classes) 74M->74M(128M) 3.688ms",
        "[0.736s][info][gc,start     ] GC(0) Pause Final Mark (unload classes)",
        "[0.737s][info][gc           ] GC(0) Pause Final Mark (unload classes) 0.597ms",
        "[0.737s][info][gc,start     ] GC(0) Concurrent cleanup",
        "[0.737s][info][gc           ] GC(0) Concurrent cleanup 74M->20M(128M) 0.033ms",
        "[0.740s][info][gc,metaspace ] Metaspace: 3297K->3304K(1056768K)",
        "[0.800s][info][gc           ] Trigger: Free (12M) is below minimum threshold (12M)",
    ]


@pytest.fixture
def zgc_lines() -> list[str]:
    """One ZGC cycle (JDK 17) with phases and the heap table."""
    return [
        "[0.020s][info][gc,init] Initializing The Z Garbage Collector",
        "[0.100s][info][gc,start    ] GC(0) Garbage Collection (Warmup)",
        "[0.101s][info][gc,phases   ] GC(0) Pause Mark Start 0.006ms",
        "[0.110s][info][gc,phases   ] GC(0) Concurrent Mark 8.123ms",
        "[0.111s][info][gc,phases   ] GC(0) Pause Mark End 0.011ms",
        "[0.112s][info][gc,phases   ] GC(0) Concurrent Mark Free 0.001ms",
        "[0.115s][info][gc,phases   ] GC(0) Concurrent Relocate 2.105ms",
        "[0.116s][info][gc,metaspace] GC(0) Metaspace: 19M used, 19M committed, 1088M reserved",
        "[0.116s][info][gc,heap     ] GC(0) Min Capacity: 8M(0%)",
        "[0.116s][info][gc,heap     ] GC(0)                Mark Start          Mark End        "
        "Relocate Start      Relocate End           High               Low",
        "[0.116s][info][gc,heap     ] GC(0)  Capacity:      114M (1%)          114M (1%)          "
        "114M (1%)          114M (1%)          114M (1%)          114M (1%)",
        "[0.116s][info][gc,heap     ] GC(0)      Used:       20M (0%)           22M (0%)           "
        "22M (0%)           10M (0%)           22M (0%)           10M (0%)",
        "[0.116s][info][gc          ] GC(0) Garbage Collection (Warmup) 20M(18%)->10M(9%)",
    ]


@pytest.fixture
def g1_log_file(tmp_path: Path, g1_lines: list[str]) -> Path:
    """G1 excerpt written to a file."""
    log_file = tmp_path / "gc.log"
    log_file.write_text("\n".join(g1_lines) + "\n")
    return log_file
