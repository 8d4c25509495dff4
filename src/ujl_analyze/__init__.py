"""ujl-analyze: reader and analyzer for JVM unified logging GC logs."""

from importlib.metadata import version

from ujl_analyze.config import ParserConfig
from ujl_analyze.config import SummaryThresholds
from ujl_analyze.diagnostics import CollectingDiagnosticsSink
from ujl_analyze.diagnostics import DiagnosticKind
from ujl_analyze.diagnostics import ParseDiagnostic
from ujl_analyze.events import ConcurrentGCEvent
from ujl_analyze.events import GCEvent
from ujl_analyze.events import SimpleGCEvent
from ujl_analyze.events import VmOperationEvent
from ujl_analyze.exceptions import UnifiedLogError
from ujl_analyze.gc_types import EventKind
from ujl_analyze.gc_types import ExtendedType
from ujl_analyze.model import GCModel
from ujl_analyze.reader import UnifiedLogReader
from ujl_analyze.reader import read_events

__version__ = version("ujl-analyze")

__all__ = [
    "CollectingDiagnosticsSink",
    "ConcurrentGCEvent",
    "DiagnosticKind",
    "EventKind",
    "ExtendedType",
    "GCEvent",
    "GCModel",
    "ParseDiagnostic",
    "ParserConfig",
    "SimpleGCEvent",
    "SummaryThresholds",
    "UnifiedLogError",
    "UnifiedLogReader",
    "VmOperationEvent",
    "read_events",
]
