from cmdprobe.execution.analysis import ResultAnalysis, ResultAnalyzer, RiskAssessment
from cmdprobe.execution.engine import EventListener, SafeExecutionEngine
from cmdprobe.execution.events import (
    Event,
    ExecutionCompleted,
    ExecutionFailed,
    ExecutionStarted,
    ExecutionTimedOut,
    SnapshotRestored,
)
from cmdprobe.execution.observers import (
    BaselineObserver,
    CompositeSideEffectObserver,
    FileSystemObserver,
    MappingStateObserver,
    NullSideEffectObserver,
    Sample,
    SideEffectObserver,
)
from cmdprobe.execution.snapshots import (
    DirectorySnapshotProvider,
    InMemorySnapshotProvider,
    Snapshot,
    SnapshotInfo,
    SnapshotManager,
    SnapshotProvider,
)

__all__ = [
    "BaselineObserver",
    "CompositeSideEffectObserver",
    "DirectorySnapshotProvider",
    "Event",
    "EventListener",
    "ExecutionCompleted",
    "ExecutionFailed",
    "ExecutionStarted",
    "ExecutionTimedOut",
    "FileSystemObserver",
    "InMemorySnapshotProvider",
    "MappingStateObserver",
    "NullSideEffectObserver",
    "ResultAnalysis",
    "ResultAnalyzer",
    "RiskAssessment",
    "Sample",
    "SafeExecutionEngine",
    "SideEffectObserver",
    "Snapshot",
    "SnapshotInfo",
    "SnapshotManager",
    "SnapshotProvider",
    "SnapshotRestored",
]
