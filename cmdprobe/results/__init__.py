from cmdprobe.results.store import (
    EXPORT_FORMATS,
    JsonResultStore,
    OperationResultStats,
    ResultSearchCriteria,
    ResultStatistics,
    ResultStore,
    compute_statistics,
)

__all__ = [
    "EXPORT_FORMATS",
    "JsonResultStore",
    "OperationResultStats",
    "ResultSearchCriteria",
    "ResultStatistics",
    "ResultStore",
    "compute_statistics",
]
