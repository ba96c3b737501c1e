"""Append-only history of execution attempts.

:class:`ResultStore` keeps results in memory in append order;
:class:`JsonResultStore` additionally writes the whole history to a JSON
document after every change so that failed attempts survive restarts.
"""

from __future__ import annotations

import csv
import io
import json
from collections import Counter
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from cmdprobe.core.exceptions import ResourceNotFoundError, StorageError, ValidationError
from cmdprobe.core.logging import get_logger
from cmdprobe.models.base import RecordModel
from cmdprobe.models.results import TestResult
from cmdprobe.storage.json_store import JsonDocumentStore

logger = get_logger(__name__)

ExportFormat = Literal["json", "csv", "markdown"]
EXPORT_FORMATS: tuple[str, ...] = ("json", "csv", "markdown")

CSV_COLUMNS = (
    "id",
    "commandId",
    "timestamp",
    "success",
    "durationMs",
    "errorKind",
    "errorMessage",
    "sideEffects",
    "parameters",
    "notes",
)


@dataclass(frozen=True, slots=True)
class ResultSearchCriteria:
    """Filters for :meth:`ResultStore.search`; unset fields match everything.

    ``text`` is matched case-insensitively against the command id, notes,
    error message and serialized parameters.
    """

    operation_id: str | None = None
    success: bool | None = None
    since: datetime | None = None
    until: datetime | None = None
    has_side_effects: bool | None = None
    text: str | None = None

    def matches(self, result: TestResult) -> bool:
        outcome = result.outcome
        if self.operation_id is not None and result.command_id != self.operation_id:
            return False
        if self.success is not None and outcome.success != self.success:
            return False
        if self.since is not None and result.timestamp < self.since:
            return False
        if self.until is not None and result.timestamp > self.until:
            return False
        if self.has_side_effects is not None and bool(outcome.side_effects) != self.has_side_effects:
            return False
        if self.text:
            needle = self.text.lower()
            haystack = [
                result.command_id,
                result.notes,
                outcome.error.message if outcome.error else "",
                json.dumps(result.parameters, default=str),
            ]
            if not any(needle in part.lower() for part in haystack):
                return False
        return True


class OperationResultStats(RecordModel):
    total: int = 0
    successful: int = 0
    failed: int = 0
    average_duration_ms: float = 0.0


class ResultStatistics(RecordModel):
    """Aggregate view over the stored results."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    success_rate: float = 0.0
    average_duration_ms: float = 0.0
    by_operation: dict[str, OperationResultStats] = Field(default_factory=dict)
    by_error_kind: dict[str, int] = Field(default_factory=dict)


def compute_statistics(results: Iterable[TestResult]) -> ResultStatistics:
    """Aggregate counts, success rate and durations over ``results``."""
    results = list(results)
    if not results:
        return ResultStatistics()

    per_operation: dict[str, list[TestResult]] = {}
    for result in results:
        per_operation.setdefault(result.command_id, []).append(result)

    def _stats(items: list[TestResult]) -> OperationResultStats:
        successful = sum(1 for r in items if r.outcome.success)
        return OperationResultStats(
            total=len(items),
            successful=successful,
            failed=len(items) - successful,
            average_duration_ms=round(sum(r.outcome.duration_ms for r in items) / len(items), 2),
        )

    overall = _stats(results)
    error_kinds = Counter(r.outcome.error.kind for r in results if r.outcome.error is not None)
    return ResultStatistics(
        total=overall.total,
        successful=overall.successful,
        failed=overall.failed,
        success_rate=round(overall.successful / overall.total * 100, 1),
        average_duration_ms=overall.average_duration_ms,
        by_operation={op: _stats(items) for op, items in sorted(per_operation.items())},
        by_error_kind=dict(error_kinds.most_common()),
    )


class ResultStore:
    """In-memory, append-ordered store of :class:`TestResult` records.

    Records are never mutated; the only removal path is the administrative
    :meth:`purge`.
    """

    def __init__(self, results: Iterable[TestResult] = ()) -> None:
        self._results: list[TestResult] = list(results)

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self) -> Iterator[TestResult]:
        return iter(list(self._results))

    def append(self, result: TestResult) -> TestResult:
        self._results.append(result)
        logger.debug(
            "Recorded result {result_id} for {operation} (success={success})",
            result_id=result.id,
            operation=result.command_id,
            success=result.outcome.success,
        )
        self._persist()
        return result

    def get(self, result_id: str) -> TestResult:
        """Look up one result by id.

        Raises
        ------
        ResourceNotFoundError
            If no stored result has that id
        """
        for result in self._results:
            if result.id == result_id:
                return result
        raise ResourceNotFoundError("test result", result_id)

    def query(self, operation_id: str | None = None, limit: int | None = None) -> list[TestResult]:
        """Results in append order, optionally for one operation.

        ``limit`` keeps the most recent ``limit`` matches.
        """
        matches = [r for r in self._results if operation_id is None or r.command_id == operation_id]
        if limit is not None:
            matches = matches[-limit:] if limit > 0 else []
        return matches

    def search(self, criteria: ResultSearchCriteria) -> list[TestResult]:
        return [r for r in self._results if criteria.matches(r)]

    def operation_ids(self) -> list[str]:
        return sorted({r.command_id for r in self._results})

    def statistics(self) -> ResultStatistics:
        return compute_statistics(self._results)

    def export(self, format: ExportFormat = "json", results: Iterable[TestResult] | None = None) -> str:
        """Serialize results (all by default) as json, csv or markdown.

        Raises
        ------
        ValidationError
            If ``format`` is not one of :data:`EXPORT_FORMATS`
        """
        items = list(self._results if results is None else results)
        if format == "json":
            return json.dumps([r.to_document() for r in items], indent=2)
        if format == "csv":
            return _to_csv(items)
        if format == "markdown":
            return _to_markdown(items)
        raise ValidationError("format", f"must be one of {', '.join(EXPORT_FORMATS)}", format)

    def purge(self, operation_id: str | None = None, older_than: datetime | None = None) -> int:
        """Remove results matching every given filter; no filters removes all.

        Returns
        -------
        int
            Number of results removed
        """

        def _doomed(result: TestResult) -> bool:
            if operation_id is not None and result.command_id != operation_id:
                return False
            return older_than is None or result.timestamp < older_than

        kept = [r for r in self._results if not _doomed(r)]
        removed = len(self._results) - len(kept)
        if removed:
            self._results = kept
            logger.info("Purged {count} results", count=removed)
            self._persist()
        return removed

    def backup(self, path: str | Path) -> Path:
        """Write every result to ``path`` as a JSON array."""
        target = Path(path)
        JsonDocumentStore(target.parent).write(target.name, [r.to_document() for r in self._results])
        logger.info("Backed up {count} results to {path}", count=len(self._results), path=target)
        return target

    def restore(self, path: str | Path) -> int:
        """Replace the stored results with the contents of a backup.

        Raises
        ------
        StorageError
            If the backup is missing or malformed
        """
        source = Path(path)
        document = JsonDocumentStore(source.parent).read(source.name)
        if document is None:
            raise StorageError(str(source), "backup file does not exist")
        self._results = _parse_results(document, source)
        logger.info("Restored {count} results from {path}", count=len(self._results), path=source)
        self._persist()
        return len(self._results)

    def _persist(self) -> None:
        """Hook for durable subclasses."""


class JsonResultStore(ResultStore):
    """Result store persisted to a JSON document after every change.

    Parameters
    ----------
    storage : JsonDocumentStore
        Document store for the data directory
    file_name : str
        Name of the results document
    """

    def __init__(self, storage: JsonDocumentStore, file_name: str = "test-results.json") -> None:
        self._storage = storage
        self._file_name = file_name
        document = storage.read(file_name)
        results = [] if document is None else _parse_results(document, storage.path_for(file_name))
        super().__init__(results)
        logger.debug("Loaded {count} stored results", count=len(results))

    @property
    def path(self) -> Path:
        return self._storage.path_for(self._file_name)

    def _persist(self) -> None:
        self._storage.write(self._file_name, [r.to_document() for r in self._results])


def _parse_results(document: Any, path: Path) -> list[TestResult]:
    if not isinstance(document, list):
        raise StorageError(str(path), "expected a JSON array of results")
    try:
        return [TestResult.model_validate(item) for item in document]
    except PydanticValidationError as e:
        raise StorageError(str(path), str(e)) from e


def _to_csv(results: list[TestResult]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_COLUMNS)
    for r in results:
        outcome = r.outcome
        writer.writerow(
            [
                r.id,
                r.command_id,
                r.timestamp.isoformat(),
                outcome.success,
                round(outcome.duration_ms, 2),
                outcome.error.kind if outcome.error else "",
                outcome.error.message if outcome.error else "",
                len(outcome.side_effects),
                json.dumps(r.parameters, default=str),
                r.notes,
            ]
        )
    return buffer.getvalue()


def _to_markdown(results: list[TestResult]) -> str:
    stats = compute_statistics(results)
    lines = [
        "# Test Results",
        "",
        f"- Total: {stats.total}",
        f"- Successful: {stats.successful}",
        f"- Failed: {stats.failed}",
        f"- Success rate: {stats.success_rate}%",
        "",
        "| Command | Timestamp | Status | Duration (ms) | Side Effects | Error |",
        "|---|---|---|---|---|---|",
    ]
    for r in results:
        outcome = r.outcome
        status = "✅" if outcome.success else "❌"
        error = outcome.error.message.replace("|", "\\|").replace("\n", " ") if outcome.error else ""
        lines.append(
            f"| `{r.command_id}` | {r.timestamp.isoformat()} | {status} "
            f"| {outcome.duration_ms:.1f} | {len(outcome.side_effects)} | {error} |"
        )
    return "\n".join(lines) + "\n"
