"""Merge automatically researched signatures with manual parameter entries.

Merging is a pure projection: the input operation is never modified and the
same inputs always produce the same output, so merging an already merged
operation with the same entries is a no-op.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from cmdprobe.core.logging import get_logger
from cmdprobe.models.manual import ManualParameterEntry
from cmdprobe.models.operation import (
    Confidence,
    Operation,
    Parameter,
    ParameterSource,
    Signature,
)

logger = get_logger(__name__)

MANUAL_SOURCE = ParameterSource.MANUAL.value


def merge_signature(
    signature: Signature | None, entries: Sequence[ManualParameterEntry]
) -> Signature | None:
    """Combine an automatic signature with manual entries.

    Parameters
    ----------
    signature : Signature | None
        Signature produced by research, possibly from an earlier merge
    entries : Sequence[ManualParameterEntry]
        Manual entries for the same command

    Returns
    -------
    Signature | None
        ``signature`` unchanged when there are no entries, otherwise a new
        signature whose manual parameters come first, followed by every
        automatic parameter without a manual counterpart

    Notes
    -----
    Parameters already tagged ``manual`` in ``signature`` are leftovers from a
    previous merge. They are replaced by the current entries, which keeps the
    merge idempotent and lets removed entries disappear.
    """
    if not entries:
        return signature

    manual: dict[str, Parameter] = {}
    for entry in entries:
        manual[entry.parameter.name] = entry.parameter

    automatic = [
        p
        for p in (signature.parameters if signature else ())
        if p.source is not ParameterSource.MANUAL and p.name not in manual
    ]

    sources = list(signature.sources) if signature else []
    if MANUAL_SOURCE not in sources:
        sources.append(MANUAL_SOURCE)

    latest_edit = max(entry.modified_at for entry in entries)
    researched_at = max(signature.researched_at, latest_edit) if signature else latest_edit

    return Signature(
        parameters=(*manual.values(), *automatic),
        return_type=signature.return_type if signature else None,
        is_async=signature.is_async if signature else False,
        confidence=Confidence.HIGH,
        sources=tuple(sources),
        researched_at=researched_at,
    )


def merge(operation: Operation, entries: Iterable[ManualParameterEntry]) -> Operation:
    """Project manual entries onto an operation's signature.

    Entries for other commands are ignored.

    Examples
    --------
    >>> from cmdprobe.models import Operation, Parameter, ManualParameterEntry
    >>> op = Operation(id="files.open", category="files")
    >>> entry = ManualParameterEntry(
    ...     command_id="files.open", parameter=Parameter(name="path", type="string")
    ... )
    >>> merge(op, [entry]).signature.confidence
    <Confidence.HIGH: 'high'>
    """
    relevant = []
    for entry in entries:
        if entry.command_id != operation.id:
            logger.debug(
                "Skipping manual entry for {other} while merging {command}",
                other=entry.command_id,
                command=operation.id,
            )
            continue
        relevant.append(entry)

    if not relevant:
        return operation

    merged = merge_signature(operation.signature, relevant)
    return operation.model_copy(update={"signature": merged})


def merge_all(
    operations: Iterable[Operation],
    entries_by_command: Mapping[str, Sequence[ManualParameterEntry]],
) -> list[Operation]:
    """Merge every operation with its entries from ``entries_by_command``."""
    return [merge(op, entries_by_command.get(op.id, ())) for op in operations]
