"""Store of manual parameter entries, keyed by command id."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from cmdprobe.core.exceptions import ResourceNotFoundError, StorageError
from cmdprobe.core.logging import get_logger
from cmdprobe.models.base import utcnow
from cmdprobe.models.manual import ManualParameterEntry
from cmdprobe.models.operation import Parameter
from cmdprobe.storage.json_store import JsonDocumentStore

logger = get_logger(__name__)


class ManualEntryStore:
    """Add, update and remove manual parameter entries.

    Within one command, entries are unique by parameter name: adding an
    entry for a name that already exists replaces it (keeping the original
    ``created_at``). When a document store is supplied, every mutation is
    written through immediately.

    Parameters
    ----------
    storage : JsonDocumentStore | None
        Optional persistence backend
    file_name : str
        Document name inside ``storage``
    """

    def __init__(
        self,
        storage: JsonDocumentStore | None = None,
        file_name: str = "manual-parameters.json",
    ) -> None:
        self._storage = storage
        self._file_name = file_name
        self._entries: dict[str, list[ManualParameterEntry]] = {}
        if storage is not None:
            self._load()

    def _load(self) -> None:
        assert self._storage is not None
        document = self._storage.read(self._file_name) or {}
        try:
            self._entries = {
                command_id: [ManualParameterEntry.model_validate(item) for item in items]
                for command_id, items in document.items()
            }
        except (PydanticValidationError, AttributeError) as e:
            raise StorageError(str(self._storage.path_for(self._file_name)), str(e)) from e
        logger.debug(
            "Loaded manual entries for {count} commands", count=len(self._entries)
        )

    def _commit(self, command_id: str, entries: list[ManualParameterEntry]) -> None:
        """Write the changed entries of one command, then adopt them in memory.

        A failed write leaves the in-memory state untouched.
        """
        staged = dict(self._entries)
        if entries:
            staged[command_id] = entries
        else:
            staged.pop(command_id, None)
        if self._storage is not None:
            document = {cid: [entry.to_document() for entry in items] for cid, items in staged.items()}
            self._storage.write(self._file_name, document)
        self._entries = staged

    def add_entry(self, entry: ManualParameterEntry) -> ManualParameterEntry:
        """Add an entry, replacing any entry with the same parameter name.

        Returns
        -------
        ManualParameterEntry
            The stored entry (with refreshed ``modified_at`` on replacement)
        """
        entries = list(self._entries.get(entry.command_id, []))
        action = "Added"
        for index, existing in enumerate(entries):
            if existing.name == entry.name:
                stored = entry.model_copy(
                    update={"created_at": existing.created_at, "modified_at": utcnow()}
                )
                entries[index] = stored
                action = "Replaced"
                break
        else:
            stored = entry
            entries.append(stored)
        self._commit(entry.command_id, entries)
        logger.info(
            "{action} manual parameter {name} on {command}",
            action=action,
            name=entry.name,
            command=entry.command_id,
        )
        return stored

    def update_entry(self, command_id: str, name: str, **changes: Any) -> ManualParameterEntry:
        """Update fields of an existing entry.

        ``changes`` may contain entry fields (``notes``, ``examples``,
        ``validation_rules``) and parameter fields (``type``, ``required``,
        ``description``, ``default_value``). Renaming is done with ``name``.

        Raises
        ------
        ResourceNotFoundError
            If no entry with that name exists for the command
        """
        entries = list(self._entries.get(command_id, []))
        index = next((i for i, e in enumerate(entries) if e.name == name), None)
        if index is None:
            raise ResourceNotFoundError(
                "manual parameter", f"{command_id}:{name}", [e.name for e in entries]
            )
        current = entries[index]

        parameter_fields = set(Parameter.model_fields)
        parameter_changes = {k: v for k, v in changes.items() if k in parameter_fields}
        entry_changes = {k: v for k, v in changes.items() if k not in parameter_fields}

        data = current.model_dump()
        data["parameter"] = {**data["parameter"], **parameter_changes}
        data.update(entry_changes)
        data["modified_at"] = utcnow()
        updated = ManualParameterEntry.model_validate(data)

        new_name = updated.name
        if new_name != name:
            # A rename must not leave two entries with the same name
            entries[:] = [e for i, e in enumerate(entries) if i == index or e.name != new_name]
            index = entries.index(current)
        entries[index] = updated
        self._commit(command_id, entries)
        return updated

    def remove_entry(self, command_id: str, name: str) -> bool:
        """Remove the entry for ``name``; returns False if there was none."""
        entries = self._entries.get(command_id, [])
        remaining = [e for e in entries if e.name != name]
        if len(remaining) == len(entries):
            return False
        self._commit(command_id, remaining)
        logger.info("Removed manual parameter {name} from {command}", name=name, command=command_id)
        return True

    def get_entries(self, command_id: str) -> list[ManualParameterEntry]:
        return list(self._entries.get(command_id, []))

    def all_entries(self) -> dict[str, list[ManualParameterEntry]]:
        return {command_id: list(entries) for command_id, entries in self._entries.items()}

    def operation_ids(self) -> list[str]:
        return [command_id for command_id, entries in self._entries.items() if entries]
