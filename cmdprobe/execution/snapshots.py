"""Restorable snapshots of whatever state a deployment calls "workspace".

The engine treats snapshot contents as opaque: a :class:`SnapshotProvider`
captures a blob, restores it and releases it. :class:`SnapshotManager`
adds identity, retention and eviction on top of any provider.
"""

from __future__ import annotations

import asyncio
import copy
import fnmatch
import itertools
import shutil
import tempfile
import time
from collections import OrderedDict
from collections.abc import MutableMapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from cmdprobe.core.exceptions import InfrastructureError, ResourceNotFoundError, ValidationError
from cmdprobe.core.logging import get_logger
from cmdprobe.models.base import utcnow

logger = get_logger(__name__)


@runtime_checkable
class SnapshotProvider(Protocol):
    """Port for capturing and restoring external state."""

    async def capture(self) -> Any:
        """Capture the current state as an opaque blob."""
        ...

    async def restore(self, blob: Any) -> None:
        """Put the state back exactly as it was when ``blob`` was captured."""
        ...

    async def discard(self, blob: Any) -> None:
        """Release any resources held by ``blob``."""
        ...


class InMemorySnapshotProvider:
    """Snapshot a mutable mapping by deep copy.

    Restoring mutates the same mapping object in place, so every holder of a
    reference sees the restored state.
    """

    def __init__(self, state: MutableMapping[str, Any]) -> None:
        self.state = state

    async def capture(self) -> dict[str, Any]:
        return copy.deepcopy(dict(self.state))

    async def restore(self, blob: dict[str, Any]) -> None:
        self.state.clear()
        self.state.update(copy.deepcopy(blob))

    async def discard(self, blob: dict[str, Any]) -> None:
        return None


class DirectorySnapshotProvider:
    """Snapshot a directory tree by copying it to a temporary location.

    Parameters
    ----------
    root : str | Path
        Workspace directory to protect
    exclude : Sequence[str]
        Top-level names left untouched by both capture and restore
    """

    def __init__(self, root: str | Path, exclude: Sequence[str] = (".git", ".cmdprobe")) -> None:
        self.root = Path(root)
        self.exclude = tuple(exclude)

    def _ignored(self, name: str) -> bool:
        return any(fnmatch.fnmatch(name, pattern) for pattern in self.exclude)

    def _capture(self) -> Path:
        if not self.root.is_dir():
            raise InfrastructureError("snapshot", f"workspace '{self.root}' is not a directory")
        holder = Path(tempfile.mkdtemp(prefix="cmdprobe-snapshot-"))
        target = holder / "tree"
        try:
            shutil.copytree(
                self.root,
                target,
                symlinks=True,
                ignore=lambda directory, names: [
                    n for n in names if Path(directory) == self.root and self._ignored(n)
                ],
            )
        except BaseException:
            shutil.rmtree(holder, ignore_errors=True)
            raise
        return target

    def _restore(self, blob: Path) -> None:
        if not blob.is_dir():
            raise InfrastructureError("snapshot", f"snapshot data '{blob}' is missing")
        for child in self.root.iterdir():
            if self._ignored(child.name):
                continue
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
        shutil.copytree(blob, self.root, symlinks=True, dirs_exist_ok=True)

    async def capture(self) -> Path:
        return await asyncio.to_thread(self._capture)

    async def restore(self, blob: Path) -> None:
        await asyncio.to_thread(self._restore, blob)

    async def discard(self, blob: Path) -> None:
        await asyncio.to_thread(shutil.rmtree, blob.parent, True)


@dataclass(slots=True)
class Snapshot:
    """A captured restore point."""

    id: str
    blob: Any
    created_at: datetime = field(default_factory=utcnow)
    operation_id: str | None = None


@dataclass(frozen=True, slots=True)
class SnapshotInfo:
    id: str
    created_at: datetime
    operation_id: str | None


class SnapshotManager:
    """Track snapshots taken through a provider.

    At most ``max_snapshots`` are held; creating one more evicts (and
    discards) the oldest.
    """

    def __init__(self, provider: SnapshotProvider, max_snapshots: int = 10) -> None:
        if max_snapshots < 1:
            raise ValidationError("max_snapshots", "must be at least 1", max_snapshots)
        self.provider = provider
        self.max_snapshots = max_snapshots
        self._snapshots: OrderedDict[str, Snapshot] = OrderedDict()
        self._counter = itertools.count(1)

    def _next_id(self) -> str:
        return f"snapshot_{next(self._counter)}_{int(time.time() * 1000)}"

    async def create(self, operation_id: str | None = None) -> Snapshot:
        """Capture a new snapshot.

        Raises
        ------
        InfrastructureError
            If the provider fails to capture
        """
        try:
            blob = await self.provider.capture()
        except InfrastructureError:
            raise
        except Exception as e:
            raise InfrastructureError("snapshot", str(e)) from e

        snapshot = Snapshot(id=self._next_id(), blob=blob, operation_id=operation_id)
        self._snapshots[snapshot.id] = snapshot
        logger.debug("Created snapshot {snapshot_id}", snapshot_id=snapshot.id)

        while len(self._snapshots) > self.max_snapshots:
            oldest_id, oldest = self._snapshots.popitem(last=False)
            logger.debug("Evicting snapshot {snapshot_id}", snapshot_id=oldest_id)
            await self._discard(oldest)
        return snapshot

    def get(self, snapshot_id: str) -> Snapshot:
        try:
            return self._snapshots[snapshot_id]
        except KeyError:
            raise ResourceNotFoundError("snapshot", snapshot_id, list(self._snapshots)) from None

    async def restore(self, snapshot_id: str) -> None:
        """Restore a snapshot; it stays available afterwards.

        Raises
        ------
        ResourceNotFoundError
            If no snapshot has that id
        InfrastructureError
            If the provider fails to restore
        """
        snapshot = self.get(snapshot_id)
        try:
            await self.provider.restore(snapshot.blob)
        except InfrastructureError:
            raise
        except Exception as e:
            raise InfrastructureError("snapshot", f"restore of {snapshot_id} failed: {e}") from e
        logger.info("Restored snapshot {snapshot_id}", snapshot_id=snapshot_id)

    async def delete(self, snapshot_id: str) -> bool:
        snapshot = self._snapshots.pop(snapshot_id, None)
        if snapshot is None:
            return False
        await self._discard(snapshot)
        return True

    async def clear(self) -> int:
        count = len(self._snapshots)
        while self._snapshots:
            _, snapshot = self._snapshots.popitem(last=False)
            await self._discard(snapshot)
        return count

    def available(self) -> list[SnapshotInfo]:
        return [SnapshotInfo(s.id, s.created_at, s.operation_id) for s in self._snapshots.values()]

    async def _discard(self, snapshot: Snapshot) -> None:
        try:
            await self.provider.discard(snapshot.blob)
        except Exception as e:
            logger.warning(
                "Failed to discard snapshot {snapshot_id}: {error}", snapshot_id=snapshot.id, error=e
            )
