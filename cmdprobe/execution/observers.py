"""Side-effect observation around a command invocation.

An observer takes a baseline before the call and compares against it
afterwards. Observation is best-effort: if taking the baseline or the
comparison fails, the call still runs and its outcome is reported
unchanged, with the observer failure recorded as a warning.
"""

from __future__ import annotations

import asyncio
import copy
import fnmatch
import hashlib
import os
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from cmdprobe.core.logging import get_logger
from cmdprobe.models.results import SideEffect, SideEffectType, to_jsonable

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_EXCLUDES = (".git/**", "**/__pycache__/**", "*.pyc", ".cmdprobe/**")
MAX_HASH_BYTES = 1024 * 1024


@dataclass(slots=True)
class Sample(Generic[T]):
    """Result of running a call under observation.

    Exactly one of ``value`` / ``error`` describes the call; ``side_effects``
    and ``warnings`` describe the observation.
    """

    value: T | None = None
    error: BaseException | None = None
    side_effects: list[SideEffect] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@runtime_checkable
class SideEffectObserver(Protocol):
    """Port for passive side-effect monitoring."""

    async def sample_during(self, call: Callable[[], Awaitable[T]]) -> Sample[T]:
        """Run ``call`` and report the side effects observed while it ran.

        Exceptions raised by ``call`` are captured in :attr:`Sample.error`,
        never raised.
        """
        ...


class BaselineObserver:
    """Observer built from a ``begin`` baseline and an ``end`` comparison."""

    name = "observer"

    async def begin(self) -> Any:
        return None

    async def end(self, baseline: Any) -> list[SideEffect]:
        return []

    async def sample_during(self, call: Callable[[], Awaitable[T]]) -> Sample[T]:
        return await sample_with([self], call)


async def sample_with(
    observers: Sequence[BaselineObserver], call: Callable[[], Awaitable[T]]
) -> Sample[T]:
    """Run ``call`` between the ``begin``/``end`` of every observer."""
    sample: Sample[T] = Sample()
    baselines: list[tuple[BaselineObserver, Any]] = []

    for observer in observers:
        try:
            baselines.append((observer, await observer.begin()))
        except Exception as e:
            logger.warning("Side-effect baseline failed in {name}: {error}", name=observer.name, error=e)
            sample.warnings.append(f"{observer.name} monitoring failure: {e}")

    try:
        sample.value = await call()
    except (asyncio.CancelledError, KeyboardInterrupt):
        raise
    except BaseException as e:
        # SystemExit and friends are command failures too
        sample.error = e

    for observer, baseline in baselines:
        try:
            sample.side_effects.extend(await observer.end(baseline))
        except Exception as e:
            logger.warning("Side-effect comparison failed in {name}: {error}", name=observer.name, error=e)
            sample.warnings.append(f"{observer.name} monitoring failure: {e}")
    return sample


class NullSideEffectObserver(BaselineObserver):
    """Observer for deployments without monitoring; reports no side effects."""

    name = "null"


class CompositeSideEffectObserver(BaselineObserver):
    """Combine several observers into one observation window."""

    name = "composite"

    def __init__(self, observers: Iterable[BaselineObserver]) -> None:
        self.observers = list(observers)

    async def sample_during(self, call: Callable[[], Awaitable[T]]) -> Sample[T]:
        return await sample_with(self.observers, call)


@dataclass(frozen=True, slots=True)
class FileFingerprint:
    size: int
    mtime_ns: int
    digest: str | None


class FileSystemObserver(BaselineObserver):
    """Detect files created, modified or deleted under a directory.

    Parameters
    ----------
    root : str | Path
        Directory to watch
    exclude : Sequence[str]
        Glob patterns, relative to ``root``, that are ignored
    """

    name = "filesystem"

    def __init__(self, root: str | Path, exclude: Sequence[str] = DEFAULT_EXCLUDES) -> None:
        self.root = Path(root)
        self.exclude = tuple(exclude)

    def _excluded(self, relative: str) -> bool:
        return any(fnmatch.fnmatch(relative, pattern) for pattern in self.exclude)

    def scan(self) -> dict[str, FileFingerprint]:
        """Fingerprint every non-excluded file under ``root``."""
        files: dict[str, FileFingerprint] = {}
        for dirpath, dirnames, filenames in os.walk(self.root):
            base = Path(dirpath)
            dirnames[:] = [
                d for d in dirnames if not self._excluded((base / d).relative_to(self.root).as_posix() + "/")
            ]
            for filename in filenames:
                path = base / filename
                relative = path.relative_to(self.root).as_posix()
                if self._excluded(relative):
                    continue
                try:
                    stat = path.stat()
                    digest = None
                    if stat.st_size <= MAX_HASH_BYTES:
                        digest = hashlib.sha256(path.read_bytes()).hexdigest()
                except OSError:
                    continue
                files[relative] = FileFingerprint(stat.st_size, stat.st_mtime_ns, digest)
        return files

    async def begin(self) -> dict[str, FileFingerprint]:
        return await asyncio.to_thread(self.scan)

    async def end(self, baseline: dict[str, FileFingerprint]) -> list[SideEffect]:
        current = await asyncio.to_thread(self.scan)
        effects: list[SideEffect] = []

        for relative in sorted(current.keys() - baseline.keys()):
            effects.append(
                SideEffect(
                    type=SideEffectType.FILE_CREATED,
                    description=f"File created: {relative}",
                    resource=relative,
                    changes={"size": {"before": 0, "after": current[relative].size}},
                )
            )
        for relative in sorted(baseline.keys() - current.keys()):
            effects.append(
                SideEffect(
                    type=SideEffectType.FILE_DELETED,
                    description=f"File deleted: {relative}",
                    resource=relative,
                )
            )
        for relative in sorted(baseline.keys() & current.keys()):
            before, after = baseline[relative], current[relative]
            if before == after:
                continue
            if before.digest and after.digest and before.digest == after.digest:
                # Touched but identical content
                continue
            changes: dict[str, Any] = {}
            if before.size != after.size:
                changes["size"] = {"before": before.size, "after": after.size}
            effects.append(
                SideEffect(
                    type=SideEffectType.FILE_MODIFIED,
                    description=f"File modified: {relative}",
                    resource=relative,
                    changes=changes or None,
                )
            )
        return effects


class MappingStateObserver(BaselineObserver):
    """Detect key-level changes in a mutable mapping (settings, host state).

    Each added, removed or changed key becomes one side effect of
    ``effect_type`` with ``before``/``after`` values.
    """

    name = "state"

    def __init__(
        self,
        state: Mapping[str, Any],
        effect_type: SideEffectType = SideEffectType.STATE_CHANGED,
        label: str = "State",
    ) -> None:
        self.state = state
        self.effect_type = effect_type
        self.label = label

    async def begin(self) -> dict[str, Any]:
        return copy.deepcopy(dict(self.state))

    async def end(self, baseline: dict[str, Any]) -> list[SideEffect]:
        current = dict(self.state)
        effects = []
        for key in sorted(baseline.keys() | current.keys(), key=str):
            before = baseline.get(key)
            after = current.get(key)
            if key in baseline and key in current and before == after:
                continue
            effects.append(
                SideEffect(
                    type=self.effect_type,
                    description=f"{self.label} changed: {key}",
                    resource=str(key),
                    changes={"before": to_jsonable(before), "after": to_jsonable(after)},
                )
            )
        return effects
