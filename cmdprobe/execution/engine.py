"""Safe execution of registry commands.

The engine wraps one invocation with the guards a tester needs around
commands of unknown behavior: a confirmation gate for destructive
commands, optional argument validation, a restorable snapshot, a timeout,
side-effect observation and automatic persistence of the outcome.

Callee failures never propagate out of :meth:`SafeExecutionEngine.execute`;
they are returned as a failed :class:`ExecutionOutcome` and recorded in the
result store.
"""

from __future__ import annotations

import asyncio
import inspect
import time
import traceback
import uuid
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from cmdprobe.core.exceptions import (
    CmdProbeError,
    CommandExitError,
    ConfirmationRequiredError,
    InfrastructureError,
)
from cmdprobe.core.logging import correlation_id, get_logger
from cmdprobe.discovery.registry import CommandRegistry
from cmdprobe.execution.events import (
    Event,
    ExecutionCompleted,
    ExecutionFailed,
    ExecutionStarted,
    ExecutionTimedOut,
    SnapshotRestored,
)
from cmdprobe.execution.observers import NullSideEffectObserver, SideEffectObserver
from cmdprobe.execution.snapshots import Snapshot, SnapshotInfo, SnapshotManager, SnapshotProvider
from cmdprobe.models.operation import Operation
from cmdprobe.models.results import (
    CONFIRMATION_REQUIRED_KIND,
    TIMEOUT_KIND,
    VALIDATION_FAILED_KIND,
    ExecutionError,
    ExecutionOptions,
    ExecutionOutcome,
    TestResult,
    to_jsonable,
)
from cmdprobe.results.store import ResultStore
from cmdprobe.validation.validator import ParameterValidator, format_validation_errors

logger = get_logger(__name__)

EventListener = Callable[[Event], Awaitable[None] | None]


class SafeExecutionEngine:
    """Invoke operations through a :class:`CommandRegistry` under guard.

    Parameters
    ----------
    registry : CommandRegistry
        Where operations are actually invoked
    result_store : ResultStore
        Receives one :class:`TestResult` per attempt, refusals included
    snapshot_provider : SnapshotProvider | None
        Captures the deployment's "workspace"; without one, snapshot
        requests only produce a warning
    observer : SideEffectObserver | None
        Passive side-effect monitoring around the call
    validator : ParameterValidator | None
        Used when ``ExecutionOptions.validate`` is set
    max_snapshots : int
        Retained snapshots kept before the oldest is evicted

    Examples
    --------
    Example usage::

        engine = SafeExecutionEngine(registry, ResultStore())
        outcome = await engine.execute(operation, {"path": "a.txt"}, ExecutionOptions(timeout_ms=5000))
    """

    def __init__(
        self,
        registry: CommandRegistry,
        result_store: ResultStore,
        *,
        snapshot_provider: SnapshotProvider | None = None,
        observer: SideEffectObserver | None = None,
        validator: ParameterValidator | None = None,
        max_snapshots: int = 10,
    ) -> None:
        self.registry = registry
        self.result_store = result_store
        self.observer: SideEffectObserver = observer or NullSideEffectObserver()
        self.validator = validator or ParameterValidator()
        self.snapshots = (
            SnapshotManager(snapshot_provider, max_snapshots) if snapshot_provider is not None else None
        )
        self._listeners: list[EventListener] = []
        # Timed-out calls still winding down; referenced so they are not collected
        self._abandoned: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _emit(self, event: Event) -> None:
        logger.debug(event.log_message())
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(
                    "Event listener {listener} failed on {event}: {error}",
                    listener=getattr(listener, "__name__", repr(listener)),
                    event=type(event).__name__,
                    error=e,
                )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(
        self,
        operation: Operation,
        args: Mapping[str, Any] | None = None,
        options: ExecutionOptions | None = None,
        *,
        notes: str = "",
        execution_context: Mapping[str, Any] | None = None,
    ) -> ExecutionOutcome:
        """Execute ``operation`` with ``args`` and record the outcome.

        Parameters
        ----------
        operation : Operation
            The discovered operation to invoke
        args : Mapping[str, Any] | None
            Arguments passed to the callee
        options : ExecutionOptions | None
            Timeout, snapshot and confirmation settings
        notes : str
            Free text stored with the test result
        execution_context : Mapping[str, Any] | None
            Host context used by validation rules

        Returns
        -------
        ExecutionOutcome
            The outcome, already appended to the result store
        """
        options = options or ExecutionOptions()
        args = dict(args or {})
        execution_id = uuid.uuid4().hex[:12]
        token = correlation_id.set(execution_id)
        try:
            outcome = await self._execute(operation, args, options, execution_id, execution_context)
            return self._record(operation, args, outcome, notes)
        finally:
            correlation_id.reset(token)

    async def _execute(
        self,
        operation: Operation,
        args: dict[str, Any],
        options: ExecutionOptions,
        execution_id: str,
        execution_context: Mapping[str, Any] | None,
    ) -> ExecutionOutcome:
        if options.require_confirmation and operation.is_destructive and not options.confirmed:
            message = str(ConfirmationRequiredError(operation.id))
            logger.warning(message)
            return await self._refuse(operation, execution_id, CONFIRMATION_REQUIRED_KIND, message)

        if options.validate_args:
            validation = self.validator.validate_operation(operation, args, execution_context)
            if not validation.valid:
                message = format_validation_errors(validation.errors)
                return await self._refuse(operation, execution_id, VALIDATION_FAILED_KIND, message)
            args.update(validation.coerced_args)

        warnings: list[str] = []
        snapshot = await self._take_snapshot(operation, options, warnings)

        await self._emit(
            ExecutionStarted(
                operation_id=operation.id,
                execution_id=execution_id,
                args=to_jsonable(args),
                snapshot_id=snapshot.id if snapshot else None,
            )
        )

        timed_out = False

        async def _timed_call() -> Any:
            nonlocal timed_out
            task = asyncio.create_task(self._invoke(operation.id, args))
            try:
                done, _ = await asyncio.wait({task}, timeout=options.timeout_ms / 1000)
            except asyncio.CancelledError:
                task.cancel()
                raise
            if not done:
                timed_out = True
                self._abandon(task)
                raise TimeoutError(f"{operation.id} did not finish in {options.timeout_ms}ms")
            return task.result()

        start = time.perf_counter()
        sample = await self.observer.sample_during(_timed_call)
        duration_ms = (time.perf_counter() - start) * 1000
        warnings.extend(sample.warnings)

        error: ExecutionError | None = None
        if timed_out:
            # Whatever the callee does after the deadline is ignored
            error = ExecutionError(
                message=f"Command timed out after {options.timeout_ms}ms",
                kind=TIMEOUT_KIND,
                recoverable=True,
            )
            await self._emit(
                ExecutionTimedOut(
                    operation_id=operation.id,
                    execution_id=execution_id,
                    timeout_ms=options.timeout_ms,
                )
            )
        elif sample.error is not None:
            trace = "".join(traceback.format_exception(sample.error))
            error = ExecutionError.from_exception(sample.error, trace)

        snapshot_id = None
        if snapshot is not None:
            snapshot_id = await self._settle_snapshot(
                operation, snapshot, failed=error is not None, retain=options.retain_snapshot, warnings=warnings
            )

        outcome = ExecutionOutcome(
            success=error is None,
            duration_ms=round(duration_ms, 3),
            result=to_jsonable(sample.value) if error is None else None,
            error=error,
            side_effects=tuple(sample.side_effects),
            warnings=tuple(warnings),
            snapshot_id=snapshot_id,
        )

        if error is None:
            logger.info(
                "Command {operation} succeeded in {duration:.1f}ms",
                operation=operation.id,
                duration=duration_ms,
            )
            await self._emit(
                ExecutionCompleted(
                    operation_id=operation.id,
                    execution_id=execution_id,
                    duration_ms=outcome.duration_ms,
                    side_effect_count=len(outcome.side_effects),
                )
            )
        else:
            logger.warning(
                "Command {operation} failed ({kind}): {message}",
                operation=operation.id,
                kind=error.kind,
                message=error.message,
            )
            await self._emit(
                ExecutionFailed(
                    operation_id=operation.id,
                    execution_id=execution_id,
                    error_kind=error.kind,
                    message=error.message,
                    duration_ms=outcome.duration_ms,
                )
            )
        return outcome

    async def _invoke(self, operation_id: str, args: dict[str, Any]) -> Any:
        try:
            return await self.registry.invoke(operation_id, args)
        except SystemExit as e:
            # Must not escape the task: asyncio re-raises it in the event loop
            raise CommandExitError(operation_id, e.code) from e

    def _abandon(self, task: asyncio.Task[Any]) -> None:
        """Cancel a timed-out call without waiting for it to wind down."""
        task.cancel()
        self._abandoned.add(task)

        def _forget(done: asyncio.Task[Any]) -> None:
            self._abandoned.discard(done)
            if not done.cancelled() and done.exception() is not None:
                logger.debug("Abandoned call ended with {error!r}", error=done.exception())

        task.add_done_callback(_forget)

    async def _refuse(
        self, operation: Operation, execution_id: str, kind: str, message: str
    ) -> ExecutionOutcome:
        """Outcome for an attempt stopped before the callee was invoked."""
        await self._emit(
            ExecutionFailed(
                operation_id=operation.id, execution_id=execution_id, error_kind=kind, message=message
            )
        )
        return ExecutionOutcome(
            success=False,
            error=ExecutionError(message=message, kind=kind, recoverable=True),
        )

    async def _take_snapshot(
        self, operation: Operation, options: ExecutionOptions, warnings: list[str]
    ) -> Snapshot | None:
        if not options.create_snapshot:
            return None
        if self.snapshots is None:
            warnings.append("Snapshot requested but no snapshot provider is configured")
            return None
        try:
            return await self.snapshots.create(operation.id)
        except InfrastructureError as e:
            logger.error("Snapshot before {operation} failed: {error}", operation=operation.id, error=e)
            warnings.append(str(e))
            return None

    async def _settle_snapshot(
        self,
        operation: Operation,
        snapshot: Snapshot,
        *,
        failed: bool,
        retain: bool,
        warnings: list[str],
    ) -> str | None:
        """Roll back on failure, then keep or discard the snapshot.

        Returns the snapshot id when it remains available.
        """
        assert self.snapshots is not None
        if failed:
            try:
                await self.snapshots.restore(snapshot.id)
                await self._emit(SnapshotRestored(operation_id=operation.id, snapshot_id=snapshot.id))
            except CmdProbeError as e:
                logger.error(
                    "Rollback of {snapshot_id} failed: {error}", snapshot_id=snapshot.id, error=e
                )
                warnings.append(str(e))
                # Keep the snapshot so it can be restored manually
                return snapshot.id
        if retain:
            return snapshot.id
        await self.snapshots.delete(snapshot.id)
        return None

    def _record(
        self, operation: Operation, args: dict[str, Any], outcome: ExecutionOutcome, notes: str
    ) -> ExecutionOutcome:
        result = TestResult(
            command_id=operation.id, parameters=to_jsonable(args), outcome=outcome, notes=notes
        )
        try:
            self.result_store.append(result)
        except CmdProbeError as e:
            logger.error("Could not persist result for {operation}: {error}", operation=operation.id, error=e)
            outcome = outcome.model_copy(update={"warnings": (*outcome.warnings, str(e))})
        return outcome

    # ------------------------------------------------------------------
    # Snapshot administration
    # ------------------------------------------------------------------

    def available_snapshots(self) -> list[SnapshotInfo]:
        return self.snapshots.available() if self.snapshots else []

    async def restore_snapshot(self, snapshot_id: str) -> None:
        """Restore a retained snapshot.

        Raises
        ------
        InfrastructureError
            If no snapshot provider is configured or the restore fails
        ResourceNotFoundError
            If no snapshot has that id
        """
        if self.snapshots is None:
            raise InfrastructureError("snapshot", "no snapshot provider is configured")
        await self.snapshots.restore(snapshot_id)

    async def delete_snapshot(self, snapshot_id: str) -> bool:
        return await self.snapshots.delete(snapshot_id) if self.snapshots else False

    async def clear_snapshots(self) -> int:
        return await self.snapshots.clear() if self.snapshots else 0
