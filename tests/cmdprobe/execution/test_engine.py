"""Tests for the guarded execution engine."""

import asyncio
import sys
from unittest.mock import MagicMock

import pytest

from cmdprobe.core.exceptions import InfrastructureError, StorageError
from cmdprobe.core.logging import get_correlation_id
from cmdprobe.discovery.registry import CallableRegistry
from cmdprobe.execution.engine import SafeExecutionEngine
from cmdprobe.execution.events import (
    ExecutionCompleted,
    ExecutionFailed,
    ExecutionStarted,
    ExecutionTimedOut,
    SnapshotRestored,
)
from cmdprobe.execution.observers import MappingStateObserver
from cmdprobe.execution.snapshots import InMemorySnapshotProvider
from cmdprobe.models.operation import Operation, Parameter, RiskLevel, Signature
from cmdprobe.models.results import (
    CONFIRMATION_REQUIRED_KIND,
    TIMEOUT_KIND,
    VALIDATION_FAILED_KIND,
    ExecutionOptions,
)
from cmdprobe.results.store import ResultStore


def _operation(command_id: str, risk: RiskLevel = RiskLevel.SAFE, signature: Signature | None = None) -> Operation:
    return Operation(id=command_id, category=command_id.split(".")[0], risk_level=risk, signature=signature)


@pytest.fixture
def store() -> ResultStore:
    return ResultStore()


@pytest.fixture
def engine(registry, store) -> SafeExecutionEngine:
    return SafeExecutionEngine(registry, store)


class TestSuccessfulExecution:
    """Test the happy path."""

    @pytest.mark.asyncio
    async def test_result_recorded(self, engine, store) -> None:
        """A successful call returns its result and is stored once."""
        outcome = await engine.execute(
            _operation("files.read_text"), {"path": "a.txt"}, notes="smoke"
        )
        assert outcome.success is True
        assert outcome.result == "contents of a.txt (utf-8)"
        assert outcome.error is None
        assert outcome.duration_ms >= 0
        assert len(store) == 1
        result = store.query()[0]
        assert result.command_id == "files.read_text"
        assert result.parameters == {"path": "a.txt"}
        assert result.notes == "smoke"
        assert result.outcome == outcome

    @pytest.mark.asyncio
    async def test_correlation_id_scoped_to_execution(self, store) -> None:
        """The callee sees a correlation id that is reset afterwards."""
        seen = []
        registry = CallableRegistry()
        registry.register("ids.capture", lambda: seen.append(get_correlation_id()))
        await SafeExecutionEngine(registry, store).execute(_operation("ids.capture"))
        assert seen[0] != "-"
        assert get_correlation_id() == "-"


class TestFailures:
    """Test callee errors and timeouts."""

    @pytest.mark.asyncio
    async def test_callee_exception(self, engine, store) -> None:
        """Exceptions become structured errors with a trace."""
        outcome = await engine.execute(_operation("jobs.explode"))
        assert outcome.success is False
        assert outcome.result is None
        assert outcome.error.kind == "ValueError"
        assert outcome.error.message == "invalid parameter: boom"
        assert outcome.error.recoverable is True
        assert "ValueError" in outcome.error.trace
        assert store.query()[0].outcome.success is False

    @pytest.mark.asyncio
    async def test_timeout(self, engine) -> None:
        """Calls exceeding the budget fail with the Timeout kind."""
        outcome = await engine.execute(
            _operation("jobs.wait"), {"seconds": 5}, ExecutionOptions(timeout_ms=50)
        )
        assert outcome.success is False
        assert outcome.error.kind == TIMEOUT_KIND
        assert outcome.error.message == "Command timed out after 50ms"
        assert outcome.error.recoverable is True
        assert outcome.duration_ms < 5000

    @pytest.mark.asyncio
    async def test_callee_timeout_error_is_not_engine_timeout(self, store) -> None:
        """A TimeoutError raised by the callee keeps its own kind."""

        async def flaky() -> None:
            raise TimeoutError("upstream timeout")

        registry = CallableRegistry()
        registry.register("net.flaky", flaky)
        outcome = await SafeExecutionEngine(registry, store).execute(_operation("net.flaky"))
        assert outcome.error.kind == "TimeoutError"
        assert outcome.error.message == "upstream timeout"

    @pytest.mark.asyncio
    async def test_value_returned_after_deadline_is_timeout(self, store) -> None:
        """A callee that swallows cancellation and returns late still timed out."""

        async def stubborn() -> str:
            try:
                await asyncio.sleep(0.5)
            except asyncio.CancelledError:
                return "late"
            return "on time"

        registry = CallableRegistry()
        registry.register("jobs.stubborn", stubborn)
        outcome = await SafeExecutionEngine(registry, store).execute(
            _operation("jobs.stubborn"), options=ExecutionOptions(timeout_ms=50)
        )

        assert outcome.success is False
        assert outcome.error.kind == TIMEOUT_KIND
        assert outcome.result is None
        assert store.query()[0].outcome.success is False

    @pytest.mark.asyncio
    async def test_callee_ignoring_cancellation_does_not_block(self, store) -> None:
        """The engine stops waiting even if the callee keeps running."""
        stop = asyncio.Event()

        async def relentless() -> None:
            while not stop.is_set():
                try:
                    await asyncio.sleep(0.01)
                except asyncio.CancelledError:
                    continue

        registry = CallableRegistry()
        registry.register("jobs.relentless", relentless)
        try:
            outcome = await asyncio.wait_for(
                SafeExecutionEngine(registry, store).execute(
                    _operation("jobs.relentless"), options=ExecutionOptions(timeout_ms=30)
                ),
                timeout=2,
            )
        finally:
            stop.set()
            await asyncio.sleep(0.05)

        assert outcome.error.kind == TIMEOUT_KIND
        assert outcome.duration_ms < 2000


class TestGuards:
    """Test refusals before the callee runs."""

    @pytest.mark.asyncio
    async def test_destructive_requires_confirmation(self, store) -> None:
        """Unconfirmed destructive commands are refused and recorded."""
        callee = MagicMock(return_value=True)
        registry = CallableRegistry()
        registry.register("files.remove", callee)
        engine = SafeExecutionEngine(registry, store)

        outcome = await engine.execute(_operation("files.remove", RiskLevel.DESTRUCTIVE), {"path": "x"})
        assert outcome.success is False
        assert outcome.error.kind == CONFIRMATION_REQUIRED_KIND
        callee.assert_not_called()
        assert len(store) == 1

        confirmed = await engine.execute(
            _operation("files.remove", RiskLevel.DESTRUCTIVE),
            {"path": "x"},
            ExecutionOptions(confirmed=True),
        )
        assert confirmed.success is True
        callee.assert_called_once_with(path="x")

    @pytest.mark.asyncio
    async def test_confirmation_can_be_disabled(self, engine) -> None:
        """require_confirmation=False skips the guard."""
        outcome = await engine.execute(
            _operation("files.remove_file", RiskLevel.DESTRUCTIVE),
            {"path": "x"},
            ExecutionOptions(require_confirmation=False),
        )
        assert outcome.success is True

    @pytest.mark.asyncio
    async def test_validation_failure_refuses(self, engine) -> None:
        """With validate set, invalid arguments never reach the callee."""
        signature = Signature(parameters=(Parameter(name="path", type="string", required=True),))
        outcome = await engine.execute(
            _operation("files.read_text", signature=signature), {}, ExecutionOptions(validate_args=True)
        )
        assert outcome.error.kind == VALIDATION_FAILED_KIND
        assert "Required parameter 'path' is missing" in outcome.error.message

    @pytest.mark.asyncio
    async def test_validation_coerces_arguments(self, engine, store) -> None:
        """Lossless conversions are applied before the call."""
        signature = Signature(parameters=(Parameter(name="seconds", type="number", required=True),))
        outcome = await engine.execute(
            _operation("jobs.wait", signature=signature), {"seconds": "0"}, ExecutionOptions(validate=True)
        )
        assert outcome.success is True
        assert store.query()[0].parameters == {"seconds": 0}


class TestSnapshots:
    """Test snapshot, rollback and side-effect capture."""

    @pytest.mark.asyncio
    async def test_failed_call_rolls_back_state(self, store) -> None:
        """State changed by a failing call is restored; the change is still reported."""
        state = {"theme": "light", "files": ["a"]}

        def break_things() -> None:
            state["theme"] = "dark"
            state["files"].append("b")
            raise RuntimeError("crash")

        registry = CallableRegistry()
        registry.register("settings.break_things", break_things)
        engine = SafeExecutionEngine(
            registry,
            store,
            snapshot_provider=InMemorySnapshotProvider(state),
            observer=MappingStateObserver(state),
        )
        events = []
        engine.add_listener(events.append)

        outcome = await engine.execute(
            _operation("settings.break_things"), options=ExecutionOptions(create_snapshot=True)
        )

        assert outcome.success is False
        assert outcome.error.kind == "RuntimeError"
        assert state == {"theme": "light", "files": ["a"]}
        assert {e.resource for e in outcome.side_effects} == {"files", "theme"}
        assert outcome.snapshot_id is None
        assert engine.available_snapshots() == []
        assert any(isinstance(e, SnapshotRestored) for e in events)

    @pytest.mark.asyncio
    async def test_sys_exit_rolls_back_and_is_recorded(self, store) -> None:
        """A command calling sys.exit is an ordinary, recorded failure."""
        state = {"a": 1}

        def cli_like() -> None:
            state["a"] = 2
            sys.exit(2)

        registry = CallableRegistry()
        registry.register("tool.cli_like", cli_like)
        engine = SafeExecutionEngine(registry, store, snapshot_provider=InMemorySnapshotProvider(state))

        outcome = await engine.execute(
            _operation("tool.cli_like"), options=ExecutionOptions(create_snapshot=True)
        )

        assert outcome.success is False
        assert outcome.error.kind == "CommandExitError"
        assert outcome.error.message == "Command 'tool.cli_like' exited with status 2"
        assert state == {"a": 1}
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_async_sys_exit_is_recorded(self, store) -> None:
        """SystemExit from a coroutine does not escape the engine."""

        async def quit_early() -> None:
            raise SystemExit("bye")

        registry = CallableRegistry()
        registry.register("tool.quit_early", quit_early)
        outcome = await SafeExecutionEngine(registry, store).execute(_operation("tool.quit_early"))

        assert outcome.error.kind == "CommandExitError"
        assert "bye" in outcome.error.message
        assert store.query()[0].outcome.success is False

    @pytest.mark.asyncio
    async def test_success_keeps_changes(self, store) -> None:
        """Successful calls are not rolled back."""
        state = {"count": 1}
        registry = CallableRegistry()
        registry.register("state.bump", lambda: state.update(count=2))
        engine = SafeExecutionEngine(registry, store, snapshot_provider=InMemorySnapshotProvider(state))
        outcome = await engine.execute(_operation("state.bump"), options=ExecutionOptions(create_snapshot=True))
        assert outcome.success is True
        assert state == {"count": 2}

    @pytest.mark.asyncio
    async def test_retained_snapshot_can_be_restored(self, store) -> None:
        """A retained snapshot is listed and restorable later."""
        state = {"count": 1}
        registry = CallableRegistry()
        registry.register("state.bump", lambda: state.update(count=2))
        engine = SafeExecutionEngine(registry, store, snapshot_provider=InMemorySnapshotProvider(state))

        outcome = await engine.execute(
            _operation("state.bump"), options=ExecutionOptions(create_snapshot=True, retain_snapshot=True)
        )
        assert [s.id for s in engine.available_snapshots()] == [outcome.snapshot_id]

        await engine.restore_snapshot(outcome.snapshot_id)
        assert state == {"count": 1}
        assert await engine.clear_snapshots() == 1
        assert await engine.delete_snapshot(outcome.snapshot_id) is False

    @pytest.mark.asyncio
    async def test_snapshot_without_provider_warns(self, engine) -> None:
        """Requesting a snapshot without a provider only warns."""
        outcome = await engine.execute(
            _operation("files.read_text"), {"path": "a"}, ExecutionOptions(create_snapshot=True)
        )
        assert outcome.success is True
        assert outcome.warnings == ("Snapshot requested but no snapshot provider is configured",)

    @pytest.mark.asyncio
    async def test_restore_without_provider(self, engine) -> None:
        """Snapshot administration needs a provider."""
        with pytest.raises(InfrastructureError):
            await engine.restore_snapshot("snapshot_1_0")

    @pytest.mark.asyncio
    async def test_restore_failure_keeps_timeout_outcome(self, store) -> None:
        """A failing rollback is a warning on top of the original timeout."""

        class BrokenRestore(InMemorySnapshotProvider):
            async def restore(self, blob) -> None:
                raise OSError("read-only")

        registry = CallableRegistry()

        async def hang() -> None:
            await asyncio.sleep(5)

        registry.register("jobs.hang", hang)
        engine = SafeExecutionEngine(registry, store, snapshot_provider=BrokenRestore({}))
        outcome = await engine.execute(
            _operation("jobs.hang"), options=ExecutionOptions(timeout_ms=20, create_snapshot=True)
        )
        assert outcome.error.kind == TIMEOUT_KIND
        assert len(outcome.warnings) == 1
        assert "read-only" in outcome.warnings[0]
        assert outcome.snapshot_id is not None
        assert [s.id for s in engine.available_snapshots()] == [outcome.snapshot_id]


class TestListeners:
    """Test event delivery."""

    @pytest.mark.asyncio
    async def test_event_sequence(self, engine) -> None:
        """Started then Completed for a success; async listeners are awaited."""
        received = []

        async def listener(event) -> None:
            received.append(event)

        engine.add_listener(listener)
        await engine.execute(_operation("files.read_text"), {"path": "a"})
        assert [type(e) for e in received] == [ExecutionStarted, ExecutionCompleted]
        assert received[0].args == {"path": "a"}

    @pytest.mark.asyncio
    async def test_timeout_events(self, engine) -> None:
        """Timeouts emit TimedOut before Failed."""
        received = []
        engine.add_listener(received.append)
        await engine.execute(_operation("jobs.wait"), {"seconds": 5}, ExecutionOptions(timeout_ms=20))
        assert [type(e) for e in received] == [ExecutionStarted, ExecutionTimedOut, ExecutionFailed]

    @pytest.mark.asyncio
    async def test_failing_listener_is_isolated(self, engine) -> None:
        """A raising listener does not affect the outcome or other listeners."""
        received = []

        def broken(event) -> None:
            raise RuntimeError("listener bug")

        engine.add_listener(broken)
        engine.add_listener(received.append)
        outcome = await engine.execute(_operation("files.read_text"), {"path": "a"})
        assert outcome.success is True
        assert len(received) == 2

        engine.remove_listener(received.append)
        engine.remove_listener(broken)


class TestResultPersistence:
    """Test result-store failures."""

    @pytest.mark.asyncio
    async def test_persist_failure_becomes_warning(self, registry) -> None:
        """The outcome survives a failing store, with a warning."""

        class FailingStore(ResultStore):
            def _persist(self) -> None:
                raise StorageError("results.json", "disk full")

        outcome = await SafeExecutionEngine(registry, FailingStore()).execute(
            _operation("files.read_text"), {"path": "a"}
        )
        assert outcome.success is True
        assert outcome.warnings == ("Storage error for 'results.json': disk full",)
