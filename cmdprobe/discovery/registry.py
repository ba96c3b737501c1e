"""Command registry port and an in-process implementation.

The core treats the host's registry as an opaque feed of
``(id, category, metadata)`` tuples plus a single ``invoke`` call. The
:class:`CallableRegistry` fulfils that contract for plain Python callables,
which is how commands are exposed to cmdprobe from configured modules.
"""

from __future__ import annotations

import asyncio
import contextvars
import importlib
import inspect
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from cmdprobe.core.exceptions import ConfigurationError, ResourceNotFoundError
from cmdprobe.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RegisteredCommand:
    """One entry of the host command registry."""

    id: str
    category: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


@runtime_checkable
class CommandRegistry(Protocol):
    """Port for enumerating and invoking host commands."""

    def list_commands(self) -> list[RegisteredCommand]:
        """Return every command the host currently exposes."""
        ...

    async def invoke(self, command_id: str, args: Mapping[str, Any]) -> Any:
        """Invoke ``command_id`` with keyword arguments ``args``.

        Raises
        ------
        ResourceNotFoundError
            If the command is not registered
        """
        ...


@dataclass(slots=True)
class _Entry:
    fn: Callable[..., Any]
    category: str | None
    metadata: dict[str, Any]


class CallableRegistry:
    """Registry of Python callables addressed by dotted command ids.

    Examples
    --------
    Example usage::

        registry = CallableRegistry()

        @registry.command("files.read_text")
        def read_text(path: str) -> str:
            ...

        await registry.invoke("files.read_text", {"path": "README.md"})
    """

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}

    def register(
        self,
        command_id: str,
        fn: Callable[..., Any],
        *,
        category: str | None = None,
        **metadata: Any,
    ) -> None:
        """Register ``fn`` under ``command_id``, replacing an earlier registration."""
        if not command_id:
            raise ConfigurationError("registry", "command id cannot be empty")
        if not callable(fn):
            raise ConfigurationError("registry", f"'{command_id}' is not callable")
        if "description" not in metadata:
            doc = inspect.getdoc(fn)
            if doc:
                metadata["description"] = doc.strip().splitlines()[0]
        self._entries[command_id] = _Entry(fn, category, metadata)
        logger.debug("Registered command {command}", command=command_id)

    def command(
        self, command_id: str | None = None, **metadata: Any
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of :meth:`register`; defaults the id to the function name."""

        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            self.register(command_id or fn.__name__, fn, **metadata)
            return fn

        return decorator

    def unregister(self, command_id: str) -> bool:
        return self._entries.pop(command_id, None) is not None

    def get_callable(self, command_id: str) -> Callable[..., Any]:
        """Return the callable behind ``command_id``.

        Raises
        ------
        ResourceNotFoundError
            If the command is not registered
        """
        entry = self._entries.get(command_id)
        if entry is None:
            raise ResourceNotFoundError("command", command_id, sorted(self._entries))
        return entry.fn

    def list_commands(self) -> list[RegisteredCommand]:
        return [
            RegisteredCommand(command_id, entry.category, dict(entry.metadata))
            for command_id, entry in self._entries.items()
        ]

    async def invoke(self, command_id: str, args: Mapping[str, Any]) -> Any:
        fn = self.get_callable(command_id)
        kwargs = dict(args)
        if inspect.iscoroutinefunction(fn):
            return await fn(**kwargs)

        # Sync callables run in the default executor with context vars copied
        ctx = contextvars.copy_context()

        def _run_sync() -> Any:
            return fn(**kwargs)

        result = await asyncio.get_running_loop().run_in_executor(None, ctx.run, _run_sync)
        if inspect.isawaitable(result):
            return await result
        return result

    def __contains__(self, command_id: object) -> bool:
        return command_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @classmethod
    def from_modules(cls, modules: Iterable[str]) -> CallableRegistry:
        """Register the public functions of each module.

        A module's ``__all__`` is honoured when present; otherwise every
        public function defined in the module itself is registered. Ids are
        ``<last module segment>.<function name>``.

        Raises
        ------
        ConfigurationError
            If a module cannot be imported
        """
        registry = cls()
        for module_name in modules:
            try:
                module = importlib.import_module(module_name)
            except ImportError as e:
                raise ConfigurationError("modules", f"cannot import '{module_name}': {e}") from e

            exported = getattr(module, "__all__", None)
            prefix = module_name.rsplit(".", 1)[-1]
            for name, obj in inspect.getmembers(module, inspect.isfunction):
                if exported is not None:
                    if name not in exported:
                        continue
                elif name.startswith("_") or obj.__module__ != module.__name__:
                    continue
                registry.register(f"{prefix}.{name}", obj, category=prefix)
            logger.info(
                "Registered commands from {module}", module=module_name
            )
        return registry
