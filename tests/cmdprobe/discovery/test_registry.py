"""Tests for the in-process callable registry."""

import pytest

from cmdprobe.core.exceptions import ConfigurationError, ResourceNotFoundError
from cmdprobe.discovery.registry import CallableRegistry, CommandRegistry


class TestCallableRegistry:
    """Test registration and invocation."""

    def test_satisfies_protocol(self, registry) -> None:
        """The registry implements the CommandRegistry port."""
        assert isinstance(registry, CommandRegistry)

    def test_decorator_registration(self) -> None:
        """The decorator defaults the id to the function name."""
        reg = CallableRegistry()

        @reg.command(category="math")
        def add(a: int, b: int) -> int:
            """Add two numbers.

            More text.
            """
            return a + b

        (command,) = reg.list_commands()
        assert command.id == "add"
        assert command.category == "math"
        assert command.metadata["description"] == "Add two numbers."

    def test_rejects_non_callable(self) -> None:
        """Only callables can be registered."""
        with pytest.raises(ConfigurationError):
            CallableRegistry().register("x.y", 42)  # type: ignore[arg-type]

    def test_unregister(self, registry) -> None:
        """Unregistered commands disappear; unknown ids report False."""
        assert registry.unregister("jobs.explode") is True
        assert "jobs.explode" not in registry
        assert registry.unregister("jobs.explode") is False

    @pytest.mark.asyncio
    async def test_invoke_sync_and_async(self, registry) -> None:
        """Sync callables run in an executor; async ones are awaited."""
        assert await registry.invoke("files.read_text", {"path": "a"}) == "contents of a (utf-8)"
        assert await registry.invoke("jobs.wait", {"seconds": 0}) == "done"

    @pytest.mark.asyncio
    async def test_invoke_unknown(self, registry) -> None:
        """Unknown ids raise ResourceNotFoundError."""
        with pytest.raises(ResourceNotFoundError, match="files.read_text"):
            await registry.invoke("files.nope", {})

    def test_from_modules(self) -> None:
        """Public functions of a module are registered under its name."""
        reg = CallableRegistry.from_modules(["json"])
        assert "json.dumps" in reg
        assert "json.loads" in reg
        assert all(c.category == "json" for c in reg.list_commands())

    def test_from_modules_import_error(self) -> None:
        """Modules that cannot be imported are configuration errors."""
        with pytest.raises(ConfigurationError, match="cannot import"):
            CallableRegistry.from_modules(["cmdprobe_no_such_module"])
