"""Shared pytest fixtures for cmdprobe tests.

Provides:
- registry: a CallableRegistry with safe, destructive, slow and failing commands
- operations: the registry scanned into classified operations
- storage: a JsonDocumentStore rooted in a temporary directory
"""

import asyncio

import pytest

from cmdprobe.core.config import clear_config_cache
from cmdprobe.discovery.registry import CallableRegistry
from cmdprobe.discovery.researcher import ParameterResearcher
from cmdprobe.discovery.scanner import RegistryScanner
from cmdprobe.models.operation import Operation
from cmdprobe.storage.json_store import JsonDocumentStore


def read_text(path: str, encoding: str = "utf-8") -> str:
    """Read a text file."""
    return f"contents of {path} ({encoding})"


def remove_file(path: str) -> bool:
    """Remove a file."""
    return True


async def wait(seconds: float) -> str:
    """Sleep for a while."""
    await asyncio.sleep(seconds)
    return "done"


def explode() -> None:
    """Always fails."""
    raise ValueError("invalid parameter: boom")


@pytest.fixture
def registry() -> CallableRegistry:
    """Registry with one command of each interesting kind."""
    reg = CallableRegistry()
    reg.register("files.read_text", read_text, category="files")
    reg.register("files.remove_file", remove_file, category="files")
    reg.register("jobs.wait", wait, category="jobs")
    reg.register("jobs.explode", explode, category="jobs")
    return reg


@pytest.fixture
def operations(registry: CallableRegistry) -> list[Operation]:
    """Scanned and researched operations for ``registry``."""
    results = RegistryScanner().scan(registry)
    return ParameterResearcher().research_all(results.commands, registry.get_callable)


@pytest.fixture
def storage(tmp_path) -> JsonDocumentStore:
    """Document store in a temporary data directory."""
    return JsonDocumentStore(tmp_path / ".cmdprobe")


@pytest.fixture(autouse=True)
def _fresh_config():
    """Drop cached configuration between tests."""
    clear_config_cache()
    yield
    clear_config_cache()
