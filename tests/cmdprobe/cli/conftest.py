"""Fixtures for CLI tests: an isolated project with its own command module."""

from collections.abc import Callable

import pytest
from typer.testing import CliRunner

from cmdprobe.cli.main import app

COMMANDS_MODULE = "clicmds"

COMMANDS_SOURCE = '''"""Commands exercised by the CLI tests."""


def greet(name: str, excited: bool = False) -> str:
    """Greet someone.

    Parameters
    ----------
    name : str
        Who to greet
    excited : bool
        End with an exclamation mark
    """
    return f"Hello, {name}{'!' if excited else '.'}"


def delete_note(path: str) -> bool:
    """Delete a note."""
    return True


def explode() -> None:
    """Always fails."""
    raise RuntimeError("boom")
'''


@pytest.fixture
def project(tmp_path, monkeypatch):
    """Config file pointing at a temporary data directory and command module."""
    source_dir = tmp_path / "src"
    source_dir.mkdir()
    (source_dir / f"{COMMANDS_MODULE}.py").write_text(COMMANDS_SOURCE, encoding="utf-8")
    monkeypatch.syspath_prepend(str(source_dir))
    monkeypatch.chdir(tmp_path)

    config = tmp_path / "cmdprobe.toml"
    config.write_text(
        f"""
modules = ["{COMMANDS_MODULE}"]

[logging]
level = "WARNING"

[execution]
default_timeout_ms = 5000
create_snapshot = false

[storage]
data_dir = "{(tmp_path / 'state').as_posix()}"
""",
        encoding="utf-8",
    )
    return config


@pytest.fixture
def invoke(project) -> Callable[..., object]:
    """Run the CLI against the temporary project."""
    runner = CliRunner()

    def _invoke(*args: str, input: str | None = None):
        return runner.invoke(app, ["--config", str(project), *args], input=input)

    return _invoke


@pytest.fixture
def discovered(invoke):
    """Project with a persisted discovery snapshot."""
    result = invoke("--json", "discover", "run")
    assert result.exit_code == 0, result.output
    return invoke
