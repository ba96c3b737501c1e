"""Tests for generated type definitions."""

from cmdprobe.docs.typedefs import (
    build_type_definitions,
    render_python,
    render_typescript,
    to_pascal_case,
)
from cmdprobe.models.operation import Operation
from cmdprobe.models.results import ExecutionOutcome, TestResult


def _by_name(definitions):
    return {d.name: d for d in definitions}


class TestToPascalCase:
    """Test enum key generation."""

    def test_conversions(self) -> None:
        """Separators are dropped and words capitalized."""
        assert to_pascal_case("file-ops") == "FileOps"
        assert to_pascal_case("workspace_state") == "WorkspaceState"
        assert to_pascal_case("safe") == "Safe"

    def test_always_an_identifier(self) -> None:
        """Leading digits are prefixed and empty input gets a placeholder."""
        assert to_pascal_case("3d-view") == "_3dView"
        assert to_pascal_case("--") == "Unknown"


class TestBuildTypeDefinitions:
    """Test the neutral definitions."""

    def test_core_definitions(self, operations) -> None:
        """Metadata, signature and enum definitions are always present."""
        defs = _by_name(build_type_definitions(operations))

        assert {"CommandMetadata", "ParameterInfo", "CommandSignature", "CommandCategory", "RiskLevel"} <= set(defs)
        assert "ExecutionRequest" not in defs
        categories = defs["CommandCategory"]
        assert categories.kind == "enum"
        assert [(m.key, m.value) for m in categories.members] == [("Files", "files"), ("Jobs", "jobs")]

    def test_protocol_types_with_results(self, operations) -> None:
        """Protocol envelopes appear once executions were recorded."""
        results = [TestResult(command_id="files.read_text", outcome=ExecutionOutcome(success=True))]
        defs = _by_name(build_type_definitions(operations, results))
        assert {"WebSocketMessage", "ExecutionRequest", "ExecutionResponse"} <= set(defs)

    def test_colliding_enum_keys(self) -> None:
        """Values that map to the same key stay distinct."""
        ops = [Operation(id="a.x", category="file-ops"), Operation(id="b.x", category="file_ops")]
        members = _by_name(build_type_definitions(ops))["CommandCategory"].members
        assert [m.key for m in members] == ["FileOps", "FileOps_"]


class TestRenderers:
    """Test TypeScript and Python rendering."""

    def test_typescript(self, operations) -> None:
        """Interfaces are readonly and optional fields are marked."""
        text = render_typescript(build_type_definitions(operations), header="Generated")

        assert text.startswith("// Generated")
        assert "export interface CommandMetadata {" in text
        assert "  readonly category: 'files' | 'jobs';" in text
        assert "  readonly description?: string;" in text
        assert "  readonly parameters: ParameterInfo[];" in text
        assert "  readonly byCategory: Record<string, number>;" in text
        assert "export enum RiskLevel {" in text
        assert "  Destructive = 'destructive'," in text

    def test_python_is_valid_source(self, operations) -> None:
        """The Python rendering compiles and uses the functional form for keywords."""
        text = render_python(build_type_definitions(operations))

        compile(text, "types.py", "exec")
        assert 'CommandSignature = TypedDict("CommandSignature", {' in text
        assert "class CommandMetadata(TypedDict):" in text
        assert "    description: NotRequired[str]" in text
        assert "class RiskLevel(StrEnum):" in text
        assert "from typing import Any, Literal, NotRequired, TypedDict" in text
