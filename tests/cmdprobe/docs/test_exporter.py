"""Tests for writing documentation packages to disk."""

import json

import pytest

from cmdprobe.core.config.models import ExportSettings
from cmdprobe.core.exceptions import StorageError
from cmdprobe.docs.exporter import PACKAGE_FILE, DocumentationExporter
from cmdprobe.docs.generator import DocumentationGenerator


@pytest.fixture
def package(operations):
    return DocumentationGenerator().generate(operations)


class TestExport:
    """Test artifact export."""

    @pytest.mark.asyncio
    async def test_default_formats(self, package, tmp_path) -> None:
        """The configured formats are written along with the package file."""
        exporter = DocumentationExporter(ExportSettings(output_dir=str(tmp_path)))
        result = await exporter.export(package)

        assert result.success
        assert result.error is None
        written = {f.format for f in result.files}
        assert written == {"markdown", "json", "typescript", "openapi"}
        assert (tmp_path / "README.md").exists()
        assert (tmp_path / "types.d.ts").exists()
        assert (tmp_path / PACKAGE_FILE).exists()
        assert all(f.size > 0 for f in result.files)

    @pytest.mark.asyncio
    async def test_explicit_formats_and_directory(self, package, tmp_path) -> None:
        """Formats and output directory can be given per call."""
        target = tmp_path / "out"
        result = await DocumentationExporter().export(package, ["html", "yaml"], target)

        assert (target / "index.html").exists()
        assert (target / "openapi.yaml").exists()
        assert {f.format for f in result.files} == {"html", "yaml"}
        assert result.metadata == package.metadata

    @pytest.mark.asyncio
    async def test_unknown_format_is_a_warning(self, package, tmp_path) -> None:
        """Unknown formats are reported without failing the export."""
        result = await DocumentationExporter().export(package, ["json", "pdf"], tmp_path)

        assert result.success
        assert len(result.warnings) == 1
        assert "pdf" in result.warnings[0]

    @pytest.mark.asyncio
    async def test_nothing_written(self, package, tmp_path) -> None:
        """An export with no artifacts fails."""
        result = await DocumentationExporter().export(package, ["pdf"], tmp_path)

        assert not result.success
        assert result.error == "No artifacts were produced"
        assert not (tmp_path / PACKAGE_FILE).exists()


class TestPreviousPackage:
    """Test the saved package used for change tracking."""

    def test_missing(self, tmp_path) -> None:
        """No saved package means no previous generation."""
        assert DocumentationExporter().load_previous(tmp_path) is None

    def test_round_trip(self, package, tmp_path) -> None:
        """A saved package loads back with the same operations."""
        exporter = DocumentationExporter()
        exporter.save_package(package, tmp_path)
        loaded = exporter.load_previous(tmp_path)

        assert loaded is not None
        assert [op.id for op in loaded.operations] == [op.id for op in package.operations]
        assert loaded.metadata.command_count == package.metadata.command_count

    def test_invalid_package(self, tmp_path) -> None:
        """A malformed package file is a storage error."""
        (tmp_path / PACKAGE_FILE).write_text(json.dumps({"operations": "nope"}), encoding="utf-8")
        with pytest.raises(StorageError):
            DocumentationExporter().load_previous(tmp_path)
