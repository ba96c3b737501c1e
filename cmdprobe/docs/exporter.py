"""Write a documentation package to disk in several formats."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from cmdprobe.core.config.models import ExportSettings
from cmdprobe.core.exceptions import GenerationError, StorageError
from cmdprobe.core.logging import get_logger
from cmdprobe.docs.renderers import RENDERERS
from cmdprobe.models.documentation import DocumentationPackage, ExportedFile, ExportResult
from cmdprobe.storage.json_store import JsonDocumentStore

logger = get_logger(__name__)

PACKAGE_FILE = "package.json"


class DocumentationExporter:
    """Render a package in every requested format and write the artifacts.

    Formats are rendered concurrently, each in a worker thread. An unknown
    format or a failing renderer becomes a warning; the export succeeds when
    at least one artifact was written.

    Parameters
    ----------
    settings : ExportSettings | None
        Output directory, formats and example limits
    """

    def __init__(self, settings: ExportSettings | None = None) -> None:
        self.settings = settings or ExportSettings()

    async def export(
        self,
        package: DocumentationPackage,
        formats: Sequence[str] | None = None,
        output_dir: str | Path | None = None,
    ) -> ExportResult:
        """Export ``package``.

        Parameters
        ----------
        package : DocumentationPackage
            The generated package; never modified
        formats : Sequence[str] | None
            Formats to write, the configured ones by default
        output_dir : str | Path | None
            Target directory, the configured one by default

        Returns
        -------
        ExportResult
            Written files and warnings for the formats that failed
        """
        start = time.perf_counter()
        target = Path(output_dir or self.settings.output_dir)
        requested = list(dict.fromkeys(formats or self.settings.formats))
        warnings: list[str] = []

        known = [f for f in requested if f in RENDERERS]
        for unknown in (f for f in requested if f not in RENDERERS):
            warnings.append(str(GenerationError(unknown, "unknown format")))

        outcomes = await asyncio.gather(
            *(asyncio.to_thread(self._export_format, package, f, target) for f in known),
            return_exceptions=True,
        )

        files: list[ExportedFile] = []
        for format_name, outcome in zip(known, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                logger.warning("Export of {format} failed: {error}", format=format_name, error=outcome)
                warnings.append(str(GenerationError(format_name, str(outcome))))
            else:
                files.extend(outcome)

        if files:
            try:
                self.save_package(package, target)
            except StorageError as e:
                warnings.append(str(e))

        duration_ms = (time.perf_counter() - start) * 1000
        success = bool(files)
        logger.info(
            "Exported {count} files to {target} in {duration:.0f}ms",
            count=len(files),
            target=target,
            duration=duration_ms,
        )
        return ExportResult(
            success=success,
            files=tuple(files),
            metadata=package.metadata,
            duration_ms=round(duration_ms, 2),
            warnings=tuple(warnings),
            error=None if success else "No artifacts were produced",
        )

    def _export_format(self, package: DocumentationPackage, format_name: str, target: Path) -> list[ExportedFile]:
        rendered = RENDERERS[format_name](package, self.settings)
        written = []
        for name, content in rendered.items():
            path = target / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
            written.append(ExportedFile(path=str(path), format=format_name, size=path.stat().st_size))
        return written

    def save_package(self, package: DocumentationPackage, output_dir: str | Path | None = None) -> Path:
        """Persist ``package`` so the next generation can diff against it."""
        store = JsonDocumentStore(output_dir or self.settings.output_dir)
        return store.write(PACKAGE_FILE, package.to_document())

    def load_previous(self, output_dir: str | Path | None = None) -> DocumentationPackage | None:
        """Load the package saved by the last export, None if there is none."""
        store = JsonDocumentStore(output_dir or self.settings.output_dir)
        document = store.read(PACKAGE_FILE)
        if document is None:
            return None
        try:
            return DocumentationPackage.model_validate(document)
        except PydanticValidationError as e:
            raise StorageError(str(store.path_for(PACKAGE_FILE)), str(e)) from e
