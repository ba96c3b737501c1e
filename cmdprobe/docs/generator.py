"""Assemble a :class:`DocumentationPackage` from operations and results."""

from __future__ import annotations

from collections.abc import Sequence

from cmdprobe import __version__
from cmdprobe.core.config.models import ExportSettings
from cmdprobe.core.logging import get_logger
from cmdprobe.docs.changes import compute_change_summary
from cmdprobe.docs.openapi import build_api_description
from cmdprobe.docs.quality import assess_quality
from cmdprobe.docs.schema import build_schema_document
from cmdprobe.docs.typedefs import build_type_definitions
from cmdprobe.models.documentation import DocumentationPackage, PackageMetadata
from cmdprobe.models.operation import DiscoveryStatistics, Operation
from cmdprobe.models.results import TestResult

logger = get_logger(__name__)


class DocumentationGenerator:
    """Derive every documentation artifact from one set of inputs.

    The package is computed once; format renderers only project it.

    Parameters
    ----------
    settings : ExportSettings | None
        Author, organization, versions and example options
    """

    def __init__(self, settings: ExportSettings | None = None) -> None:
        self.settings = settings or ExportSettings()

    def generate(
        self,
        operations: Sequence[Operation],
        results: Sequence[TestResult] = (),
        previous: DocumentationPackage | None = None,
    ) -> DocumentationPackage:
        """Build the documentation package.

        Parameters
        ----------
        operations : Sequence[Operation]
            Operations to document, normally with merged signatures
        results : Sequence[TestResult]
            Recorded executions; only those for known operations are used
        previous : DocumentationPackage | None
            Last generation, for the change summary

        Returns
        -------
        DocumentationPackage
            Metadata, operations, results and the derived artifacts
        """
        settings = self.settings
        operations = sorted(operations, key=lambda op: op.id)
        known = {op.id for op in operations}
        results = [r for r in results if r.command_id in known] if settings.include_test_results else []

        logger.info(
            "Generating documentation for {count} commands ({results} results)",
            count=len(operations),
            results=len(results),
        )

        schema_document = build_schema_document(
            operations,
            results,
            version=settings.schema_version,
            include_examples=settings.include_examples,
        )
        change_summary = compute_change_summary(previous, operations) if previous is not None else None

        return DocumentationPackage(
            metadata=PackageMetadata(
                version=settings.schema_version,
                command_count=len(operations),
                test_result_count=len(results),
                generator_version=__version__,
                author=settings.author,
                organization=settings.organization,
                change_summary=change_summary,
            ),
            operations=tuple(operations),
            test_results=tuple(results),
            statistics=DiscoveryStatistics.from_operations(operations),
            schema_document=schema_document,
            type_definitions=tuple(build_type_definitions(operations, results)),
            api_description=build_api_description(
                schema_document,
                operations,
                results,
                version=settings.schema_version,
                openapi_version=settings.openapi_version,
            ),
            quality=assess_quality(operations, results),
        )
