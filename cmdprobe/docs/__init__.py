from cmdprobe.docs.changes import compute_change_summary, diff_signatures, format_change_summary
from cmdprobe.docs.exporter import DocumentationExporter
from cmdprobe.docs.generator import DocumentationGenerator
from cmdprobe.docs.openapi import build_api_description
from cmdprobe.docs.quality import assess_quality, describe_score
from cmdprobe.docs.renderers import RENDERERS, render
from cmdprobe.docs.schema import build_schema_document
from cmdprobe.docs.typedefs import build_type_definitions, render_python, render_typescript

__all__ = [
    "RENDERERS",
    "DocumentationExporter",
    "DocumentationGenerator",
    "assess_quality",
    "build_api_description",
    "build_schema_document",
    "build_type_definitions",
    "compute_change_summary",
    "describe_score",
    "diff_signatures",
    "format_change_summary",
    "render",
    "render_python",
    "render_typescript",
]
