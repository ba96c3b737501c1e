"""Documentation quality scoring, for human triage only."""

from __future__ import annotations

from collections.abc import Sequence

from cmdprobe.models.documentation import Coverage, QualityReport
from cmdprobe.models.operation import Operation
from cmdprobe.models.results import TestResult

DESCRIPTION_WEIGHT = 40
SIGNATURE_WEIGHT = 40
EXAMPLE_WEIGHT = 20

NO_COMMANDS = "No commands found. Run command discovery first."


def assess_quality(operations: Sequence[Operation], results: Sequence[TestResult] = ()) -> QualityReport:
    """Score documentation coverage from 0 to 100.

    An operation counts as having an example when at least one successful
    result exists for it.
    """
    total = len(operations)
    if total == 0:
        return QualityReport(recommendations=(NO_COMMANDS,))

    with_examples = {r.command_id for r in results if r.outcome.success}
    described = sum(1 for op in operations if op.description)
    signed = sum(1 for op in operations if op.signature is not None)
    exemplified = sum(1 for op in operations if op.id in with_examples)

    score = round(
        described / total * DESCRIPTION_WEIGHT
        + signed / total * SIGNATURE_WEIGHT
        + exemplified / total * EXAMPLE_WEIGHT
    )

    issues: list[str] = []
    recommendations: list[str] = []
    if described < total * 0.8:
        issues.append(f"{total - described} commands missing descriptions")
        recommendations.append("Add descriptions to commands for better documentation")
    if signed < total * 0.6:
        issues.append(f"{total - signed} commands missing signatures")
        recommendations.append("Research command signatures for better API documentation")
    if exemplified < total * 0.3:
        issues.append(f"{total - exemplified} commands missing test examples")
        recommendations.append("Test more commands to provide usage examples")

    undocumented = [
        op for op in operations if op.is_destructive and (not op.description or op.signature is None)
    ]
    if undocumented:
        issues.append(f"{len(undocumented)} destructive commands lack proper documentation")
        recommendations.append("Prioritize documenting destructive commands for safety")

    return QualityReport(
        overall_score=score,
        coverage=Coverage(
            descriptions=round(described / total * 100, 1),
            signatures=round(signed / total * 100, 1),
            examples=round(exemplified / total * 100, 1),
        ),
        issues=tuple(issues),
        recommendations=tuple(recommendations),
    )


def describe_score(score: int) -> str:
    if score >= 90:
        return "Excellent documentation quality"
    if score >= 70:
        return "Good documentation quality"
    if score >= 50:
        return "Fair documentation quality - room for improvement"
    return "Poor documentation quality - needs significant improvement"
