"""Post-hoc analysis of a recorded execution.

Classifies how long the call took, how risky its side effects were and how
suitable the command looks for unattended automation, and turns that into
recommendations and tags.
"""

from __future__ import annotations

import json
import re
from collections import Counter
from typing import Any, Literal

from pydantic import Field

from cmdprobe.models.base import RecordModel
from cmdprobe.models.operation import Confidence, Operation, RiskLevel
from cmdprobe.models.results import SideEffect, SideEffectType, TestResult

DurationCategory = Literal["fast", "moderate", "slow", "very_slow"]
SideEffectRisk = Literal["none", "low", "medium", "high"]
OverallRisk = Literal["very_low", "low", "medium", "high", "very_high"]
AutomationSuitability = Literal["excellent", "good", "fair", "poor", "unsuitable"]

SENSITIVE_PATTERN = re.compile(r"password|token|key|secret|credential|auth", re.IGNORECASE)

_HIGH_RISK_EFFECTS = {SideEffectType.FILE_DELETED, SideEffectType.WORKSPACE_CHANGED}
_MEDIUM_RISK_EFFECTS = {SideEffectType.FILE_MODIFIED, SideEffectType.SETTING_CHANGED}

_RISK_LEVEL_SCORE = {RiskLevel.DESTRUCTIVE: 3, RiskLevel.MODERATE: 2, RiskLevel.SAFE: 0}
_EFFECT_RISK_SCORE = {"high": 3, "medium": 2, "low": 1, "none": 0}


class RiskAssessment(RecordModel):
    overall_risk: OverallRisk
    score: int
    factors: tuple[str, ...] = ()
    precautions: tuple[str, ...] = ()
    automation_suitability: AutomationSuitability
    requires_special_handling: bool = False


class ResultAnalysis(RecordModel):
    """Analysis of one :class:`TestResult`."""

    result_id: str
    command_id: str
    duration_category: DurationCategory
    side_effect_risk: SideEffectRisk
    effects_by_type: dict[str, int] = Field(default_factory=dict)
    contains_sensitive_data: bool = False
    risk: RiskAssessment
    recommendations: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()


def categorize_duration(duration_ms: float) -> DurationCategory:
    if duration_ms < 100:
        return "fast"
    if duration_ms < 1000:
        return "moderate"
    if duration_ms < 5000:
        return "slow"
    return "very_slow"


def side_effect_risk(effects: tuple[SideEffect, ...] | list[SideEffect]) -> SideEffectRisk:
    if not effects:
        return "none"
    kinds = {effect.type for effect in effects}
    if kinds & _HIGH_RISK_EFFECTS:
        return "high"
    if kinds & _MEDIUM_RISK_EFFECTS:
        return "medium"
    return "low"


def contains_sensitive_data(value: Any) -> bool:
    """Whether ``value`` (or any nested key or string) looks like a secret."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(SENSITIVE_PATTERN.search(value))
    if isinstance(value, (dict, list, tuple)):
        return bool(SENSITIVE_PATTERN.search(json.dumps(value, default=str)))
    return False


def band_risk(score: int) -> OverallRisk:
    if score >= 6:
        return "very_high"
    if score >= 4:
        return "high"
    if score >= 2:
        return "medium"
    if score >= 1:
        return "low"
    return "very_low"


def automation_suitability(
    success: bool, overall_risk: OverallRisk, duration: DurationCategory
) -> AutomationSuitability:
    if not success or overall_risk == "very_high":
        return "unsuitable"
    if overall_risk == "high" or duration == "very_slow":
        return "poor"
    if overall_risk == "medium" or duration == "slow":
        return "fair"
    if overall_risk == "low":
        return "good"
    return "excellent"


class ResultAnalyzer:
    """Derive a :class:`ResultAnalysis` from a result and its operation."""

    def analyze(self, result: TestResult, operation: Operation) -> ResultAnalysis:
        outcome = result.outcome
        duration = categorize_duration(outcome.duration_ms)
        effect_risk = side_effect_risk(outcome.side_effects)
        sensitive = contains_sensitive_data(result.parameters) or contains_sensitive_data(outcome.result)
        risk = self._assess(operation, outcome.success, effect_risk, sensitive, duration)

        recommendations = []
        if not outcome.success:
            recommendations.append("Investigate execution failure and retry with different parameters")
        if duration == "very_slow":
            recommendations.append("Consider timeout handling for automation use")
        if len(outcome.side_effects) > 5:
            recommendations.append("Test with workspace snapshot to understand all side effects")
        if risk.overall_risk in ("high", "very_high"):
            recommendations.append("Avoid using in automated workflows without manual oversight")
        if operation.signature is None or operation.signature.confidence is Confidence.LOW:
            recommendations.append("Research command signature more thoroughly")

        tags = [
            operation.category,
            operation.subcategory,
            operation.risk_level.value,
            "success" if outcome.success else "failure",
            duration,
            risk.overall_risk,
        ]
        if outcome.side_effects:
            tags.append("has-side-effects")
        if sensitive:
            tags.append("sensitive-data")
        if risk.requires_special_handling:
            tags.append("special-handling")

        return ResultAnalysis(
            result_id=result.id,
            command_id=result.command_id,
            duration_category=duration,
            side_effect_risk=effect_risk,
            effects_by_type=dict(Counter(effect.type.value for effect in outcome.side_effects)),
            contains_sensitive_data=sensitive,
            risk=risk,
            recommendations=tuple(recommendations),
            tags=tuple(dict.fromkeys(tags)),
        )

    def _assess(
        self,
        operation: Operation,
        success: bool,
        effect_risk: SideEffectRisk,
        sensitive: bool,
        duration: DurationCategory,
    ) -> RiskAssessment:
        score = _RISK_LEVEL_SCORE[operation.risk_level] + _EFFECT_RISK_SCORE[effect_risk]
        factors = []
        if operation.risk_level is RiskLevel.DESTRUCTIVE:
            factors.append("Command marked as destructive")
        elif operation.risk_level is RiskLevel.MODERATE:
            factors.append("Command marked as moderate risk")
        if effect_risk != "none":
            factors.append(f"{effect_risk.capitalize()}-risk side effects detected")
        if not success:
            score += 1
            factors.append("Command execution failed")
        if sensitive:
            score += 2
            factors.append("Arguments or return value contain sensitive data")

        overall = band_risk(score)
        precautions = []
        if effect_risk != "none":
            precautions.append("Monitor workspace state changes")
        if operation.risk_level is RiskLevel.DESTRUCTIVE:
            precautions.append("Create workspace backup before execution")
        if sensitive:
            precautions.append("Sanitize return values before logging")

        return RiskAssessment(
            overall_risk=overall,
            score=score,
            factors=tuple(factors),
            precautions=tuple(precautions),
            automation_suitability=automation_suitability(success, overall, duration),
            requires_special_handling=overall in ("high", "very_high"),
        )
