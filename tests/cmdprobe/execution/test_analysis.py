"""Tests for execution result analysis."""

import pytest

from cmdprobe.execution.analysis import (
    ResultAnalyzer,
    automation_suitability,
    band_risk,
    categorize_duration,
    contains_sensitive_data,
    side_effect_risk,
)
from cmdprobe.models.operation import Confidence, Operation, RiskLevel, Signature
from cmdprobe.models.results import (
    ExecutionError,
    ExecutionOutcome,
    SideEffect,
    SideEffectType,
    TestResult,
)


def _effect(kind: SideEffectType) -> SideEffect:
    return SideEffect(type=kind, description=kind.value)


def _result(outcome: ExecutionOutcome, parameters: dict | None = None) -> TestResult:
    return TestResult(command_id="files.remove", parameters=parameters or {}, outcome=outcome)


class TestClassifiers:
    """Test the individual classification helpers."""

    @pytest.mark.parametrize(
        ("duration", "expected"),
        [(5, "fast"), (100, "moderate"), (999, "moderate"), (1000, "slow"), (5000, "very_slow")],
    )
    def test_duration(self, duration: float, expected: str) -> None:
        """Durations fall into fixed bands."""
        assert categorize_duration(duration) == expected

    def test_side_effect_risk(self) -> None:
        """The riskiest effect kind decides."""
        assert side_effect_risk([]) == "none"
        assert side_effect_risk([_effect(SideEffectType.VIEW_OPENED)]) == "low"
        assert side_effect_risk([_effect(SideEffectType.FILE_MODIFIED)]) == "medium"
        assert (
            side_effect_risk([_effect(SideEffectType.FILE_MODIFIED), _effect(SideEffectType.FILE_DELETED)])
            == "high"
        )

    def test_sensitive_data(self) -> None:
        """Keys or strings mentioning secrets are flagged."""
        assert contains_sensitive_data({"api_token": "x"})
        assert contains_sensitive_data("Password reset")
        assert not contains_sensitive_data({"path": "a.txt"})
        assert not contains_sensitive_data(42)

    def test_bands(self) -> None:
        """Scores map onto five risk bands."""
        assert [band_risk(s) for s in (0, 1, 2, 4, 6)] == ["very_low", "low", "medium", "high", "very_high"]

    def test_automation_suitability(self) -> None:
        """Failures are unsuitable; slow or risky runs are downgraded."""
        assert automation_suitability(False, "very_low", "fast") == "unsuitable"
        assert automation_suitability(True, "very_high", "fast") == "unsuitable"
        assert automation_suitability(True, "very_low", "very_slow") == "poor"
        assert automation_suitability(True, "medium", "fast") == "fair"
        assert automation_suitability(True, "low", "fast") == "good"
        assert automation_suitability(True, "very_low", "fast") == "excellent"


class TestResultAnalyzer:
    """Test full analyses."""

    def test_safe_fast_success(self) -> None:
        """A clean run of a well-researched safe command is excellent."""
        operation = Operation(
            id="files.read", category="files", signature=Signature(confidence=Confidence.HIGH)
        )
        analysis = ResultAnalyzer().analyze(
            _result(ExecutionOutcome(success=True, duration_ms=3)), operation
        )
        assert analysis.risk.overall_risk == "very_low"
        assert analysis.risk.automation_suitability == "excellent"
        assert analysis.recommendations == ()
        assert analysis.tags == ("files", "core", "safe", "success", "fast", "very_low")

    def test_destructive_failure_with_deletes(self) -> None:
        """Destructive commands that delete files and fail are high risk."""
        operation = Operation(id="files.remove", category="files", risk_level=RiskLevel.DESTRUCTIVE)
        outcome = ExecutionOutcome(
            success=False,
            duration_ms=20,
            error=ExecutionError(message="boom", kind="RuntimeError"),
            side_effects=(_effect(SideEffectType.FILE_DELETED),),
        )
        analysis = ResultAnalyzer().analyze(_result(outcome), operation)
        assert analysis.risk.score == 7
        assert analysis.risk.overall_risk == "very_high"
        assert analysis.risk.requires_special_handling is True
        assert analysis.risk.automation_suitability == "unsuitable"
        assert analysis.effects_by_type == {"file_deleted": 1}
        assert "Create workspace backup before execution" in analysis.risk.precautions
        assert analysis.recommendations == (
            "Investigate execution failure and retry with different parameters",
            "Avoid using in automated workflows without manual oversight",
            "Research command signature more thoroughly",
        )
        assert "special-handling" in analysis.tags
        assert "has-side-effects" in analysis.tags

    def test_sensitive_parameters(self) -> None:
        """Sensitive arguments raise the score and add a precaution."""
        operation = Operation(id="auth.login", category="auth", signature=Signature(confidence=Confidence.MEDIUM))
        analysis = ResultAnalyzer().analyze(
            _result(ExecutionOutcome(success=True, duration_ms=1), {"password": "x"}), operation
        )
        assert analysis.contains_sensitive_data is True
        assert analysis.risk.overall_risk == "medium"
        assert "Sanitize return values before logging" in analysis.risk.precautions
        assert "sensitive-data" in analysis.tags
