from __future__ import annotations

from provset.registry.models import ValidationResult
from provset.validation import (
    ValidationReport,
    ValidationRuleResult,
    compliance_score,
    generate_recommendations,
    performance_score,
    security_score,
)


def _result(category: str, severity: str, status: str, *warnings: str) -> ValidationRuleResult:
    return ValidationRuleResult(
        rule_id=f"{category}-{severity}-{status}",
        name=f"{category} {severity}",
        category=category,  # type: ignore[arg-type]
        severity=severity,  # type: ignore[arg-type]
        required=True,
        status=status,  # type: ignore[arg-type]
        result=ValidationResult(warnings=list(warnings)),
    )


def test_scores_default_to_full_marks_without_rules() -> None:
    assert compliance_score([]) == 100
    assert security_score([]) == 100
    assert performance_score([]) == 100


def test_security_score_weights_severity_and_status() -> None:
    passed_error = _result("security", "error", "passed")
    warned_warning = _result("security", "warning", "warning")
    assert security_score([passed_error, warned_warning]) == 50

    results = [
        passed_error,
        _result("security", "warning", "passed"),
        _result("security", "error", "warning"),
        warned_warning,
    ]
    assert security_score(results) == 90
    assert security_score(results + [passed_error]) == 100
    assert security_score([_result("security", "error", "failed")]) == 0


def test_compliance_and_performance_ratios() -> None:
    compliance = [
        _result("compliance", "warning", "passed"),
        _result("compliance", "warning", "warning"),
        _result("compliance", "warning", "failed"),
    ]
    assert compliance_score(compliance) == 33

    performance = [
        _result("performance", "warning", "passed"),
        _result("performance", "warning", "warning"),
        _result("performance", "warning", "failed"),
    ]
    assert performance_score(performance) == 50


def test_scores_round_half_up() -> None:
    results = [_result("compliance", "warning", "passed")] + [
        _result("compliance", "warning", "failed") for _ in range(7)
    ]
    assert compliance_score(results) == 13


def test_scores_only_consider_their_category() -> None:
    results = [
        _result("configuration", "error", "failed"),
        _result("integration", "error", "failed"),
    ]
    assert security_score(results) == 100
    assert compliance_score(results) == 100
    assert performance_score(results) == 100


def test_recommendations_for_clean_report_are_empty() -> None:
    report = ValidationReport(
        validation_id="validation_1",
        provider_name="wedding-db",
        provider_type="postgresql",
        results=[_result("security", "error", "passed")],
        security_score=100,
        performance_score=100,
        compliance_score=100,
    )
    assert generate_recommendations(report) == []


def test_recommendations_accumulate_per_finding() -> None:
    results = [
        _result("security", "warning", "warning", "SSL/TLS is disabled - consider enabling"),
        _result("performance", "warning", "warning", "High response time detected (>1000ms)"),
        _result("configuration", "error", "failed"),
    ]
    report = ValidationReport(
        validation_id="validation_2",
        provider_name="wedding-db",
        provider_type="postgresql",
        overall_result="failed",
        results=results,
        security_score=security_score(results),
        performance_score=performance_score(results),
        compliance_score=compliance_score(results),
    )

    assert generate_recommendations(report) == [
        "Review and address security configuration issues",
        "Enable SSL/TLS for all connections in production",
        "Optimize provider configuration for better performance",
        "Complete provider configuration with all required fields",
        "Address critical validation failures before using in production",
        "Improve security configuration to achieve better security score",
        "Optimize provider settings for better performance",
    ]
