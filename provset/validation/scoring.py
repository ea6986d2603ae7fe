from __future__ import annotations

import math
from typing import List, Sequence

from .models import RuleCategory, ValidationReport, ValidationRuleResult


def _clamp(score: float) -> int:
    # half-up rounding
    return int(max(0, min(100, math.floor(score + 0.5))))


def _in_category(
    results: Sequence[ValidationRuleResult], category: RuleCategory
) -> List[ValidationRuleResult]:
    return [result for result in results if result.category == category]


def compliance_score(results: Sequence[ValidationRuleResult]) -> int:
    rules = _in_category(results, "compliance")
    if not rules:
        return 100
    passed = sum(1 for result in rules if result.status == "passed")
    return _clamp(100 * passed / len(rules))


def security_score(results: Sequence[ValidationRuleResult]) -> int:
    rules = _in_category(results, "security")
    if not rules:
        return 100
    score = 0
    for result in rules:
        if result.status == "passed":
            score += 40 if result.severity == "error" else 20
        elif result.status == "warning":
            score += 20 if result.severity == "error" else 10
    return _clamp(score)


def performance_score(results: Sequence[ValidationRuleResult]) -> int:
    rules = _in_category(results, "performance")
    if not rules:
        return 100
    passed = sum(1 for result in rules if result.status == "passed")
    warned = sum(1 for result in rules if result.status == "warning")
    return _clamp(100 * (passed + 0.5 * warned) / len(rules))


def generate_recommendations(report: ValidationReport) -> List[str]:
    recommendations: List[str] = []

    security_issues = [
        result
        for result in _in_category(report.results, "security")
        if result.status in {"failed", "warning"}
    ]
    if security_issues:
        recommendations.append("Review and address security configuration issues")
        if any(
            "SSL" in warning
            for result in security_issues
            for warning in result.result.warnings
        ):
            recommendations.append("Enable SSL/TLS for all connections in production")

    if any(result.status == "warning" for result in _in_category(report.results, "performance")):
        recommendations.append("Optimize provider configuration for better performance")

    if any(
        result.status in {"failed", "warning"}
        for result in _in_category(report.results, "configuration")
    ):
        recommendations.append("Complete provider configuration with all required fields")

    if report.overall_result == "failed":
        recommendations.append("Address critical validation failures before using in production")
    elif report.overall_result == "warning":
        recommendations.append("Consider addressing validation warnings for optimal operation")

    if report.security_score < 80:
        recommendations.append("Improve security configuration to achieve better security score")
    if report.performance_score < 70:
        recommendations.append("Optimize provider settings for better performance")
    return recommendations
