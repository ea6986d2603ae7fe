from __future__ import annotations

import inspect
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from provset.registry.models import ProviderConfiguration, ValidationResult
from provset.setup.models import utcnow

RuleCategory = Literal["security", "compliance", "performance", "configuration", "integration"]
RuleSeverity = Literal["error", "warning", "info"]
RuleStatus = Literal["passed", "failed", "warning", "skipped"]

RuleValidator = Callable[
    [Any, ProviderConfiguration],
    Union[ValidationResult, Awaitable[ValidationResult]],
]


@dataclass(frozen=True)
class ValidationRule:
    """A stateless check run against a registered provider and its configuration.

    ``validator`` may be a plain function or a coroutine function.
    """

    id: str
    name: str
    description: str
    category: RuleCategory
    severity: RuleSeverity
    required: bool
    validator: RuleValidator

    async def evaluate(self, provider: Any, config: ProviderConfiguration) -> ValidationResult:
        result = self.validator(provider, config)
        if inspect.isawaitable(result):
            result = await result
        return result


class ValidationRuleResult(BaseModel):
    rule_id: str
    name: str
    category: RuleCategory
    severity: RuleSeverity
    required: bool
    status: RuleStatus
    result: ValidationResult
    execution_time: float = 0.0
    error: Optional[str] = None

    @classmethod
    def for_rule(
        cls,
        rule: ValidationRule,
        status: RuleStatus,
        result: ValidationResult,
        *,
        execution_time: float = 0.0,
        error: Optional[str] = None,
    ) -> "ValidationRuleResult":
        return cls(
            rule_id=rule.id,
            name=rule.name,
            category=rule.category,
            severity=rule.severity,
            required=rule.required,
            status=status,
            result=result,
            execution_time=execution_time,
            error=error,
        )


class ValidationReport(BaseModel):
    validation_id: str
    provider_name: str
    provider_type: str
    timestamp: datetime = Field(default_factory=utcnow)
    overall_result: Literal["passed", "failed", "warning"] = "passed"
    total_rules: int = 0
    passed_rules: int = 0
    failed_rules: int = 0
    warning_rules: int = 0
    results: List[ValidationRuleResult] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    compliance_score: int = 0
    security_score: int = 0
    performance_score: int = 0


class ValidationOptions(BaseModel):
    categories: List[RuleCategory] = Field(default_factory=list)
    skip_optional: bool = False
    continue_on_error: bool = False
    notification_callback: Optional[Callable[[Any], None]] = Field(
        default=None, exclude=True
    )
