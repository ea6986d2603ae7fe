from __future__ import annotations

import logging
import time
from typing import Any, Iterable, List, Optional

from provset.config import PipelineSettings
from provset.errors import ProviderNotFoundError
from provset.events import EventBus, PipelineEvent, safe_call
from provset.registry.api import ProviderRegistry
from provset.registry.models import ProviderConfiguration, ValidationResult
from provset.store import RunStore

from .models import (
    RuleStatus,
    ValidationOptions,
    ValidationReport,
    ValidationRule,
    ValidationRuleResult,
)
from .rules import default_rules
from .scoring import (
    compliance_score,
    generate_recommendations,
    performance_score,
    security_score,
)

logger = logging.getLogger(__name__)


def rule_status(rule: ValidationRule, errors: int, warnings: int) -> RuleStatus:
    if errors:
        return "failed" if rule.severity == "error" else "warning"
    if warnings:
        return "warning"
    return "passed"


class ProviderValidator:
    """Runs the registered rule set against one provider and scores the outcome."""

    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        rules: Optional[Iterable[ValidationRule]] = None,
        settings: Optional[PipelineSettings] = None,
        events: Optional[EventBus] = None,
    ) -> None:
        self.registry = registry
        self.settings = settings or PipelineSettings()
        self.events = events or EventBus()
        self._rules: List[ValidationRule] = list(rules) if rules is not None else default_rules()
        self._history: RunStore[ValidationReport] = RunStore(
            self.settings.validation_history_limit
        )
        self._seq = 0

    async def validate_provider(
        self, provider_name: str, options: Optional[ValidationOptions] = None
    ) -> ValidationReport:
        options = options or ValidationOptions()
        provider = self.registry.get_provider(provider_name)
        if provider is None:
            raise ProviderNotFoundError(provider_name)
        info = self.registry.get_provider_info(provider_name)
        if info is None:
            raise ProviderNotFoundError(
                provider_name, f"Provider info for '{provider_name}' not found"
            )

        self._seq += 1
        report = ValidationReport(
            validation_id=f"validation_{provider_name}_{int(time.time() * 1000)}_{self._seq:04d}",
            provider_name=provider_name,
            provider_type=info.type,
        )
        self.events.emit(PipelineEvent.VALIDATION_STARTED, report)
        logger.info("validating provider %s", provider_name)

        selected = self._select_rules(options)
        report.total_rules = len(selected)
        for rule in selected:
            outcome = await self._run_rule(rule, provider, info)
            report.results.append(outcome)
            if outcome.status == "passed":
                report.passed_rules += 1
            elif outcome.status == "failed":
                report.failed_rules += 1
                if rule.severity == "error":
                    report.overall_result = "failed"
            elif outcome.status == "warning":
                report.warning_rules += 1
                if report.overall_result == "passed":
                    report.overall_result = "warning"

            if (
                outcome.status == "failed"
                and rule.severity == "error"
                and not options.continue_on_error
            ):
                logger.info("stopping validation of %s after %s failed", provider_name, rule.id)
                break

        report.compliance_score = compliance_score(report.results)
        report.security_score = security_score(report.results)
        report.performance_score = performance_score(report.results)
        report.recommendations = generate_recommendations(report)

        logger.info(
            "validation of %s finished: %s (%d/%d passed)",
            provider_name,
            report.overall_result,
            report.passed_rules,
            report.total_rules,
        )
        self._history.record(report)
        self.events.emit(PipelineEvent.VALIDATION_COMPLETED, report)
        safe_call(options.notification_callback, report, label="validation")
        return report

    async def validate_all_providers(
        self, options: Optional[ValidationOptions] = None
    ) -> List[ValidationReport]:
        reports: List[ValidationReport] = []
        for summary in self.registry.list_providers():
            try:
                reports.append(await self.validate_provider(summary.name, options))
            except ProviderNotFoundError as exc:
                logger.warning("skipping validation of %s: %s", summary.name, exc.message)
        return reports

    def get_validation_history(self) -> List[ValidationReport]:
        return self._history.history()

    def get_validation_rules(self) -> List[ValidationRule]:
        return list(self._rules)

    def add_validation_rule(self, rule: ValidationRule) -> None:
        self._rules.append(rule)
        logger.info("added validation rule %s (%s)", rule.name, rule.category)

    def remove_validation_rule(self, rule_id: str) -> bool:
        for index, rule in enumerate(self._rules):
            if rule.id == rule_id:
                del self._rules[index]
                logger.info("removed validation rule %s", rule_id)
                return True
        return False

    def _select_rules(self, options: ValidationOptions) -> List[ValidationRule]:
        rules = list(self._rules)
        if options.categories:
            wanted = set(options.categories)
            rules = [rule for rule in rules if rule.category in wanted]
        if options.skip_optional:
            rules = [rule for rule in rules if rule.required]
        return rules

    async def _run_rule(
        self, rule: ValidationRule, provider: Any, info: ProviderConfiguration
    ) -> ValidationRuleResult:
        started = time.perf_counter()
        try:
            result = await rule.evaluate(provider, info)
        except Exception as exc:  # noqa: BLE001
            logger.warning("validation rule %s raised: %s", rule.id, exc)
            return ValidationRuleResult.for_rule(
                rule,
                "failed",
                ValidationResult(valid=False, errors=[f"Rule execution failed: {exc}"]),
                execution_time=time.perf_counter() - started,
                error=str(exc),
            )
        return ValidationRuleResult.for_rule(
            rule,
            rule_status(rule, len(result.errors), len(result.warnings)),
            result,
            execution_time=time.perf_counter() - started,
        )
