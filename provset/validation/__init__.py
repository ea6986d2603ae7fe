from .api import ValidatorAPI, create_validator
from .models import (
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
from .validator import ProviderValidator, rule_status

__all__ = [
    "ProviderValidator",
    "ValidationOptions",
    "ValidationReport",
    "ValidationRule",
    "ValidationRuleResult",
    "ValidatorAPI",
    "compliance_score",
    "create_validator",
    "default_rules",
    "generate_recommendations",
    "performance_score",
    "rule_status",
    "security_score",
]
