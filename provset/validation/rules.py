from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping

from provset.registry.models import ProviderConfiguration, ValidationResult

from .models import ValidationRule

_SENSITIVE_KEY = re.compile(r"password|secret|key|token|credential", re.IGNORECASE)
_MIN_SECRET_LENGTH = 8

REQUIRED_FIELDS: Dict[str, List[str]] = {
    "postgresql": ["host", "database", "username"],
    "mysql": ["host", "database", "username"],
    "supabase-db": ["supabase_url", "supabase_key"],
    "pocketbase-all-in-one": ["url"],
    "local-auth": ["password_min_length", "max_login_attempts"],
}


def contains_sensitive_data(config: Mapping[str, Any]) -> bool:
    """True when a secret-looking key holds an inline string value."""
    for key, value in config.items():
        if isinstance(value, Mapping):
            if contains_sensitive_data(value):
                return True
            continue
        if (
            isinstance(value, str)
            and len(value) >= _MIN_SECRET_LENGTH
            and _SENSITIVE_KEY.search(str(key))
        ):
            return True
    return False


def _uses_transport_security(config: ProviderConfiguration) -> bool:
    return (
        "db" in config.type
        or "auth" in config.type
        or config.category == "database"
    )


async def check_security_config(provider: Any, config: ProviderConfiguration) -> ValidationResult:
    errors: List[str] = []
    warnings: List[str] = []
    settings = config.config

    if contains_sensitive_data(settings):
        errors.append("Configuration contains potentially sensitive data")

    if _uses_transport_security(config) and settings.get("ssl") is False:
        warnings.append("SSL/TLS is disabled - consider enabling for production")

    if "auth" in config.type:
        policy = settings.get("password_requirements")
        if (
            isinstance(policy, Mapping)
            and not policy.get("require_uppercase")
            and not policy.get("require_numbers")
        ):
            warnings.append("Weak password policy detected")

    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)


async def check_connection_security(
    provider: Any, config: ProviderConfiguration
) -> ValidationResult:
    settings = config.config
    target = (
        settings.get("connection_string")
        or settings.get("supabase_url")
        or settings.get("host")
    )
    warnings: List[str] = []
    if isinstance(target, str) and target:
        if not target.startswith("https://") and "ssl=true" not in target:
            warnings.append("Connection may not be using secure transport")
    return ValidationResult(warnings=warnings)


async def check_config_completeness(
    provider: Any, config: ProviderConfiguration
) -> ValidationResult:
    settings = config.config
    errors = [
        f"Required field missing: {field_name}"
        for field_name in REQUIRED_FIELDS.get(config.type, [])
        if not settings.get(field_name)
    ]
    warnings = [
        f"Empty value for field: {key}"
        for key, value in settings.items()
        if value == "" or value is None
    ]
    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)


async def check_config_ranges(provider: Any, config: ProviderConfiguration) -> ValidationResult:
    settings = config.config
    warnings: List[str] = []

    def number(key: str) -> float | None:
        value = settings.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return float(value)

    max_connections = number("max_connections")
    if max_connections is not None and max_connections > 100:
        warnings.append("High connection count may impact performance")
    timeout = number("timeout")
    if timeout is not None and timeout < 5:
        warnings.append("Low timeout value may cause connection issues")
    retries = number("retries")
    if retries is not None and retries > 10:
        warnings.append("High retry count may cause delays")
    return ValidationResult(warnings=warnings)


async def check_performance_health(
    provider: Any, config: ProviderConfiguration
) -> ValidationResult:
    warnings: List[str] = []
    try:
        health = await provider.get_detailed_health()
    except Exception:  # noqa: BLE001
        return ValidationResult(warnings=["Unable to perform performance health check"])
    if health.performance.response_time > 1000:
        warnings.append("High response time detected (>1000ms)")
    if health.performance.error_rate > 0.05:
        warnings.append("High error rate detected (>5%)")
    return ValidationResult(warnings=warnings)


async def check_connectivity(provider: Any, config: ProviderConfiguration) -> ValidationResult:
    errors: List[str] = []
    try:
        diagnostics = await provider.run_diagnostics()
    except Exception as exc:  # noqa: BLE001
        errors.append(f"Connectivity test failed: {exc}")
    else:
        for test, outcome in diagnostics.items():
            if not outcome.success:
                errors.append(f"Connectivity test failed: {test} - {outcome.message}")
    return ValidationResult(valid=not errors, errors=errors)


def _exposes(provider: Any, getter_name: str) -> bool:
    getter = getattr(provider, getter_name, None)
    return callable(getter) and getter() is not None


async def check_feature_compatibility(
    provider: Any, config: ProviderConfiguration
) -> ValidationResult:
    warnings: List[str] = []
    try:
        capabilities = set(provider.get_capabilities())
        if "wizard-integration" in capabilities and not _exposes(
            provider, "get_wizard_integration"
        ):
            warnings.append("Wizard integration capability claimed but not available")
        if "setup-automation" in capabilities and not _exposes(
            provider, "get_setup_automation"
        ):
            warnings.append("Setup automation capability claimed but not available")
    except Exception:  # noqa: BLE001
        warnings.append("Unable to verify feature compatibility")
    return ValidationResult(warnings=warnings)


async def check_data_retention(provider: Any, config: ProviderConfiguration) -> ValidationResult:
    settings = config.config
    warnings: List[str] = []
    if not settings.get("data_retention_days") and not settings.get("data_retention_policy"):
        warnings.append("No data retention policy configured")
    if "auth" in config.type and not settings.get("enable_audit_logging"):
        warnings.append("Audit logging not enabled for authentication provider")
    return ValidationResult(warnings=warnings)


def default_rules() -> List[ValidationRule]:
    """Built-in rule catalog, in evaluation order."""
    return [
        ValidationRule(
            id="security-config-validation",
            name="Security Configuration Validation",
            description="Validates security-related configuration settings",
            category="security",
            severity="error",
            required=True,
            validator=check_security_config,
        ),
        ValidationRule(
            id="connection-security",
            name="Connection Security",
            description="Validates secure connection practices",
            category="security",
            severity="warning",
            required=True,
            validator=check_connection_security,
        ),
        ValidationRule(
            id="config-completeness",
            name="Configuration Completeness",
            description="Validates that all required configuration fields are present",
            category="configuration",
            severity="error",
            required=True,
            validator=check_config_completeness,
        ),
        ValidationRule(
            id="config-validation",
            name="Configuration Validation",
            description="Validates configuration values and ranges",
            category="configuration",
            severity="warning",
            required=True,
            validator=check_config_ranges,
        ),
        ValidationRule(
            id="performance-health-check",
            name="Performance Health Check",
            description="Validates provider performance characteristics",
            category="performance",
            severity="warning",
            required=False,
            validator=check_performance_health,
        ),
        ValidationRule(
            id="connectivity-test",
            name="Connectivity Test",
            description="Tests actual connectivity to provider services",
            category="integration",
            severity="error",
            required=True,
            validator=check_connectivity,
        ),
        ValidationRule(
            id="feature-compatibility",
            name="Feature Compatibility",
            description="Validates that provider features work as expected",
            category="integration",
            severity="warning",
            required=False,
            validator=check_feature_compatibility,
        ),
        ValidationRule(
            id="data-retention-compliance",
            name="Data Retention Compliance",
            description="Validates data retention and privacy compliance",
            category="compliance",
            severity="warning",
            required=False,
            validator=check_data_retention,
        ),
    ]
