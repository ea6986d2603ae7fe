from __future__ import annotations

from typing import Dict, Iterable, List

from .models import MigrationCompatibility, RiskLevel

SCHEMA_COMPATIBILITY: Dict[str, List[str]] = {
    "postgresql": ["supabase-db", "mysql"],
    "supabase-db": ["postgresql", "mysql"],
    "mysql": ["postgresql", "supabase-db"],
    "pocketbase-db": ["sqlite", "postgresql"],
    "sqlite": ["pocketbase-db", "postgresql"],
    "local-auth": ["jwt-local-auth", "oauth2-auth"],
    "jwt-local-auth": ["local-auth", "oauth2-auth"],
}

LARGE_DATA_SIZE = 10_000


def provider_family(provider_type: str) -> str:
    if "auth" in provider_type:
        return "auth"
    if "db" in provider_type or provider_type in {"postgresql", "mysql"}:
        return "database"
    if "email" in provider_type:
        return "email"
    if "storage" in provider_type:
        return "storage"
    return "other"


def schema_compatible(source_type: str, target_type: str) -> bool:
    return target_type in SCHEMA_COMPATIBILITY.get(source_type, [])


def check_compatibility(
    source_type: str,
    target_type: str,
    source_capabilities: Iterable[str],
    target_capabilities: Iterable[str],
) -> MigrationCompatibility:
    schema_ok = schema_compatible(source_type, target_type)
    data_ok = provider_family(source_type) == provider_family(target_type)
    feature_ok = set(source_capabilities) <= set(target_capabilities)

    warnings: List[str] = []
    if not schema_ok:
        warnings.append("Schema migration may require manual intervention")
    if not data_ok:
        warnings.append("Data transformation may be required")
    if not feature_ok:
        warnings.append("Some features may not be available in target provider")
    return MigrationCompatibility(
        schema_compatible=schema_ok,
        data_compatible=data_ok,
        feature_compatible=feature_ok,
        warnings=warnings,
    )


def assess_risk(compatibility: MigrationCompatibility, data_size: int) -> RiskLevel:
    score = 0
    if not compatibility.schema_compatible:
        score += 3
    if not compatibility.data_compatible:
        score += 2
    if not compatibility.feature_compatible:
        score += 1
    if data_size > LARGE_DATA_SIZE:
        score += 2
    if len(compatibility.warnings) > 3:
        score += 1

    if score >= 5:
        return "high"
    if score >= 2:
        return "medium"
    return "low"
