from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

ProviderCategory = Literal["database", "auth", "email", "storage", "all-in-one", "other"]


def provider_category(provider_type: str) -> ProviderCategory:
    if (
        "db" in provider_type
        or "database" in provider_type
        or provider_type in {"postgresql", "mysql", "sqlite"}
    ):
        return "database"
    if "auth" in provider_type:
        return "auth"
    if "email" in provider_type:
        return "email"
    if "storage" in provider_type:
        return "storage"
    if "all-in-one" in provider_type:
        return "all-in-one"
    return "other"


class DeploymentSupport(BaseModel):
    standalone: bool = True
    docker: bool = True
    serverless: bool = False
    edge: bool = False


class EnvironmentSupport(BaseModel):
    development: bool = True
    staging: bool = True
    production: bool = True


class ScaleSupport(BaseModel):
    single_tenant: bool = True
    multi_tenant: bool = True
    enterprise: bool = False


class ProviderCompatibility(BaseModel):
    frameworks: List[str] = Field(
        default_factory=lambda: ["express", "fastify", "nextjs"]
    )
    deployment: DeploymentSupport = Field(default_factory=DeploymentSupport)
    environment: EnvironmentSupport = Field(default_factory=EnvironmentSupport)
    scale: ScaleSupport = Field(default_factory=ScaleSupport)


class ProviderConfiguration(BaseModel):
    id: str
    name: str
    type: str
    version: str = "1.0.0"
    description: str = ""
    category: ProviderCategory = "other"
    features: Dict[str, Any] = Field(default_factory=dict)
    compatibility: ProviderCompatibility = Field(default_factory=ProviderCompatibility)
    capabilities: List[str] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)
    config: Dict[str, Any] = Field(default_factory=dict)
    secrets: Dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True
    auto_start: bool = True
    health_check: bool = True
    priority: int = 1
    timeout: float = 30.0
    retries: int = 3


class WizardField(BaseModel):
    id: str
    name: str
    type: Literal["text", "password", "number", "boolean", "select", "file", "json"]
    label: str
    description: Optional[str] = None
    required: bool = False
    validation: Optional[str] = None
    options: List[Dict[str, str]] = Field(default_factory=list)
    default_value: Any = None


class WizardStep(BaseModel):
    id: str
    name: str
    description: str = ""
    required: bool = True
    fields: List[WizardField] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)


class ValidationResult(BaseModel):
    valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class StepResult(BaseModel):
    success: bool = True
    data: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    next_step: Optional[str] = None


class TestResult(BaseModel):
    __test__ = False  # keep pytest from collecting this model

    success: bool
    message: str = ""
    details: Dict[str, Any] = Field(default_factory=dict)
    latency: Optional[float] = None


class HealthCheck(BaseModel):
    health: str = "unknown"
    status: str = "unknown"
    details: Dict[str, Any] = Field(default_factory=dict)


class PerformanceSnapshot(BaseModel):
    response_time: float = 0.0
    error_rate: float = 0.0
    throughput: float = 0.0


class DetailedHealth(BaseModel):
    status: str = "unknown"
    performance: PerformanceSnapshot = Field(default_factory=PerformanceSnapshot)
    details: Dict[str, Any] = Field(default_factory=dict)


class ProviderSummary(BaseModel):
    name: str
    type: str
    status: str = "registered"
