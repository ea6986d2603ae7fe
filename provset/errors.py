from __future__ import annotations

from typing import Any, Dict, Optional


class ProvsetError(RuntimeError):
    """Base error for the setup pipeline, carrying a stable error code."""

    default_code = "provset.error"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        detail: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.message = message
        self.detail = dict(detail or {})


class ConfigurationError(ProvsetError):
    default_code = "config.invalid"


class ProviderNotFoundError(ProvsetError):
    default_code = "provider.not_found"

    def __init__(self, provider_name: str, message: Optional[str] = None) -> None:
        super().__init__(
            message or f"Provider '{provider_name}' not found",
            detail={"provider": provider_name},
        )
        self.provider_name = provider_name


class StepExecutionError(ProvsetError):
    """Raised by the step runner once a failure has been recorded on the run."""

    default_code = "step.failed"

    def __init__(self, step_id: str, message: str) -> None:
        super().__init__(message, detail={"step_id": step_id})
        self.step_id = step_id


class UnknownStepError(ProvsetError):
    default_code = "step.unknown"

    def __init__(self, step_id: str) -> None:
        super().__init__(f"Unknown step: {step_id}", detail={"step_id": step_id})
        self.step_id = step_id


class WorkflowError(ProvsetError):
    default_code = "workflow.failed"
