from .api import SetupManagerAPI, create_setup_manager
from .manager import AutomatedSetupManager
from .models import (
    RollbackAction,
    RunError,
    RunProgress,
    SetupOptions,
    SetupProgress,
    SetupStep,
)
from .runner import StepContext, StepHandler, run_steps
from .steps import SETUP_STEP_DEFINITIONS, SETUP_STEP_HANDLERS, build_setup_steps

__all__ = [
    "AutomatedSetupManager",
    "RollbackAction",
    "RunError",
    "RunProgress",
    "SETUP_STEP_DEFINITIONS",
    "SETUP_STEP_HANDLERS",
    "SetupManagerAPI",
    "SetupOptions",
    "SetupProgress",
    "SetupStep",
    "StepContext",
    "StepHandler",
    "build_setup_steps",
    "create_setup_manager",
    "run_steps",
]
