"""Benefits Intake - step-driven form state and validation for DSS benefit applications."""

__version__ = "0.1.0"

from .config import IntakeConfig
from .models import ApplicationState, NavigationPolicy, ProgramType, StepId
from .navigation import NavigationController
from .session import ApplicationSession
from .store import ApplicationStateStore

__all__ = [
    "IntakeConfig",
    "ApplicationState",
    "NavigationPolicy",
    "ProgramType",
    "StepId",
    "NavigationController",
    "ApplicationSession",
    "ApplicationStateStore",
]
