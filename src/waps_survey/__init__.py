"""WAPs Survey - bounded Wi-Fi access point site surveys with per-site statistics."""

from waps_survey.apps.survey import (
    HaltReason,
    ScanScheduler,
    StartOutcome,
    summarize_bucket,
)
from waps_survey.core.config import SurveyConfig
from waps_survey.core.exceptions import SurveyError
from waps_survey.core.permissions import Capability, PermissionGate
from waps_survey.storage import SurveyStore

__version__ = "0.1.0"

__all__ = [
    # Scheduler
    "ScanScheduler",
    "StartOutcome",
    "HaltReason",
    # Statistics
    "summarize_bucket",
    # Config
    "SurveyConfig",
    # Permissions
    "Capability",
    "PermissionGate",
    # Storage
    "SurveyStore",
    # Exceptions
    "SurveyError",
]
