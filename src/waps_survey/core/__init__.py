"""Core survey functionality - configuration, exceptions, permissions, sensors."""

from waps_survey.core.config import (
    DEFAULT_LOCATIONS,
    DEFAULT_MAX_SCANS,
    DEFAULT_SCAN_INTERVAL_S,
    FALLBACK_EXTRA_DELAY_S,
    LEVEL_UNKNOWN,
    SurveyConfig,
    load_survey_config,
)
from waps_survey.core.exceptions import (
    ConfigError,
    PermissionDeniedError,
    SensorBusyError,
    SensorError,
    SubscriptionError,
    SubscriptionGoneError,
    SurveyError,
    UnknownLocationError,
)
from waps_survey.core.permissions import (
    Capability,
    CapabilityProvider,
    PermissionGate,
    StaticCapabilities,
    required_capabilities,
)
from waps_survey.core.observability import AuditLogger
from waps_survey.core.sensor import (
    DeliverySource,
    SensorCapability,
    SimulatedSensor,
    make_emitters,
)

__all__ = [
    "DEFAULT_LOCATIONS",
    "DEFAULT_MAX_SCANS",
    "DEFAULT_SCAN_INTERVAL_S",
    "FALLBACK_EXTRA_DELAY_S",
    "LEVEL_UNKNOWN",
    "SurveyConfig",
    "load_survey_config",
    "Capability",
    "CapabilityProvider",
    "PermissionGate",
    "StaticCapabilities",
    "required_capabilities",
    "AuditLogger",
    "DeliverySource",
    "SensorCapability",
    "SimulatedSensor",
    "make_emitters",
    "SurveyError",
    "SensorError",
    "SensorBusyError",
    "PermissionDeniedError",
    "SubscriptionError",
    "SubscriptionGoneError",
    "UnknownLocationError",
    "ConfigError",
]
