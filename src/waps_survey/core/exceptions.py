"""Custom exception hierarchy for survey operations."""

from __future__ import annotations


class SurveyError(Exception):
    """Base exception for all survey-related errors."""

    def __init__(self, message: str, details: str | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class SensorError(SurveyError):
    """Error related to the wireless sensor."""

    pass


class SensorBusyError(SensorError):
    """Sensor rejected a scan request because it is busy or throttled."""

    def __init__(self, details: str | None = None) -> None:
        super().__init__("Sensor is busy or throttled", details)


class PermissionDeniedError(SurveyError):
    """A required capability is not granted."""

    def __init__(self, capability: str, details: str | None = None) -> None:
        self.capability = capability
        super().__init__(f"Permission denied: {capability}", details)


class SubscriptionError(SurveyError):
    """Error registering or removing a delivery subscription."""

    pass


class SubscriptionGoneError(SubscriptionError):
    """The subscription handle was already removed."""

    def __init__(self, details: str | None = None) -> None:
        super().__init__("Subscription already removed", details)


class UnknownLocationError(SurveyError):
    """Location key is not one of the configured survey sites."""

    def __init__(self, location: str, details: str | None = None) -> None:
        self.location = location
        super().__init__(f"Unknown location: {location!r}", details)


class ConfigError(SurveyError):
    """Configuration could not be loaded or validated."""

    pass
