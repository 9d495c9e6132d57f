"""Permission / capability gate for the survey scheduler.

The gate is a pure predicate over a fixed set of required capabilities.
It is evaluated before a survey starts and again before every delivered
result read, since a capability can be revoked mid-session.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class Capability(str, Enum):
    """Capabilities a wireless survey may need."""

    FINE_LOCATION = "fine_location"
    NEARBY_DEVICES = "nearby_devices"  # Only enforced on newer platforms
    SENSOR_STATE_READ = "sensor_state_read"
    SENSOR_STATE_CHANGE = "sensor_state_change"


@runtime_checkable
class CapabilityProvider(Protocol):
    """Protocol for whatever answers "is this capability granted?"."""

    def has_capability(self, name: str) -> bool:
        """Return True if the named capability is currently granted."""
        ...


def required_capabilities(nearby_devices_required: bool = True) -> frozenset[Capability]:
    """Return the capability set required to run a survey.

    Args:
        nearby_devices_required: Whether the platform enforces the
            nearby-devices capability.
    """
    required = {
        Capability.FINE_LOCATION,
        Capability.SENSOR_STATE_READ,
        Capability.SENSOR_STATE_CHANGE,
    }
    if nearby_devices_required:
        required.add(Capability.NEARBY_DEVICES)
    return frozenset(required)


class StaticCapabilities:
    """Capability provider backed by a mutable set of granted names.

    Example:
        >>> caps = StaticCapabilities.all_granted()
        >>> caps.revoke(Capability.FINE_LOCATION)
        >>> caps.has_capability("fine_location")
        False
    """

    def __init__(self, granted: Iterable[Capability | str] = ()) -> None:
        self._granted: set[str] = {_name(c) for c in granted}

    @classmethod
    def all_granted(cls) -> StaticCapabilities:
        return cls(Capability)

    def grant(self, capability: Capability | str) -> None:
        self._granted.add(_name(capability))

    def revoke(self, capability: Capability | str) -> None:
        self._granted.discard(_name(capability))

    def has_capability(self, name: str) -> bool:
        return _name(name) in self._granted


class PermissionGate:
    """Centralised permission check for the scan scheduler."""

    # Capabilities needed to read results (the trigger capability is not)
    READ_CAPABILITIES = frozenset(
        {
            Capability.FINE_LOCATION,
            Capability.NEARBY_DEVICES,
            Capability.SENSOR_STATE_READ,
        }
    )

    def __init__(
        self,
        provider: CapabilityProvider,
        required: Iterable[Capability] | None = None,
    ) -> None:
        """Initialize the gate.

        Args:
            provider: Source of truth for granted capabilities.
            required: Required capability set (default: all capabilities).
        """
        self.provider = provider
        self.required = frozenset(required) if required is not None else required_capabilities()

    def missing(self) -> list[Capability]:
        """Return required capabilities that are not granted, in enum order."""
        return [
            cap
            for cap in Capability
            if cap in self.required and not self.provider.has_capability(cap.value)
        ]

    def granted(self) -> bool:
        """Return True if every required capability is granted."""
        missing = self.missing()
        if missing:
            logger.debug("Missing capabilities: %s", ", ".join(c.value for c in missing))
            return False
        return True

    def can_read_results(self) -> bool:
        """Return True if the sensor's result set may be read."""
        return all(
            self.provider.has_capability(cap.value)
            for cap in Capability
            if cap in self.READ_CAPABILITIES and cap in self.required
        )


def _name(capability: Capability | str) -> str:
    if isinstance(capability, Capability):
        return capability.value
    return str(capability)
