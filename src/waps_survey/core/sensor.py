"""Wireless sensor interfaces and a simulated sensor.

The scheduler only talks to the two protocols defined here; the
platform's scan service (or the simulator below) implements them.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import numpy as np

from waps_survey.core.exceptions import PermissionDeniedError, SubscriptionGoneError
from waps_survey.core.permissions import Capability, CapabilityProvider
from waps_survey.storage.models import Sample

logger = logging.getLogger(__name__)

# Callback invoked when the sensor announces fresh results. The flag is
# the sensor's own best-effort "results updated" indicator.
DeliveryCallback = Callable[[bool], None]


@runtime_checkable
class SensorCapability(Protocol):
    """Protocol for a wireless scan sensor."""

    def is_enabled(self) -> bool:
        """Return True if the radio is switched on."""
        ...

    def trigger_scan(self) -> bool:
        """Request a scan. False means the request was rejected."""
        ...

    def read_last_results(self) -> Sequence[Sample]:
        """Return the most recent result set.

        Raises:
            PermissionDeniedError: If results may not be read.
        """
        ...


@runtime_checkable
class DeliverySource(Protocol):
    """Protocol for subscribing to asynchronous result announcements."""

    def subscribe(self, on_event: DeliveryCallback) -> object:
        """Register a callback and return an opaque handle."""
        ...

    def unsubscribe(self, handle: object) -> None:
        """Remove a callback.

        Raises:
            SubscriptionGoneError: If the handle was already removed.
        """
        ...


@dataclass(frozen=True)
class SimulatedEmitter:
    """An access point visible to the simulated sensor."""

    id: str
    label: str | None
    base_level: int


def make_emitters(count: int = 8, seed: int | None = None) -> list[SimulatedEmitter]:
    """Generate emitters with random BSSIDs and levels between -90 and -35 dBm.

    Every fifth emitter is a hidden network (no label).
    """
    rng = np.random.default_rng(seed)
    emitters = []
    for idx in range(count):
        octets = rng.integers(0, 256, size=6)
        octets[0] &= 0xFE  # unicast
        bssid = ":".join(f"{int(o):02x}" for o in octets)
        label = None if idx % 5 == 4 else f"AP-{idx + 1:02d}"
        emitters.append(
            SimulatedEmitter(id=bssid, label=label, base_level=int(rng.integers(-90, -35)))
        )
    return emitters


@dataclass
class SimulatedSensor:
    """In-process sensor that also acts as its own delivery source.

    A successful trigger schedules a delivery on the running event loop
    after ``scan_latency_seconds``. ``busy_rate`` is the probability that
    a trigger is rejected, like a throttled platform scanner.

    Example:
        >>> sensor = SimulatedSensor(make_emitters(seed=1), busy_rate=0.25, seed=1)
        >>> handle = sensor.subscribe(lambda ok: print("results", ok))
    """

    emitters: list[SimulatedEmitter] = field(default_factory=make_emitters)
    busy_rate: float = 0.0
    detect_rate: float = 0.9
    noise_db: float = 3.0
    scan_latency_seconds: float = 0.05
    enabled: bool = True
    capabilities: CapabilityProvider | None = None
    seed: int | None = None

    _rng: np.random.Generator = field(init=False, repr=False)
    _results: tuple[Sample, ...] = field(default=(), init=False, repr=False)
    _callbacks: dict[int, DeliveryCallback] = field(default_factory=dict, init=False, repr=False)
    _handles: itertools.count = field(default_factory=itertools.count, init=False, repr=False)
    _pending: asyncio.TimerHandle | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self._rng = np.random.default_rng(self.seed)

    def is_enabled(self) -> bool:
        return self.enabled

    def trigger_scan(self) -> bool:
        if not self.enabled:
            return False
        if self._pending is not None or self._rng.random() < self.busy_rate:
            logger.debug("Simulated trigger rejected")
            return False

        loop = asyncio.get_running_loop()
        self._pending = loop.call_later(self.scan_latency_seconds, self._complete_scan)
        return True

    def read_last_results(self) -> Sequence[Sample]:
        if self.capabilities is not None:
            for cap in (Capability.FINE_LOCATION, Capability.SENSOR_STATE_READ):
                if not self.capabilities.has_capability(cap.value):
                    raise PermissionDeniedError(cap.value)
        return self._results

    def subscribe(self, on_event: DeliveryCallback) -> int:
        handle = next(self._handles)
        self._callbacks[handle] = on_event
        return handle

    def unsubscribe(self, handle: object) -> None:
        if self._callbacks.pop(handle, None) is None:  # type: ignore[arg-type]
            raise SubscriptionGoneError(f"handle {handle!r}")

    def _complete_scan(self) -> None:
        self._pending = None
        self._results = tuple(self._sample_emitters())
        for callback in list(self._callbacks.values()):
            callback(True)

    def _sample_emitters(self) -> list[Sample]:
        samples = []
        for emitter in self.emitters:
            if self._rng.random() > self.detect_rate:
                continue
            level = emitter.base_level + self._rng.normal(0.0, self.noise_db)
            samples.append(Sample(id=emitter.id, label=emitter.label, level=int(round(float(level)))))
        return samples
