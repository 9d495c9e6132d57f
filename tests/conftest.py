"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable
from pathlib import Path

import pytest

from waps_survey.apps.survey.scheduler import ScanScheduler
from waps_survey.core.config import SurveyConfig
from waps_survey.core.exceptions import SubscriptionGoneError
from waps_survey.core.permissions import PermissionGate, StaticCapabilities
from waps_survey.storage.models import Sample
from waps_survey.storage.session_store import SurveyStore


class FakeSensor:
    """Scriptable sensor for testing without a radio.

    ``trigger_outcomes`` is consumed one per trigger (bools or exceptions
    to raise); once empty, ``default_trigger`` is returned.
    """

    def __init__(self) -> None:
        self.enabled = True
        self.default_trigger = True
        self.trigger_outcomes: deque[bool | Exception] = deque()
        self.results: list[Sample] = []
        self.read_error: Exception | None = None
        self.triggers = 0
        self.reads = 0

    def is_enabled(self) -> bool:
        return self.enabled

    def trigger_scan(self) -> bool:
        self.triggers += 1
        outcome = self.trigger_outcomes.popleft() if self.trigger_outcomes else self.default_trigger
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def read_last_results(self) -> list[Sample]:
        self.reads += 1
        if self.read_error is not None:
            raise self.read_error
        return list(self.results)


class FakeDelivery:
    """Delivery source that lets tests fire result announcements."""

    def __init__(self) -> None:
        self.callbacks: dict[int, Callable[[bool], None]] = {}
        self.history: list[Callable[[bool], None]] = []
        self.subscribe_error: Exception | None = None
        self.unsubscribe_calls = 0
        self._next = 0

    def subscribe(self, on_event: Callable[[bool], None]) -> int:
        if self.subscribe_error is not None:
            raise self.subscribe_error
        handle = self._next
        self._next += 1
        self.callbacks[handle] = on_event
        self.history.append(on_event)
        return handle

    def unsubscribe(self, handle: object) -> None:
        self.unsubscribe_calls += 1
        if self.callbacks.pop(handle, None) is None:  # type: ignore[arg-type]
            raise SubscriptionGoneError(f"handle {handle!r}")

    def emit(self, success: bool = True) -> None:
        for callback in list(self.callbacks.values()):
            callback(success)


def make_samples(count: int, prefix: str = "ap", level: int = -60) -> list[Sample]:
    """Build ``count`` labeled samples with distinct ids."""
    return [
        Sample(id=f"{prefix}:{i:02d}", label=f"{prefix.upper()}-{i}", level=level - i)
        for i in range(count)
    ]


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for tests."""
    return tmp_path


@pytest.fixture
def sensor() -> FakeSensor:
    return FakeSensor()


@pytest.fixture
def delivery() -> FakeDelivery:
    return FakeDelivery()


@pytest.fixture
def capabilities() -> StaticCapabilities:
    return StaticCapabilities.all_granted()


@pytest.fixture
def gate(capabilities: StaticCapabilities) -> PermissionGate:
    return PermissionGate(capabilities)


@pytest.fixture
def config() -> SurveyConfig:
    """Survey settings with timers long enough never to fire during a test."""
    return SurveyConfig(
        max_scans=3,
        scan_interval_seconds=60.0,
        fallback_extra_delay_seconds=0.2,
    )


@pytest.fixture
def store(config: SurveyConfig) -> SurveyStore:
    return SurveyStore(config.locations)


@pytest.fixture
def scheduler(
    sensor: FakeSensor,
    delivery: FakeDelivery,
    gate: PermissionGate,
    store: SurveyStore,
    config: SurveyConfig,
) -> ScanScheduler:
    return ScanScheduler(sensor, delivery, gate, store=store, config=config)


@pytest.fixture
def settle() -> Callable[[], Awaitable[None]]:
    """Let queued callbacks, timers at zero delay and the event pump run."""

    async def _settle(rounds: int = 20) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)

    return _settle
