"""Tests for the simulated sensor and an end-to-end survey run."""

from __future__ import annotations

import asyncio

import pytest

from waps_survey.apps.survey.aggregator import group_by_emitter, summarize_bucket
from waps_survey.apps.survey.scheduler import HaltReason, ScanScheduler, StartOutcome
from waps_survey.core.config import SurveyConfig
from waps_survey.core.exceptions import PermissionDeniedError, SubscriptionGoneError
from waps_survey.core.permissions import (
    Capability,
    PermissionGate,
    StaticCapabilities,
)
from waps_survey.core.sensor import (
    DeliverySource,
    SensorCapability,
    SimulatedSensor,
    make_emitters,
)


class TestMakeEmitters:
    """Tests for make_emitters()."""

    def test_count_and_hidden_networks(self):
        """Every fifth emitter has no label."""
        emitters = make_emitters(10, seed=7)

        assert len(emitters) == 10
        assert emitters[4].label is None
        assert emitters[9].label is None
        assert emitters[0].label == "AP-01"

    def test_bssids_are_unique_and_well_formed(self):
        emitters = make_emitters(20, seed=3)
        ids = [e.id for e in emitters]

        assert len(set(ids)) == len(ids)
        assert all(len(i.split(":")) == 6 for i in ids)
        assert all(-90 <= e.base_level < -35 for e in emitters)

    def test_seed_is_reproducible(self):
        assert make_emitters(5, seed=42) == make_emitters(5, seed=42)


class TestSimulatedSensor:
    """Tests for SimulatedSensor."""

    def test_satisfies_protocols(self):
        sensor = SimulatedSensor(seed=1)

        assert isinstance(sensor, SensorCapability)
        assert isinstance(sensor, DeliverySource)

    def test_disabled_rejects_trigger(self):
        sensor = SimulatedSensor(enabled=False, seed=1)
        assert sensor.trigger_scan() is False

    def test_always_busy_rejects_trigger(self):
        sensor = SimulatedSensor(busy_rate=1.0, seed=1)
        assert sensor.trigger_scan() is False

    @pytest.mark.asyncio
    async def test_trigger_delivers_results(self):
        """An accepted trigger announces fresh results to subscribers."""
        sensor = SimulatedSensor(make_emitters(6, seed=2), detect_rate=1.0, scan_latency_seconds=0.0, seed=2)
        received: list[bool] = []
        sensor.subscribe(received.append)

        assert sensor.trigger_scan() is True
        # A second trigger while a scan is in flight is rejected
        assert sensor.trigger_scan() is False
        await asyncio.sleep(0.01)

        assert received == [True]
        assert len(sensor.read_last_results()) == 6

    def test_read_requires_capabilities(self):
        caps = StaticCapabilities.all_granted()
        caps.revoke(Capability.FINE_LOCATION)
        sensor = SimulatedSensor(capabilities=caps, seed=1)

        with pytest.raises(PermissionDeniedError) as exc_info:
            sensor.read_last_results()
        assert exc_info.value.capability == "fine_location"

    def test_unsubscribe_twice(self):
        sensor = SimulatedSensor(seed=1)
        handle = sensor.subscribe(lambda ok: None)

        sensor.unsubscribe(handle)
        with pytest.raises(SubscriptionGoneError):
            sensor.unsubscribe(handle)


class TestSimulatedSurvey:
    """End-to-end survey against the simulated sensor."""

    @pytest.mark.asyncio
    async def test_survey_completes_with_flaky_sensor(self):
        """A sensor rejecting a third of triggers still fills the budget."""
        caps = StaticCapabilities.all_granted()
        sensor = SimulatedSensor(
            make_emitters(8, seed=11),
            busy_rate=0.3,
            scan_latency_seconds=0.0,
            capabilities=caps,
            seed=11,
        )
        config = SurveyConfig(max_scans=5, scan_interval_seconds=0.0, fallback_extra_delay_seconds=0.0)
        scheduler = ScanScheduler(sensor, sensor, PermissionGate(caps), config=config)

        assert scheduler.start("Location 3") is StartOutcome.STARTED
        reason = await asyncio.wait_for(scheduler.wait_until_idle(), timeout=5.0)

        assert reason is HaltReason.LIMIT_REACHED
        batches = scheduler.store.batches("Location 3")
        assert len(batches) == 5
        # Hidden networks never reach the store
        assert all(s.is_labeled for b in batches for s in b.samples)
        assert summarize_bucket(batches).total_count == sum(len(b) for b in batches)
        assert all(e.label for e in group_by_emitter(batches))
        assert scheduler.session.subscription is None
