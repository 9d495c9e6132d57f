"""Tests for the capability gate."""

from __future__ import annotations

from waps_survey.core.permissions import (
    Capability,
    CapabilityProvider,
    PermissionGate,
    StaticCapabilities,
    required_capabilities,
)


class TestRequiredCapabilities:
    """Tests for required_capabilities()."""

    def test_includes_nearby_devices_by_default(self):
        assert required_capabilities() == frozenset(Capability)

    def test_older_platform_skips_nearby_devices(self):
        """Platforms without the nearby-devices capability never require it."""
        required = required_capabilities(nearby_devices_required=False)

        assert Capability.NEARBY_DEVICES not in required
        assert Capability.FINE_LOCATION in required


class TestStaticCapabilities:
    """Tests for StaticCapabilities."""

    def test_is_a_capability_provider(self):
        assert isinstance(StaticCapabilities(), CapabilityProvider)

    def test_grant_and_revoke(self):
        caps = StaticCapabilities()
        assert not caps.has_capability("fine_location")

        caps.grant(Capability.FINE_LOCATION)
        assert caps.has_capability("fine_location")

        caps.revoke("fine_location")
        assert not caps.has_capability(Capability.FINE_LOCATION.value)


class TestPermissionGate:
    """Tests for PermissionGate."""

    def test_all_granted(self):
        gate = PermissionGate(StaticCapabilities.all_granted())

        assert gate.granted()
        assert gate.missing() == []
        assert gate.can_read_results()

    def test_missing_reported_in_order(self):
        caps = StaticCapabilities([Capability.SENSOR_STATE_READ])
        gate = PermissionGate(caps)

        assert not gate.granted()
        assert gate.missing() == [
            Capability.FINE_LOCATION,
            Capability.NEARBY_DEVICES,
            Capability.SENSOR_STATE_CHANGE,
        ]

    def test_nearby_devices_not_required(self):
        """Revoking an unrequired capability does not close the gate."""
        caps = StaticCapabilities.all_granted()
        caps.revoke(Capability.NEARBY_DEVICES)
        gate = PermissionGate(caps, required_capabilities(nearby_devices_required=False))

        assert gate.granted()
        assert gate.can_read_results()

    def test_reading_does_not_need_change_capability(self):
        """Only trigger-side capability missing: results may still be read."""
        caps = StaticCapabilities.all_granted()
        caps.revoke(Capability.SENSOR_STATE_CHANGE)
        gate = PermissionGate(caps)

        assert not gate.granted()
        assert gate.can_read_results()

    def test_revocation_is_seen_immediately(self):
        """The gate queries the provider on every call."""
        caps = StaticCapabilities.all_granted()
        gate = PermissionGate(caps)
        assert gate.granted()

        caps.revoke(Capability.FINE_LOCATION)

        assert not gate.granted()
        assert not gate.can_read_results()
