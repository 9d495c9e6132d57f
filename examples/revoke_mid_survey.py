"""Show a survey halting when a capability is revoked mid-session."""

import asyncio

from waps_survey.apps.survey import ScanScheduler
from waps_survey.core import Capability, PermissionGate, SimulatedSensor, StaticCapabilities, SurveyConfig


async def main() -> None:
    caps = StaticCapabilities.all_granted()
    sensor = SimulatedSensor(capabilities=caps, seed=1)
    scheduler = ScanScheduler(sensor, sensor, PermissionGate(caps), config=SurveyConfig(max_scans=50))

    scheduler.start("Location 1")
    await asyncio.sleep(1.0)
    caps.revoke(Capability.FINE_LOCATION)

    reason = await scheduler.wait_until_idle()
    print(f"Halted: {reason.value} after {scheduler.completed_count} scans")


if __name__ == "__main__":
    asyncio.run(main())
