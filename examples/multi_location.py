"""Survey three sites with a flaky simulated sensor and compare them."""

import asyncio

from waps_survey.apps.survey import ScanScheduler, summarize_bucket
from waps_survey.core import PermissionGate, SimulatedSensor, StaticCapabilities, SurveyConfig, make_emitters


async def main() -> None:
    caps = StaticCapabilities.all_granted()
    sensor = SimulatedSensor(make_emitters(12, seed=3), busy_rate=0.25, capabilities=caps, seed=3)
    config = SurveyConfig(max_scans=20, scan_interval_seconds=0.1)
    scheduler = ScanScheduler(sensor, sensor, PermissionGate(caps), config=config)

    for location in config.locations:
        scheduler.start(location)
        reason = await scheduler.wait_until_idle()
        print(f"{location}: {scheduler.progress_text()} ({reason.value})")

    # Same emitters everywhere, so only noise separates the sites
    for location in config.locations:
        summary = summarize_bucket(scheduler.store.batches(location))
        print(f"{location}: {summary.total_count} APs, avg {summary.average_text()}, {summary.level_range.describe()}")


if __name__ == "__main__":
    asyncio.run(main())
