"""Site survey module: bounded scan scheduling and result statistics.

Example:
    >>> from waps_survey.apps.survey import ScanScheduler, summarize_bucket
    >>> scheduler = ScanScheduler(sensor, sensor, gate)
    >>> scheduler.start("Location 1")
    >>> await scheduler.wait_until_idle()
    >>> summarize_bucket(scheduler.store.batches("Location 1"))
"""

from waps_survey.apps.survey.aggregator import (
    average_level,
    group_by_emitter,
    level_range,
    summarize_batch,
    summarize_bucket,
    summarize_samples,
)
from waps_survey.apps.survey.scheduler import (
    HaltReason,
    ScanEvent,
    ScanEventKind,
    ScanScheduler,
    ScanSession,
    ScanState,
    StartOutcome,
)

__all__ = [
    "ScanScheduler",
    "ScanSession",
    "ScanState",
    "ScanEvent",
    "ScanEventKind",
    "StartOutcome",
    "HaltReason",
    "average_level",
    "level_range",
    "group_by_emitter",
    "summarize_samples",
    "summarize_batch",
    "summarize_bucket",
]
