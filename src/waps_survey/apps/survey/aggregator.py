"""Signal level statistics over recorded scan batches.

All functions are pure: they read immutable samples and batches and
never touch the store or the scheduler.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

import numpy as np

from waps_survey.core.config import LEVEL_UNKNOWN
from waps_survey.storage.models import (
    BucketSummary,
    EmitterSummary,
    LevelRange,
    Sample,
    ScanBatch,
)

logger = logging.getLogger(__name__)

NO_DATA = LevelRange(kind="none")


def valid_levels(samples: Iterable[Sample]) -> list[int]:
    """Return measured levels, dropping the unknown-level sentinel."""
    return [s.level for s in samples if s.level != LEVEL_UNKNOWN]


def _round_half_up(value: float) -> int:
    return int(np.floor(value + 0.5))


def average_level(samples: Iterable[Sample]) -> int | None:
    """Mean of measured levels, rounded to the nearest integer.

    Halves round towards positive infinity (-40.5 -> -40).

    Returns:
        The rounded mean, or None when no level was measured.
    """
    levels = valid_levels(samples)
    if not levels:
        return None
    return _round_half_up(float(np.mean(levels)))


def level_range(samples: Iterable[Sample]) -> LevelRange:
    """Range of measured levels.

    Returns:
        ``kind="none"`` for no data, ``kind="single"`` for exactly one
        measured level, otherwise a span with min and max.
    """
    levels = valid_levels(samples)
    if not levels:
        return NO_DATA
    if len(levels) == 1:
        return LevelRange(kind="single", minimum=levels[0], maximum=levels[0])
    arr = np.asarray(levels)
    return LevelRange(kind="span", minimum=int(arr.min()), maximum=int(arr.max()))


def flatten(batches: Iterable[ScanBatch]) -> list[Sample]:
    """Flatten batches into one sample list, preserving scan order."""
    return [sample for batch in batches for sample in batch.samples]


def group_by_emitter(batches: Iterable[ScanBatch]) -> list[EmitterSummary]:
    """Group samples by emitter id in first-seen order.

    The first label seen for an id is kept; later differing labels are
    logged but do not replace it.
    """
    groups: dict[str, list[Sample]] = {}
    labels: dict[str, str | None] = {}

    for sample in flatten(batches):
        if sample.id not in groups:
            groups[sample.id] = []
            labels[sample.id] = sample.label
        elif sample.label != labels[sample.id]:
            logger.warning(
                "Emitter %s seen as %r and %r; keeping %r",
                sample.id,
                labels[sample.id],
                sample.label,
                labels[sample.id],
            )
        groups[sample.id].append(sample)

    summaries: list[EmitterSummary] = []
    for emitter_id, samples in groups.items():
        span = level_range(samples)
        summaries.append(
            EmitterSummary(
                id=emitter_id,
                label=labels[emitter_id],
                count=len(samples),
                average=average_level(samples),
                minimum=span.minimum,
                maximum=span.maximum,
            )
        )
    return summaries


def summarize_samples(samples: Sequence[Sample]) -> BucketSummary:
    """Total count, overall average and overall range for a sample set."""
    return BucketSummary(
        total_count=len(samples),
        average=average_level(samples),
        level_range=level_range(samples),
    )


def summarize_batch(batch: ScanBatch) -> BucketSummary:
    """Statistics for a single scan batch."""
    return summarize_samples(batch.samples)


def summarize_bucket(batches: Iterable[ScanBatch]) -> BucketSummary:
    """Statistics for every sample recorded at a location."""
    return summarize_samples(flatten(batches))
