"""In-memory store mapping survey locations to their scan batches.

Buckets are append-only: batches are never reordered or mutated, so
readers can hold on to a snapshot while the scheduler keeps appending.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from waps_survey.core.config import DEFAULT_LOCATIONS
from waps_survey.core.exceptions import UnknownLocationError
from waps_survey.storage.models import Sample, ScanBatch

logger = logging.getLogger(__name__)


class SurveyStore:
    """Location -> ordered scan batches for a fixed set of sites.

    Example:
        >>> store = SurveyStore(["Lobby", "Lab"])
        >>> store.append(ScanBatch(location="Lobby"))
        1
        >>> store.count("Lobby")
        1
    """

    def __init__(self, locations: Iterable[str] = DEFAULT_LOCATIONS) -> None:
        self._buckets: dict[str, list[ScanBatch]] = {name: [] for name in locations}
        if not self._buckets:
            raise ValueError("SurveyStore needs at least one location")

    @property
    def locations(self) -> tuple[str, ...]:
        return tuple(self._buckets)

    def __contains__(self, location: object) -> bool:
        return location in self._buckets

    def __iter__(self) -> Iterator[str]:
        return iter(self._buckets)

    def _bucket(self, location: str) -> list[ScanBatch]:
        try:
            return self._buckets[location]
        except KeyError:
            raise UnknownLocationError(location) from None

    def batches(self, location: str) -> tuple[ScanBatch, ...]:
        """Return the batches for a location in chronological order."""
        return tuple(self._bucket(location))

    def samples(self, location: str) -> list[Sample]:
        """Return all samples for a location, flattened in scan order."""
        return [sample for batch in self._bucket(location) for sample in batch.samples]

    def count(self, location: str) -> int:
        """Return the number of batches recorded for a location."""
        return len(self._bucket(location))

    def append(self, batch: ScanBatch) -> int:
        """Append a batch to its location's bucket.

        Returns:
            The bucket's new batch count.
        """
        bucket = self._bucket(batch.location)
        bucket.append(batch)
        logger.debug(
            "Appended batch %d to %s (%d samples, %s)",
            len(bucket),
            batch.location,
            len(batch.samples),
            batch.source,
        )
        return len(bucket)

    def clear(self, location: str) -> None:
        """Drop all batches for a location."""
        bucket = self._bucket(location)
        if bucket:
            logger.info("Clearing %d batches for %s", len(bucket), location)
        bucket.clear()

    def snapshot(self) -> dict[str, tuple[ScanBatch, ...]]:
        """Return a read-only copy of the full location -> batches mapping."""
        return {name: tuple(bucket) for name, bucket in self._buckets.items()}
