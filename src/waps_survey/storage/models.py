"""Pydantic data models for wireless site surveys.

Samples and batches are immutable once captured; derived statistics
are value objects produced by the aggregator.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from waps_survey.core.config import LEVEL_UNIT, LEVEL_UNKNOWN


class Sample(BaseModel):
    """One detected emitter within a single scan."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable emitter identifier (e.g. BSSID)")
    label: str | None = Field(default=None, description="Human-readable name (e.g. SSID)")
    level: int = Field(default=LEVEL_UNKNOWN, description="Signal level in dBm")

    @field_validator("level", mode="before")
    @classmethod
    def _unknown_level(cls, value: Any) -> Any:
        # Sensors report an unmeasured level as None
        return LEVEL_UNKNOWN if value is None else value

    @property
    def is_labeled(self) -> bool:
        """Whether the sample carries a non-empty label."""
        return bool(self.label)

    @property
    def has_level(self) -> bool:
        """Whether the signal level was measured."""
        return self.level != LEVEL_UNKNOWN


class ScanBatch(BaseModel):
    """Samples produced by one completed scan cycle."""

    model_config = ConfigDict(frozen=True)

    location: str
    samples: tuple[Sample, ...] = ()
    source: Literal["delivery", "cached"] = "delivery"
    captured_at: datetime = Field(default_factory=datetime.now)

    def __len__(self) -> int:
        return len(self.samples)


class LevelRange(BaseModel):
    """Three-way signal level range: no data, a single value, or a span."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["none", "single", "span"]
    minimum: int | None = None
    maximum: int | None = None

    @property
    def spread(self) -> int | None:
        if self.minimum is None or self.maximum is None:
            return None
        return self.maximum - self.minimum

    def as_tuple(self) -> tuple[int, int, int] | None:
        """Return ``(min, max, max - min)`` for a span, else None."""
        if self.kind != "span":
            return None
        return (self.minimum, self.maximum, self.maximum - self.minimum)  # type: ignore[operator]

    def describe(self) -> str:
        """Return a human-readable range string."""
        if self.kind == "span":
            return f"{self.minimum} to {self.maximum} {LEVEL_UNIT} ({self.spread} diff)"
        if self.kind == "single":
            return f"{self.minimum} {LEVEL_UNIT}"
        return "N/A"


class EmitterSummary(BaseModel):
    """Aggregate statistics for one emitter across a bucket."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str | None
    count: int
    average: int | None
    minimum: int | None
    maximum: int | None


class BucketSummary(BaseModel):
    """Aggregate statistics for a bucket or a single batch."""

    model_config = ConfigDict(frozen=True)

    total_count: int
    average: int | None
    level_range: LevelRange

    def average_text(self) -> str:
        if self.average is None:
            return "N/A"
        return f"{self.average} {LEVEL_UNIT}"
