"""In-memory storage for survey samples and scan batches."""

from __future__ import annotations

from waps_survey.storage.models import (
    BucketSummary,
    EmitterSummary,
    LevelRange,
    Sample,
    ScanBatch,
)
from waps_survey.storage.session_store import SurveyStore

__all__ = [
    "SurveyStore",
    "Sample",
    "ScanBatch",
    "LevelRange",
    "EmitterSummary",
    "BucketSummary",
]
