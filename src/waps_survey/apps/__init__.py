"""High-level survey applications."""

from waps_survey.apps.survey import ScanScheduler, StartOutcome

__all__ = [
    "ScanScheduler",
    "StartOutcome",
]
