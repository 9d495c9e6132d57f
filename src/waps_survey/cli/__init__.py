"""CLI entry points for WAPs Survey."""

from waps_survey.cli.main import survey

__all__ = ["survey"]
