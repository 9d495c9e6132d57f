"""Configuration constants and survey settings."""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from waps_survey.core.exceptions import ConfigError

# =============================================================================
# Survey Sites
# =============================================================================
DEFAULT_LOCATIONS: tuple[str, ...] = ("Location 1", "Location 2", "Location 3")

# =============================================================================
# Scan Budget / Timing
# =============================================================================
DEFAULT_MAX_SCANS: int = 100
DEFAULT_SCAN_INTERVAL_S: float = 0.5
FALLBACK_EXTRA_DELAY_S: float = 0.2  # Added on top of the interval after a rejected trigger

# =============================================================================
# Signal Levels
# =============================================================================
LEVEL_UNKNOWN: int = -(2**31)  # Sentinel: signal strength not measured
LEVEL_UNIT: str = "dBm"


class SurveyConfig(BaseModel):
    """Settings for a survey scheduler.

    Capability requirements are fixed here at startup rather than
    re-derived on every permission check.
    """

    locations: list[str] = Field(default_factory=lambda: list(DEFAULT_LOCATIONS))
    max_scans: int = Field(default=DEFAULT_MAX_SCANS, ge=1)
    scan_interval_seconds: float = Field(default=DEFAULT_SCAN_INTERVAL_S, ge=0)
    fallback_extra_delay_seconds: float = Field(default=FALLBACK_EXTRA_DELAY_S, ge=0)
    nearby_devices_required: bool = True
    honor_delivery_flag: bool = False
    delivery_timeout_seconds: float | None = Field(default=None, gt=0)
    audit_log_path: Path | None = None

    @field_validator("locations")
    @classmethod
    def _check_locations(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one location is required")
        cleaned = [name.strip() for name in value]
        if any(not name for name in cleaned):
            raise ValueError("location names must not be blank")
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("location names must be unique")
        return cleaned

    @property
    def retry_delay_seconds(self) -> float:
        """Delay before retrying after the sensor rejected a trigger."""
        return self.scan_interval_seconds + self.fallback_extra_delay_seconds


def load_survey_config(path: str | Path) -> SurveyConfig:
    """Load a survey configuration file (TOML or JSON).

    A TOML file may keep its settings under a ``[survey]`` table.

    Args:
        path: Path to the configuration file.

    Returns:
        Validated SurveyConfig.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    path_obj = Path(path)
    if not path_obj.exists():
        raise ConfigError("Config path does not exist", str(path_obj))

    suffix = path_obj.suffix.lower()
    data: dict[str, Any]
    try:
        if suffix == ".toml":
            with path_obj.open("rb") as handle:
                data = tomllib.load(handle)
            data = data.get("survey", data)
        elif suffix == ".json":
            data = json.loads(path_obj.read_text(encoding="utf-8"))
        else:
            raise ConfigError("Unsupported config format", path_obj.suffix)
    except (tomllib.TOMLDecodeError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not parse {path_obj}", str(e)) from e

    try:
        return SurveyConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {path_obj}", str(e)) from e
