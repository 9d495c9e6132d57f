"""CLI entry points for WAPs Survey."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from waps_survey.apps.survey import (
    HaltReason,
    ScanScheduler,
    StartOutcome,
    group_by_emitter,
    summarize_bucket,
)
from waps_survey.core.config import SurveyConfig, load_survey_config
from waps_survey.core.exceptions import ConfigError, SurveyError
from waps_survey.core.observability import AuditLogger
from waps_survey.core.permissions import PermissionGate, StaticCapabilities, required_capabilities
from waps_survey.core.sensor import SimulatedSensor, make_emitters
from waps_survey.storage.session_store import SurveyStore
from waps_survey.ui.display import (
    create_progress,
    display_emitters,
    display_location_summary,
    display_scan_log,
    print_banner,
    print_error,
    print_success,
    print_warning,
)

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )


def build_config(args: argparse.Namespace) -> SurveyConfig:
    """Merge command line overrides into the (optional) config file."""
    config = load_survey_config(args.config) if args.config else SurveyConfig()
    overrides: dict[str, Any] = {}
    if args.max_scans is not None:
        overrides["max_scans"] = args.max_scans
    if args.interval is not None:
        overrides["scan_interval_seconds"] = args.interval
    if args.audit_log is not None:
        overrides["audit_log_path"] = args.audit_log
    if overrides:
        try:
            config = SurveyConfig.model_validate({**config.model_dump(), **overrides})
        except ValidationError as e:
            raise ConfigError("Invalid command line settings", str(e)) from e
    return config


async def run_survey(
    scheduler: ScanScheduler,
    locations: list[str],
    show_progress: bool = True,
) -> dict[str, HaltReason | None]:
    """Survey each location in turn until its budget is spent or stopped.

    SIGINT/SIGTERM stop the current location and skip the rest.

    Returns:
        Halt reason per surveyed location.
    """
    loop = asyncio.get_running_loop()
    interrupted = False

    def handle_signal() -> None:
        nonlocal interrupted
        logger.info("Received shutdown signal")
        interrupted = True
        scheduler.stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, handle_signal)
        except (NotImplementedError, RuntimeError):
            pass

    reasons: dict[str, HaltReason | None] = {}
    try:
        for location in locations:
            if interrupted:
                break
            outcome = scheduler.start(location)
            if outcome is not StartOutcome.STARTED:
                print_warning(f"{location}: not started ({outcome.value})")
                reasons[location] = None
                continue

            if show_progress:
                with create_progress() as progress:
                    task = progress.add_task(location, total=scheduler.max_scans)
                    while scheduler.is_active:
                        progress.update(task, completed=scheduler.completed_count)
                        await asyncio.sleep(0.1)
                    progress.update(task, completed=scheduler.completed_count)
            reasons[location] = await scheduler.wait_until_idle()
    finally:
        scheduler.close()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass

    return reasons


def summary_payload(store: SurveyStore, locations: list[str]) -> dict[str, Any]:
    """Build a JSON-serializable summary for the given locations."""
    payload: dict[str, Any] = {}
    for location in locations:
        batches = store.batches(location)
        payload[location] = {
            "scans": len(batches),
            "summary": summarize_bucket(batches).model_dump(mode="json"),
            "emitters": [e.model_dump(mode="json") for e in group_by_emitter(batches)],
        }
    return payload


def survey() -> None:
    """WAPs Survey CLI entry point (simulated sensor)."""
    parser = argparse.ArgumentParser(
        description="WAPs Survey - Bounded Wi-Fi site survey with per-site statistics"
    )
    parser.add_argument(
        "-l",
        "--location",
        action="append",
        default=None,
        help="Location to survey (repeatable, default: first configured location)",
    )
    parser.add_argument(
        "-n",
        "--max-scans",
        type=int,
        default=None,
        help="Scans per location (default: 100)",
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=float,
        default=None,
        help="Seconds between scans (default: 0.5)",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Survey config file (.toml or .json)",
    )
    parser.add_argument(
        "--emitters",
        type=int,
        default=8,
        help="Number of simulated access points (default: 8)",
    )
    parser.add_argument(
        "--busy-rate",
        type=float,
        default=0.2,
        help="Probability a simulated trigger is rejected (default: 0.2)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for the simulated sensor",
    )
    parser.add_argument(
        "--audit-log",
        type=Path,
        default=None,
        help="Write a JSON Lines audit trail to this path",
    )
    parser.add_argument(
        "--log",
        action="store_true",
        help="Show the per-scan log, listing every access point in each scan",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the summary as JSON instead of tables",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    args = parser.parse_args()
    setup_logging(args.verbose)

    if not 0.0 <= args.busy_rate <= 1.0:
        print("Error: --busy-rate must be between 0 and 1", file=sys.stderr)
        sys.exit(1)

    try:
        config = build_config(args)
    except SurveyError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    locations = args.location or [config.locations[0]]
    unknown = [name for name in locations if name not in config.locations]
    if unknown:
        print(
            f"Error: Unknown location(s): {', '.join(unknown)}. "
            f"Options: {', '.join(config.locations)}",
            file=sys.stderr,
        )
        sys.exit(1)

    capabilities = StaticCapabilities.all_granted()
    sensor = SimulatedSensor(
        emitters=make_emitters(args.emitters, seed=args.seed),
        busy_rate=args.busy_rate,
        capabilities=capabilities,
        seed=args.seed,
    )
    gate = PermissionGate(capabilities, required_capabilities(config.nearby_devices_required))
    audit_logger = AuditLogger(config.audit_log_path) if config.audit_log_path else None
    store = SurveyStore(config.locations)
    scheduler = ScanScheduler(sensor, sensor, gate, store=store, config=config, audit_logger=audit_logger)

    if not args.json:
        print_banner("WAPs Survey", f"{config.max_scans} scans per location (simulated sensor)")

    try:
        reasons = asyncio.run(run_survey(scheduler, locations, show_progress=not args.json))
    except KeyboardInterrupt:
        print("\nSurvey stopped")
        reasons = {}

    if args.json:
        print(json.dumps(summary_payload(store, locations), indent=2))
        return

    for location in locations:
        batches = store.batches(location)
        reason = reasons.get(location)
        if reason is HaltReason.LIMIT_REACHED:
            print_success(f"{location}: {len(batches)} / {config.max_scans} scans")
        elif reason is not None:
            print_warning(f"{location}: halted ({reason.value}) after {len(batches)} scans")
        else:
            print_error(f"{location}: no survey")
            continue
        display_location_summary(location, batches)
        display_emitters(batches)
        if args.log:
            display_scan_log(location, batches, detail=True)
