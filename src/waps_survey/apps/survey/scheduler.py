"""Bounded asynchronous scan scheduler for wireless site surveys.

Drives repeated trigger -> await/retry cycles against an unreliable
sensor, bounds each location to ``max_scans`` batches and appends every
completed batch to the survey store.

State Machine:
    IDLE --start()--> SCANNING --(limit | stop | sensor off | revoked)--> IDLE

Everything that can resume a scanning session (a result delivery, a
retry timer firing, a cross-thread stop request) is posted as a tagged
ScanEvent into a per-session queue and handled by one sequential
function, so handlers never overlap.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from waps_survey.core.config import SurveyConfig
from waps_survey.core.exceptions import (
    PermissionDeniedError,
    SensorError,
    SubscriptionGoneError,
)
from waps_survey.core.observability import AuditEventType, AuditLogger
from waps_survey.core.permissions import PermissionGate
from waps_survey.core.sensor import DeliveryCallback, DeliverySource, SensorCapability
from waps_survey.storage.models import Sample, ScanBatch
from waps_survey.storage.session_store import SurveyStore

logger = logging.getLogger(__name__)


class ScanState(str, Enum):
    """Top-level scheduler state."""

    IDLE = "idle"
    SCANNING = "scanning"


class StartOutcome(str, Enum):
    """Result of a start request. Only STARTED changes any state."""

    STARTED = "started"
    ALREADY_ACTIVE = "already_active"
    UNKNOWN_LOCATION = "unknown_location"
    SENSOR_DISABLED = "sensor_disabled"
    PERMISSION_DENIED = "permission_denied"
    SUBSCRIBE_FAILED = "subscribe_failed"

    @property
    def ok(self) -> bool:
        return self is StartOutcome.STARTED


class HaltReason(str, Enum):
    """Why a scanning session returned to idle."""

    STOPPED = "stopped"
    LIMIT_REACHED = "limit_reached"
    SENSOR_DISABLED = "sensor_disabled"
    PERMISSION_REVOKED = "permission_revoked"
    SUBSCRIPTION_FAILED = "subscription_failed"
    FAILED = "failed"
    CLOSED = "closed"


class ScanEventKind(str, Enum):
    """Tags for events handled by the scheduler."""

    TRIGGER_FAILED = "trigger-failed"
    DELIVERY_ARRIVED = "delivery-arrived"
    TIMER_FIRED = "timer-fired"
    STOP_REQUESTED = "stop-requested"


@dataclass(eq=False)
class ScheduledRetry:
    """A pending timer that will post TIMER_FIRED after ``delay`` seconds."""

    delay: float
    task: asyncio.Task[None] | None = field(default=None, repr=False)


@dataclass(frozen=True)
class ScanEvent:
    """A tagged event for the scheduler's handler.

    ``success`` is the sensor's own flag on deliveries; ``retry`` names
    the timer that produced a TIMER_FIRED event.
    """

    kind: ScanEventKind
    success: bool = True
    retry: ScheduledRetry | None = None


@dataclass
class ScanSession:
    """Scheduling state owned by one ScanScheduler."""

    active_location: str
    max_scans: int
    is_active: bool = False
    completed_count: int = 0
    pending_retry: ScheduledRetry | None = None
    subscription: object | None = None
    session_id: str | None = None
    halt_reason: HaltReason | None = None

    @property
    def state(self) -> ScanState:
        return ScanState.SCANNING if self.is_active else ScanState.IDLE


class ScanScheduler:
    """Bounded survey scan scheduler.

    ``start``, ``stop`` and ``select_location`` must be called from the
    event loop thread. Use ``request_stop`` from other threads.

    Example:
        >>> sensor = SimulatedSensor()
        >>> gate = PermissionGate(StaticCapabilities.all_granted())
        >>> scheduler = ScanScheduler(sensor, sensor, gate)
        >>> scheduler.start("Location 1")
        <StartOutcome.STARTED: 'started'>
        >>> await scheduler.wait_until_idle()
    """

    def __init__(
        self,
        sensor: SensorCapability,
        delivery: DeliverySource,
        gate: PermissionGate,
        store: SurveyStore | None = None,
        config: SurveyConfig | None = None,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        """Initialize scheduler.

        Args:
            sensor: Sensor used to trigger scans and read results.
            delivery: Source of asynchronous result announcements.
            gate: Permission gate checked before start and every read.
            store: Survey store (created from config locations if None).
            config: Survey settings (defaults if None).
            audit_logger: Optional audit trail for lifecycle events.
        """
        self.config = config or SurveyConfig()
        self.sensor = sensor
        self.delivery = delivery
        self.gate = gate
        self.store = store or SurveyStore(self.config.locations)
        self.audit_logger = audit_logger

        self._session = ScanSession(
            active_location=self.store.locations[0],
            max_scans=self.config.max_scans,
        )
        self._loop: asyncio.AbstractEventLoop | None = None
        self._inbox: asyncio.Queue[ScanEvent] | None = None
        self._pump_task: asyncio.Task[None] | None = None
        # Created in start() on the running loop
        self._idle: asyncio.Event | None = None

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def session(self) -> ScanSession:
        """The live session. Treat as read-only."""
        return self._session

    @property
    def active_location(self) -> str:
        return self._session.active_location

    @property
    def is_active(self) -> bool:
        return self._session.is_active

    @property
    def completed_count(self) -> int:
        return self._session.completed_count

    @property
    def max_scans(self) -> int:
        return self._session.max_scans

    @property
    def state(self) -> ScanState:
        return self._session.state

    def progress_text(self) -> str:
        s = self._session
        return f"Scans: {s.completed_count} / {s.max_scans} for {s.active_location}"

    def get_status(self) -> dict[str, Any]:
        """Get current scheduler status."""
        s = self._session
        return {
            "session_id": s.session_id,
            "location": s.active_location,
            "state": s.state.value,
            "completed_scans": s.completed_count,
            "max_scans": s.max_scans,
            "retry_pending": s.pending_retry is not None,
            "subscribed": s.subscription is not None,
            "halt_reason": s.halt_reason.value if s.halt_reason else None,
        }

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def select_location(self, location: str) -> bool:
        """Switch the active location while idle.

        The completed count resumes from the location's existing batches.

        Returns:
            False if a survey is running (nothing changes).

        Raises:
            UnknownLocationError: If the location is not configured.
        """
        if self._session.is_active:
            logger.warning("Cannot change location to %s while scanning", location)
            return False

        count = self.store.count(location)
        self._session.active_location = location
        self._session.completed_count = count
        logger.debug("Selected %s (%d scans recorded)", location, count)
        return True

    def start(self, location: str | None = None) -> StartOutcome:
        """Start a survey at ``location`` (default: the active location).

        Preconditions are checked before anything changes; a refusal
        leaves the session, the store and the sensor untouched. On
        success the target bucket is cleared and the first scan is
        triggered immediately.

        Raises:
            RuntimeError: If called without a running event loop.
        """
        s = self._session
        if s.is_active:
            logger.warning("Survey already running at %s", s.active_location)
            return StartOutcome.ALREADY_ACTIVE

        target = s.active_location if location is None else location
        if target not in self.store:
            logger.warning("Unknown survey location: %s", target)
            return StartOutcome.UNKNOWN_LOCATION
        if not self.sensor.is_enabled():
            logger.warning("Sensor is disabled; not starting survey")
            return StartOutcome.SENSOR_DISABLED
        if not self.gate.granted():
            logger.warning(
                "Missing capabilities: %s",
                ", ".join(c.value for c in self.gate.missing()),
            )
            return StartOutcome.PERMISSION_DENIED

        loop = asyncio.get_running_loop()

        s.active_location = target
        self.store.clear(target)
        s.is_active = True
        s.completed_count = 0
        s.halt_reason = None
        s.session_id = str(uuid4())[:8]

        inbox: asyncio.Queue[ScanEvent] = asyncio.Queue()
        self._loop = loop
        self._inbox = inbox
        self._idle = asyncio.Event()
        self._pump_task = loop.create_task(self._pump(inbox))

        try:
            s.subscription = self.delivery.subscribe(self._delivery_callback(loop, inbox))
        except Exception as e:
            logger.error("Could not subscribe to scan results: %s", e)
            self._halt(HaltReason.SUBSCRIPTION_FAILED)
            return StartOutcome.SUBSCRIBE_FAILED

        logger.info("Survey started at %s (max %d scans)", target, s.max_scans)
        self._audit(
            AuditEventType.SURVEY_STARTED,
            {"location": target, "max_scans": s.max_scans},
        )

        self._guarded(self._run_cycle)
        return StartOutcome.STARTED

    def stop(self) -> None:
        """Stop the survey. Idempotent; a no-op while idle."""
        self._halt(HaltReason.STOPPED)

    def request_stop(self) -> None:
        """Thread-safe stop: posts STOP_REQUESTED to the scheduler loop."""
        loop, inbox = self._loop, self._inbox
        if loop is None or inbox is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(inbox.put_nowait, ScanEvent(ScanEventKind.STOP_REQUESTED))

    def close(self) -> None:
        """Tear down any running session (owner is going away)."""
        self._halt(HaltReason.CLOSED)

    async def wait_until_idle(self) -> HaltReason | None:
        """Wait until the current session halts.

        Returns:
            The halt reason, or None if no survey was ever started.
        """
        idle = self._idle
        if self._session.is_active and idle is not None:
            await idle.wait()
        return self._session.halt_reason

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    def _delivery_callback(
        self,
        loop: asyncio.AbstractEventLoop,
        inbox: asyncio.Queue[ScanEvent],
    ) -> DeliveryCallback:
        def on_event(success: bool = True) -> None:
            if loop.is_closed():
                return
            event = ScanEvent(ScanEventKind.DELIVERY_ARRIVED, success=bool(success))
            loop.call_soon_threadsafe(inbox.put_nowait, event)

        return on_event

    async def _pump(self, inbox: asyncio.Queue[ScanEvent]) -> None:
        while True:
            event = await inbox.get()
            self._guarded(self._handle, event)
            if not self._session.is_active or inbox is not self._inbox:
                return

    def _guarded(self, handler: Callable[..., None], *args: Any) -> None:
        try:
            handler(*args)
        except Exception:
            logger.exception("Unexpected error in survey scheduler; halting")
            self._halt(HaltReason.FAILED)

    def _handle(self, event: ScanEvent) -> None:
        s = self._session
        if not s.is_active:
            logger.debug("Discarding %s: survey is idle", event.kind.value)
            return

        if event.kind is ScanEventKind.TIMER_FIRED:
            if event.retry is not s.pending_retry:
                logger.debug("Discarding stale timer event")
                return
            s.pending_retry = None
            self._run_cycle()

        elif event.kind is ScanEventKind.TRIGGER_FAILED:
            self._read_cached_results()
            if s.is_active:
                self._schedule_retry(self.config.retry_delay_seconds)

        elif event.kind is ScanEventKind.DELIVERY_ARRIVED:
            self._on_delivery(event.success)

        elif event.kind is ScanEventKind.STOP_REQUESTED:
            self._halt(HaltReason.STOPPED)

    def _run_cycle(self) -> None:
        s = self._session
        if s.completed_count >= s.max_scans:
            self._halt(HaltReason.LIMIT_REACHED)
            return
        if not self.sensor.is_enabled():
            logger.warning("Sensor disabled mid-survey")
            self._halt(HaltReason.SENSOR_DISABLED)
            return

        try:
            started = self.sensor.trigger_scan()
        except PermissionDeniedError as e:
            logger.warning("Scan request denied: %s", e)
            self._halt(HaltReason.PERMISSION_REVOKED)
            return
        except SensorError as e:
            logger.debug("Trigger rejected: %s", e)
            started = False

        if not started:
            self._handle(ScanEvent(ScanEventKind.TRIGGER_FAILED))
            return

        # Results arrive through the delivery subscription
        if self.config.delivery_timeout_seconds is not None:
            self._schedule_retry(self.config.delivery_timeout_seconds)

    def _read_cached_results(self) -> None:
        if not self.gate.can_read_results():
            logger.debug("Skipping cached read: read capability not granted")
            return
        try:
            results = self.sensor.read_last_results()
        except (PermissionDeniedError, SensorError) as e:
            logger.debug("Cached read failed: %s", e)
            return

        if results:
            self._append(results, "cached")

    def _on_delivery(self, success: bool) -> None:
        s = self._session
        if not self.gate.granted():
            logger.warning("Capability revoked during survey; halting")
            self._halt(HaltReason.PERMISSION_REVOKED)
            return

        if success or not self.config.honor_delivery_flag:
            try:
                results = self.sensor.read_last_results()
            except PermissionDeniedError as e:
                logger.warning("Result read denied: %s", e)
                self._halt(HaltReason.PERMISSION_REVOKED)
                return
            except SensorError as e:
                logger.warning("Could not read scan results: %s", e)
            else:
                # An empty read still completes a scan and uses a budget slot
                self._append(results, "delivery")
                if not s.is_active:
                    return
        else:
            logger.debug("Delivery reported no fresh results; skipping read")

        self._cancel_retry()
        self._schedule_retry(self.config.scan_interval_seconds)

    def _append(
        self,
        results: Iterable[Sample | Mapping[str, Any]],
        source: Literal["delivery", "cached"],
    ) -> None:
        s = self._session
        readings = list(results)
        # Unlabeled readings are dropped before validation
        labeled = tuple(_as_sample(r) for r in readings if _label_of(r))
        dropped = len(readings) - len(labeled)
        batch = ScanBatch(location=s.active_location, samples=labeled, source=source)

        s.completed_count = self.store.append(batch)
        logger.info(
            "Scan %d/%d at %s: %d emitters (%d unlabeled dropped, %s)",
            s.completed_count,
            s.max_scans,
            s.active_location,
            len(labeled),
            dropped,
            source,
        )
        self._audit(
            AuditEventType.BATCH_APPENDED,
            {
                "location": s.active_location,
                "scan": s.completed_count,
                "samples": len(labeled),
                "source": source,
            },
            warnings=[f"{dropped} unlabeled readings dropped"] if dropped else None,
        )

        if s.completed_count >= s.max_scans:
            self._halt(HaltReason.LIMIT_REACHED)

    # ------------------------------------------------------------------
    # Continuations and teardown
    # ------------------------------------------------------------------

    def _schedule_retry(self, delay: float) -> None:
        self._cancel_retry()
        assert self._loop is not None and self._inbox is not None
        retry = ScheduledRetry(delay=delay)
        retry.task = self._loop.create_task(self._fire_after(retry, self._inbox))
        self._session.pending_retry = retry

    async def _fire_after(self, retry: ScheduledRetry, inbox: asyncio.Queue[ScanEvent]) -> None:
        await asyncio.sleep(retry.delay)
        inbox.put_nowait(ScanEvent(ScanEventKind.TIMER_FIRED, retry=retry))

    def _cancel_retry(self) -> None:
        retry = self._session.pending_retry
        self._session.pending_retry = None
        if retry is not None and retry.task is not None and not retry.task.done():
            retry.task.cancel()

    def _unsubscribe(self) -> None:
        handle = self._session.subscription
        self._session.subscription = None
        if handle is None:
            return
        try:
            self.delivery.unsubscribe(handle)
        except (SubscriptionGoneError, PermissionDeniedError) as e:
            logger.debug("Ignoring unsubscribe error: %s", e)
        except Exception as e:
            logger.warning("Unsubscribe failed: %s", e)

    def _halt(self, reason: HaltReason) -> None:
        s = self._session
        if not s.is_active:
            return

        s.is_active = False
        s.halt_reason = reason
        self._cancel_retry()
        self._unsubscribe()

        pump, self._pump_task = self._pump_task, None
        self._inbox = None
        if pump is not None and pump is not _current_task() and not pump.done():
            pump.cancel()

        if self._idle is not None:
            self._idle.set()
        logger.info(
            "Survey at %s halted (%s) after %d/%d scans",
            s.active_location,
            reason.value,
            s.completed_count,
            s.max_scans,
        )
        self._audit(
            AuditEventType.SURVEY_HALTED,
            {
                "location": s.active_location,
                "reason": reason.value,
                "completed_scans": s.completed_count,
            },
        )

    def _audit(
        self,
        event: AuditEventType,
        params: dict[str, Any],
        warnings: list[str] | None = None,
    ) -> None:
        if self.audit_logger is not None:
            self.audit_logger.log_operation(
                session_id=self._session.session_id or "-",
                operation=event,
                params=params,
                warnings=warnings,
            )


def _label_of(result: Sample | Mapping[str, Any]) -> str | None:
    if isinstance(result, Sample):
        return result.label
    return result.get("label")


def _as_sample(result: Sample | Mapping[str, Any]) -> Sample:
    if isinstance(result, Sample):
        return result
    return Sample.model_validate(result)


def _current_task() -> asyncio.Task[Any] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
