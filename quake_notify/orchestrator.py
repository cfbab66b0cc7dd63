"""Orchestrator - Wires Functional Core and Imperative Shell.

This module coordinates the flow of data between the pure functional
core and the I/O-performing shell components. Each source is handled
by an IngestionCoordinator:

    Idle -> Fetching -> Filtering -> Notifying -> Advancing -> Idle

The watermark is written once per run, after every new event has been
attempted. A crash mid-run therefore reprocesses the whole batch next
time, while a completed run never reprocesses an event at or before
the new watermark.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterable, Protocol

from quake_notify.core.config import Config, SourceConfig
from quake_notify.core.earthquake import Event
from quake_notify.core.errors import FetchError, StoreError
from quake_notify.core.formatter import format_event_summary
from quake_notify.core.preferences import User
from quake_notify.core.recipients import resolve_recipients
from quake_notify.core.sources import SourceAdapter, get_adapter
from quake_notify.core.watermark import filter_unprocessed, next_watermark, should_advance
from quake_notify.dispatcher import Dispatcher
from quake_notify.shell.feed_client import FeedClient
from quake_notify.shell.firestore_client import (
    FirestoreConfig,
    FirestoreUserDirectory,
    FirestoreWatermarkStore,
)
from quake_notify.shell.geocoder_client import GeocoderClient
from quake_notify.shell.push_client import PushClient


logger = logging.getLogger(__name__)


class FeedFetcher(Protocol):
    def fetch(self, source: SourceConfig) -> dict[str, Any]: ...


class WatermarkStore(Protocol):
    def get(self, source: str) -> int: ...

    def set(self, source: str, timestamp: int) -> None: ...


class UserDirectory(Protocol):
    def list_users(self) -> Iterable[User]: ...

    def remove_credential(self, user_id: str) -> bool: ...


class ReverseGeocoder(Protocol):
    def lookup(self, latitude: float, longitude: float) -> str | None: ...


class RunStage(str, Enum):
    """Stages of one ingestion run."""
    IDLE = "idle"
    FETCHING = "fetching"
    FILTERING = "filtering"
    NOTIFYING = "notifying"
    ADVANCING = "advancing"


@dataclass
class IngestionResult:
    """Result of one ingestion run for one source.

    Attributes:
        source: Source name
        events_fetched: Events normalized from the feed
        events_new: Events newer than the watermark
        recipients: Recipients resolved across all new events
        notifications_sent: Messages accepted by the push transport
        notifications_failed: Messages rejected or not sent
        credentials_removed: Invalid credentials deleted
        watermark_before: Watermark read at the start of the run
        watermark_after: Watermark after the run
        aborted_at: Stage the run stopped in, if it was aborted
        errors: Any errors that occurred
    """
    source: str
    events_fetched: int = 0
    events_new: int = 0
    recipients: int = 0
    notifications_sent: int = 0
    notifications_failed: int = 0
    credentials_removed: int = 0
    watermark_before: int | None = None
    watermark_after: int | None = None
    aborted_at: RunStage | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Returns True if no errors occurred."""
        return len(self.errors) == 0

    @property
    def summary(self) -> str:
        """Human-readable summary of the run."""
        if self.aborted_at is not None:
            return f"{self.source}: aborted while {self.aborted_at.value}"
        return (
            f"{self.source}: fetched {self.events_fetched} events, "
            f"{self.events_new} new, "
            f"{self.recipients} recipients, "
            f"{self.notifications_sent} sent, "
            f"{self.notifications_failed} failed"
        )


@dataclass
class ProcessingResult:
    """Result of running every enabled source once."""
    runs: list[IngestionResult] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        return [f"{r.source}: {e}" for r in self.runs for e in r.errors]

    @property
    def success(self) -> bool:
        """Returns True if no source reported an error."""
        return all(r.success for r in self.runs)

    @property
    def summary(self) -> str:
        """Human-readable summary across sources."""
        if not self.runs:
            return "No sources processed"
        return "; ".join(r.summary for r in self.runs)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IngestionCoordinator:
    """Runs the fetch/filter/notify/advance cycle for one source.

    Collaborators are injected so tests can substitute fakes.
    """

    def __init__(
        self,
        source: SourceConfig,
        feed_client: FeedFetcher,
        watermark_store: WatermarkStore,
        user_directory: UserDirectory,
        dispatcher: Dispatcher,
        geocoder: ReverseGeocoder | None = None,
        clock: Callable[[], datetime] = utc_now,
        default_timezone: str = "UTC",
    ) -> None:
        """Initialize coordinator.

        Args:
            source: Source configuration
            feed_client: Fetches the raw feed payload
            watermark_store: Per-source cursor persistence
            user_directory: Lists candidate users
            dispatcher: Delivers notifications
            geocoder: Optional place name enrichment
            clock: Returns the current instant for quiet hours
            default_timezone: Zone for profiles without one
        """
        self.source = source
        self.adapter: SourceAdapter = get_adapter(source.name)
        self.feed_client = feed_client
        self.watermark_store = watermark_store
        self.user_directory = user_directory
        self.dispatcher = dispatcher
        self.geocoder = geocoder
        self.clock = clock
        self.default_timezone = default_timezone
        self._stage = RunStage.IDLE

    @property
    def name(self) -> str:
        return self.adapter.name

    @property
    def stage(self) -> RunStage:
        return self._stage

    def _enter(self, stage: RunStage) -> None:
        logger.info("[%s] %s -> %s", self.name, self._stage.value, stage.value)
        self._stage = stage

    def _abort(self, result: IngestionResult, message: str) -> IngestionResult:
        logger.error("[%s] %s", self.name, message)
        result.aborted_at = self._stage
        result.errors.append(message)
        return result

    def run(self) -> IngestionResult:
        """Run one complete ingestion cycle for the source.

        Never raises: every failure is logged and recorded on the result.

        Returns:
            IngestionResult with details of what happened
        """
        result = IngestionResult(source=self.name)
        try:
            return self._run(result)
        except Exception as e:
            logger.exception("[%s] Unexpected error during ingestion", self.name)
            if result.aborted_at is None and self._stage != RunStage.IDLE:
                result.aborted_at = self._stage
            result.errors.append(f"Unexpected error: {e}")
            return result
        finally:
            self._enter(RunStage.IDLE)

    def _run(self, result: IngestionResult) -> IngestionResult:
        # Step 1: Read watermark and fetch
        self._enter(RunStage.FETCHING)
        try:
            last_timestamp = self.watermark_store.get(self.name)
        except StoreError as e:
            return self._abort(result, f"Failed to read watermark: {e}")
        result.watermark_before = last_timestamp
        result.watermark_after = last_timestamp

        try:
            payload = self.feed_client.fetch(self.source)
        except FetchError as e:
            return self._abort(result, f"Failed to fetch feed: {e}")

        # Step 2: Normalize and drop events at or before the watermark
        self._enter(RunStage.FILTERING)
        try:
            events = self.adapter.normalize(payload)
        except FetchError as e:
            return self._abort(result, f"Malformed feed payload: {e}")

        new_events = filter_unprocessed(events, last_timestamp)
        result.events_fetched = len(events)
        result.events_new = len(new_events)

        logger.info(
            "[%s] %d new events (of %d total, watermark %d)",
            self.name,
            len(new_events),
            len(events),
            last_timestamp,
        )

        if not new_events:
            return result

        # Step 3: Notify, in feed order
        self._enter(RunStage.NOTIFYING)
        for event in new_events:
            self._notify(event, result)

        # Step 4: Advance watermark once, past every attempted event
        self._enter(RunStage.ADVANCING)
        new_timestamp = next_watermark(last_timestamp, new_events)
        if should_advance(last_timestamp, new_timestamp):
            try:
                self.watermark_store.set(self.name, new_timestamp)
                result.watermark_after = new_timestamp
            except StoreError as e:
                # Notifications already went out; the next run will repeat them
                message = f"Failed to advance watermark to {new_timestamp}: {e}"
                logger.error("[%s] %s", self.name, message)
                result.errors.append(message)

        return result

    def _enrich(self, event: Event) -> Event:
        """Replace the feed's place name with a geocoded one, if available."""
        if self.geocoder is None:
            return event

        try:
            place = self.geocoder.lookup(event.latitude, event.longitude)
        except Exception as e:
            logger.warning("[%s] Reverse geocoding failed for %s: %s", self.name, event.id, str(e))
            return event

        if not place:
            return event
        return replace(event, place=place)

    def _notify(self, event: Event, result: IngestionResult) -> None:
        """Resolve recipients for one event and dispatch to them.

        Failures are recorded and logged; they never stop the run.
        """
        event = self._enrich(event)
        logger.info("[%s] Processing %s", self.name, format_event_summary(event))

        try:
            recipients = resolve_recipients(
                event,
                self.user_directory.list_users(),
                self.clock(),
                self.default_timezone,
            )
        except StoreError as e:
            message = f"Failed to resolve recipients for {event.id}: {e}"
            logger.error("[%s] %s", self.name, message)
            result.errors.append(message)
            return

        result.recipients += len(recipients)
        logger.info("[%s] %d recipients for %s", self.name, len(recipients), event.id)

        if not recipients:
            return

        dispatch = self.dispatcher.dispatch(event, recipients)
        result.notifications_sent += dispatch.success_count
        result.notifications_failed += dispatch.failure_count
        result.credentials_removed += dispatch.credentials_removed

        logger.info("[%s] Dispatched %s: %s", self.name, event.id, dispatch.summary)


class Orchestrator:
    """Coordinates earthquake notification across all sources.

    This class wires together:
    - Feed client (fetches raw feeds)
    - Firestore watermark store and user directory
    - Push client (FCM) via the Dispatcher
    - Reverse geocoder (optional)
    """

    def __init__(
        self,
        config: Config,
        feed_client: FeedFetcher | None = None,
        watermark_store: WatermarkStore | None = None,
        user_directory: UserDirectory | None = None,
        push_client: Any | None = None,
        geocoder: ReverseGeocoder | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize orchestrator with configuration.

        Args:
            config: Application configuration
            feed_client: Feed client (created if not provided)
            watermark_store: Watermark store (created if not provided)
            user_directory: User directory (created if not provided)
            push_client: Push transport (created if not provided)
            geocoder: Geocoder (created if enabled in config and not provided)
            clock: Returns the current instant
        """
        self.config = config
        firestore_config = FirestoreConfig(
            project_id=config.firebase_project_id,
            database=config.firestore_database,
            users_collection=config.users_collection,
            watermark_collection=config.watermark_collection,
            credential_field=config.credential_field,
        )
        self.feed_client = feed_client or FeedClient()
        self.watermark_store = watermark_store or FirestoreWatermarkStore(firestore_config)
        self.user_directory = user_directory or FirestoreUserDirectory(firestore_config)
        self.push_client = push_client or PushClient(project_id=config.firebase_project_id)
        if geocoder is None and config.geocoder.enabled:
            geocoder = GeocoderClient(config.geocoder)
        self.geocoder = geocoder
        self.clock = clock
        self.dispatcher = Dispatcher(
            self.push_client,
            self.user_directory,
            batch_size=config.push_batch_size,
            cleanup_workers=config.cleanup_workers,
        )

    def coordinator_for(self, source: SourceConfig) -> IngestionCoordinator:
        """Build the coordinator for one source."""
        return IngestionCoordinator(
            source,
            feed_client=self.feed_client,
            watermark_store=self.watermark_store,
            user_directory=self.user_directory,
            dispatcher=self.dispatcher,
            geocoder=self.geocoder,
            clock=self.clock,
            default_timezone=self.config.default_timezone,
        )

    def process(self) -> ProcessingResult:
        """Run one ingestion cycle for every enabled source.

        Sources are independent (separate watermarks) and run
        concurrently, one thread each.

        Returns:
            ProcessingResult with one IngestionResult per source
        """
        sources = self.config.enabled_sources
        if not sources:
            logger.warning("No enabled sources configured")
            return ProcessingResult()

        coordinators = []
        runs: list[IngestionResult] = []
        for source in sources:
            try:
                coordinators.append(self.coordinator_for(source))
            except KeyError:
                message = f"Unknown source '{source.name}'"
                logger.error(message)
                runs.append(IngestionResult(source=source.name, errors=[message]))

        if coordinators:
            with ThreadPoolExecutor(max_workers=len(coordinators)) as pool:
                runs = list(pool.map(lambda c: c.run(), coordinators)) + runs

        result = ProcessingResult(runs=runs)
        logger.info("Completed: %s", result.summary)
        return result
