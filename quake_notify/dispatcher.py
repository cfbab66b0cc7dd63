"""Dispatcher - Batched push delivery with failure reconciliation.

Builds one message per recipient, sends them in provider-sized batches
and removes credentials the provider reports as permanently invalid.
Delivery is best-effort: failed sends are logged, never retried within
a run.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Protocol

from quake_notify.core.delivery import MAX_BATCH_SIZE, PushMessage, PushResult, chunk
from quake_notify.core.earthquake import Event
from quake_notify.core.errors import PushErrorKind
from quake_notify.core.formatter import build_base_payload, build_push_message
from quake_notify.core.recipients import Recipient


logger = logging.getLogger(__name__)


class PushTransport(Protocol):
    """Sends a batch of messages, one result per message."""

    def send_batch(self, messages: list[PushMessage]) -> list[PushResult]: ...


class CredentialStore(Protocol):
    """Removes a user's stored push credential."""

    def remove_credential(self, user_id: str) -> bool: ...


@dataclass
class BatchResult:
    """Outcome of one push batch.

    Attributes:
        batch_number: 1-based position of the batch in the dispatch
        success_count: Messages accepted by the transport
        failure_count: Messages rejected or not sent
        invalid_credentials: Users whose token was reported invalid
        credentials_removed: Successful credential removals
        cleanup_failures: Credential removals that failed
    """
    batch_number: int
    success_count: int = 0
    failure_count: int = 0
    invalid_credentials: list[str] = field(default_factory=list)
    credentials_removed: int = 0
    cleanup_failures: int = 0


@dataclass
class DispatchResult:
    """Outcome of dispatching one event to all its recipients."""
    event: Event
    batches: list[BatchResult] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(b.success_count for b in self.batches)

    @property
    def failure_count(self) -> int:
        return sum(b.failure_count for b in self.batches)

    @property
    def credentials_removed(self) -> int:
        return sum(b.credentials_removed for b in self.batches)

    @property
    def cleanup_failures(self) -> int:
        return sum(b.cleanup_failures for b in self.batches)

    @property
    def summary(self) -> str:
        """Human-readable summary of the dispatch."""
        return (
            f"{len(self.batches)} batches, "
            f"{self.success_count} sent, "
            f"{self.failure_count} failed, "
            f"{self.credentials_removed} credentials removed"
        )


class Dispatcher:
    """Delivers notifications for an event to its recipients."""

    def __init__(
        self,
        push_client: PushTransport,
        user_directory: CredentialStore,
        batch_size: int = MAX_BATCH_SIZE,
        cleanup_workers: int = 8,
    ) -> None:
        """Initialize dispatcher.

        Args:
            push_client: Push transport
            user_directory: Store that owns push credentials
            batch_size: Maximum messages per transport call
            cleanup_workers: Parallel credential removals per batch
        """
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(
                f"batch_size must be between 1 and {MAX_BATCH_SIZE}, got {batch_size}"
            )
        self.push_client = push_client
        self.user_directory = user_directory
        self.batch_size = batch_size
        self.cleanup_workers = max(1, cleanup_workers)

    def dispatch(self, event: Event, recipients: list[Recipient]) -> DispatchResult:
        """Send one message per recipient, batch by batch.

        Batches are sent in order. Credential cleanups triggered by a
        batch are finished before the next batch is sent.

        Args:
            event: The event being notified
            recipients: Resolved recipients

        Returns:
            DispatchResult with per-batch counts
        """
        result = DispatchResult(event=event)
        if not recipients:
            return result

        base_payload = build_base_payload(event)
        messages = [build_push_message(event, r, base_payload) for r in recipients]

        for number, batch in enumerate(chunk(messages, self.batch_size), start=1):
            batch_result = self._send_batch(number, batch)
            result.batches.append(batch_result)

            logger.info(
                "Batch %d for %s/%s: %d sent, %d failed",
                number,
                event.source,
                event.id,
                batch_result.success_count,
                batch_result.failure_count,
            )

        return result

    def _send_batch(self, number: int, messages: list[PushMessage]) -> BatchResult:
        """Send one batch and reconcile its failures."""
        batch_result = BatchResult(batch_number=number)

        try:
            responses = self.push_client.send_batch(messages)
        except Exception as e:
            logger.error("Push batch %d failed entirely: %s", number, str(e))
            responses = []

        invalid: list[str] = []
        for index, message in enumerate(messages):
            response = responses[index] if index < len(responses) else None

            if response is not None and response.success:
                batch_result.success_count += 1
                continue

            batch_result.failure_count += 1

            if response is not None and response.error_kind == PushErrorKind.INVALID_CREDENTIAL:
                if message.user_id not in invalid:
                    invalid.append(message.user_id)
                logger.info(
                    "Push credential for user %s is no longer valid: %s",
                    message.user_id,
                    response.error,
                )
            else:
                logger.warning(
                    "Push to user %s failed (not retried): %s",
                    message.user_id,
                    response.error if response is not None else "no response",
                )

        batch_result.invalid_credentials = invalid
        if invalid:
            removed, failed = self._remove_credentials(invalid)
            batch_result.credentials_removed = removed
            batch_result.cleanup_failures = failed

        return batch_result

    def _remove_credentials(self, user_ids: list[str]) -> tuple[int, int]:
        """Remove credentials in parallel and wait for all of them.

        Returns:
            Tuple of (removed, failed) counts
        """
        removed = 0
        failed = 0

        workers = min(self.cleanup_workers, len(user_ids))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                pool.submit(self.user_directory.remove_credential, user_id): user_id
                for user_id in user_ids
            }
            for future in as_completed(futures):
                user_id = futures[future]
                try:
                    ok = future.result()
                except Exception as e:
                    logger.error("Failed to remove credential for user %s: %s", user_id, str(e))
                    failed += 1
                    continue

                if ok is False:
                    logger.error("Failed to remove credential for user %s", user_id)
                    failed += 1
                else:
                    removed += 1

        return removed, failed
