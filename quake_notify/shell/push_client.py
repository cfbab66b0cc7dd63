"""Push Client - Imperative Shell.

This module delivers push notifications through Firebase Cloud
Messaging. All I/O is contained here; message building and failure
classification are in the core module.
"""

import logging

import firebase_admin
from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging

from quake_notify.core.delivery import MAX_BATCH_SIZE, PushMessage, PushResult, classify_push_error
from quake_notify.core.errors import PushErrorKind


logger = logging.getLogger(__name__)


def error_code(exc: Exception | None) -> str | None:
    """Extract a classification code from a Firebase exception."""
    if exc is None:
        return None
    if isinstance(exc, messaging.UnregisteredError):
        return "UNREGISTERED"
    return getattr(exc, "code", None)


class PushClient:
    """Client for sending batches of push notifications via FCM.

    This is part of the imperative shell - it handles network I/O.
    """

    def __init__(
        self,
        project_id: str | None = None,
        app: firebase_admin.App | None = None,
    ) -> None:
        """Initialize push client.

        Args:
            project_id: Firebase project ID (None for default credentials)
            app: Existing Firebase app to use
        """
        self.project_id = project_id
        self._app = app

    @property
    def app(self) -> firebase_admin.App:
        """Lazy initialization of the Firebase app."""
        if self._app is None:
            try:
                self._app = firebase_admin.get_app()
            except ValueError:
                options = {"projectId": self.project_id} if self.project_id else None
                self._app = firebase_admin.initialize_app(options=options)
        return self._app

    def _to_fcm(self, message: PushMessage) -> messaging.Message:
        """Convert a core PushMessage into an FCM message."""
        return messaging.Message(
            token=message.token,
            notification=messaging.Notification(
                title=message.title,
                body=message.body,
            ),
            data=message.data,
            android=messaging.AndroidConfig(
                priority="high",
                notification=messaging.AndroidNotification(sound=message.sound),
            ),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(aps=messaging.Aps(sound=message.sound)),
            ),
        )

    def send_batch(self, messages: list[PushMessage]) -> list[PushResult]:
        """Send up to MAX_BATCH_SIZE messages in one call.

        This method performs network I/O.

        Args:
            messages: Messages to send

        Returns:
            One PushResult per message, in the same order
        """
        if not messages:
            return []
        if len(messages) > MAX_BATCH_SIZE:
            raise ValueError(
                f"Batch of {len(messages)} exceeds FCM limit of {MAX_BATCH_SIZE}"
            )

        logger.info("Sending %d push messages", len(messages))

        try:
            batch = messaging.send_each(
                [self._to_fcm(m) for m in messages],
                app=self.app,
            )
        except (firebase_exceptions.FirebaseError, ValueError) as e:
            logger.error("Push batch failed: %s", str(e))
            return [
                PushResult(
                    success=False,
                    error_kind=PushErrorKind.TRANSIENT,
                    error=str(e),
                )
                for _ in messages
            ]

        results = []
        for response in batch.responses:
            if response.success:
                results.append(PushResult(success=True, message_id=response.message_id))
                continue

            code = error_code(response.exception)
            results.append(PushResult(
                success=False,
                error_kind=classify_push_error(code),
                error=f"{code}: {response.exception}" if code else str(response.exception),
            ))

        logger.info(
            "Push batch done: %d succeeded, %d failed",
            batch.success_count,
            batch.failure_count,
        )

        return results
