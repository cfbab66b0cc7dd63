"""Push delivery models and batching - Pure functions.

The push transport itself lives in the shell (FCM client). This module
holds the message/result types, batch splitting and failure
classification so they can be tested without a transport.
"""

from dataclasses import dataclass, field
from typing import Iterator, Sequence, TypeVar

from quake_notify.core.errors import PushErrorKind


# FCM accepts at most 500 messages per batch call
MAX_BATCH_SIZE = 500

# Error codes meaning the registration token will never work again
INVALID_CREDENTIAL_CODES = frozenset({
    "UNREGISTERED",
    "NOT_REGISTERED",
    "INVALID_REGISTRATION",
    "messaging/registration-token-not-registered",
    "messaging/invalid-registration-token",
})

T = TypeVar("T")


@dataclass(frozen=True)
class PushMessage:
    """One notification for one device.

    Attributes:
        token: Device registration token
        title: Notification title
        body: Notification body
        data: String-only data payload
        sound: Notification sound name
        user_id: Owner of the token (for failure reconciliation)
    """
    token: str
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)
    sound: str = "default"
    user_id: str = ""


@dataclass(frozen=True)
class PushResult:
    """Per-recipient result from the push transport.

    Attributes:
        success: Whether the message was accepted
        message_id: Provider message ID if accepted
        error_kind: Failure classification if rejected
        error: Error description if rejected
    """
    success: bool
    message_id: str | None = None
    error_kind: PushErrorKind | None = None
    error: str | None = None


def classify_push_error(code: str | None) -> PushErrorKind:
    """Classify a transport error code.

    Pure function. Only codes that mean the token is permanently dead
    are INVALID_CREDENTIAL; everything else is TRANSIENT.
    """
    if code and (code in INVALID_CREDENTIAL_CODES or code.upper() in INVALID_CREDENTIAL_CODES):
        return PushErrorKind.INVALID_CREDENTIAL
    return PushErrorKind.TRANSIENT


def chunk(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Split a sequence into consecutive batches of at most size items.

    Pure function.

    Raises:
        ValueError: If size is not positive
    """
    if size <= 0:
        raise ValueError(f"Batch size must be positive, got {size}")

    for start in range(0, len(items), size):
        yield list(items[start:start + size])
