"""Recipient resolution - Pure functions.

Turns an event and the user directory listing into the list of devices
to notify.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from quake_notify.core.earthquake import Event
from quake_notify.core.preferences import User
from quake_notify.core.rules import NotificationDecision, evaluate_user


@dataclass(frozen=True)
class Recipient:
    """A device that should receive a notification.

    Attributes:
        user_id: Owner of the device
        push_credential: Registration token to deliver to
        decision: Why the user is being notified
    """
    user_id: str
    push_credential: str
    decision: NotificationDecision

    @property
    def matched_profile_names(self) -> list[str]:
        return self.decision.matched_profile_names


def resolve_recipients(
    event: Event,
    users: Iterable[User],
    now: datetime,
    default_timezone: str = "UTC",
) -> list[Recipient]:
    """Determine which users should be notified about an event.

    Pure function (consumes the iterable once).

    Args:
        event: The event to notify about
        users: Candidate users from the directory
        now: Evaluation instant
        default_timezone: Zone for profiles without one

    Returns:
        Recipients in directory order, at most one per user ID
    """
    recipients = []
    seen: set[str] = set()

    for user in users:
        if user.id in seen:
            continue
        # No credential, nothing to deliver to
        if not user.push_credential:
            continue

        decision = evaluate_user(
            event,
            user.id,
            user.profiles,
            now,
            default_timezone,
        )
        if decision is None:
            continue

        seen.add(user.id)
        recipients.append(Recipient(
            user_id=user.id,
            push_credential=user.push_credential,
            decision=decision,
        ))

    return recipients
