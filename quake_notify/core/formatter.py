"""Message formatting - Pure functions.

This module formats events into push notification messages.
All functions are pure with no side effects.
"""

import json

from quake_notify.core.delivery import PushMessage
from quake_notify.core.earthquake import Event
from quake_notify.core.recipients import Recipient


DEFAULT_SOUND = "default"


def get_severity_label(magnitude: float) -> str:
    """Get a human-readable severity label.

    Pure function.
    """
    if magnitude >= 8.0:
        return "Great"
    elif magnitude >= 7.0:
        return "Major"
    elif magnitude >= 6.0:
        return "Strong"
    elif magnitude >= 5.0:
        return "Moderate"
    elif magnitude >= 4.0:
        return "Light"
    elif magnitude >= 3.0:
        return "Minor"
    else:
        return "Micro"


def format_map_url(event: Event) -> str:
    """Google Maps link for the epicenter.

    Pure function.
    """
    return f"https://www.google.com/maps?q={event.latitude},{event.longitude}"


def format_title(event: Event) -> str:
    """Format the notification title, shared by all recipients.

    Pure function.
    """
    return f"M{event.magnitude:.1f} {get_severity_label(event.magnitude)} Earthquake"


def format_event_summary(event: Event) -> str:
    """Format a one-line summary of an event for logs.

    Pure function.
    """
    time_str = event.occurred_at.strftime("%Y-%m-%d %H:%M:%S UTC")
    return (
        f"[{event.source}] M{event.magnitude:.1f} - {event.place} "
        f"at {time_str} (depth: {event.depth_km:.1f}km)"
    )


def format_relative_position(recipient: Recipient) -> str | None:
    """Describe the event position from the first matched profile with a location.

    Pure function.

    Returns:
        e.g. "23 km SW of Home", or None if no matched profile has a location
    """
    for evaluation in recipient.decision.matched:
        if evaluation.distance_km is None:
            continue
        return (
            f"{evaluation.distance_km:.0f} km {evaluation.direction} "
            f"of {evaluation.profile_name}"
        )
    return None


def format_body(event: Event, recipient: Recipient) -> str:
    """Format the recipient-specific notification body.

    Pure function.
    """
    parts = [event.place]

    position = format_relative_position(recipient)
    if position:
        parts.append(position)

    body = ". ".join(parts) + "."
    summary = recipient.decision.reason_summary
    return f"{body} {summary}" if summary else body


def build_base_payload(event: Event, sound: str = DEFAULT_SOUND) -> dict[str, str]:
    """Build the data payload shared by every recipient of an event.

    Pure function. Values are strings, as push data payloads require.
    """
    return {
        "title": format_title(event),
        "mapUrl": format_map_url(event),
        "sound": sound,
        "event": json.dumps(event.to_dict(), sort_keys=True),
    }


def build_push_message(
    event: Event,
    recipient: Recipient,
    base_payload: dict[str, str] | None = None,
) -> PushMessage:
    """Build the push message for one recipient.

    Pure function.

    Args:
        event: The event being notified
        recipient: Who receives it and why
        base_payload: Precomputed shared payload (built if not given)

    Returns:
        PushMessage addressed to the recipient's device
    """
    payload = base_payload if base_payload is not None else build_base_payload(event)

    return PushMessage(
        token=recipient.push_credential,
        title=payload["title"],
        body=format_body(event, recipient),
        data=dict(payload),
        sound=payload.get("sound", DEFAULT_SOUND),
        user_id=recipient.user_id,
    )
