"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- Event model and per-source normalization
- Geo/distance/bearing calculations
- Preference parsing and eligibility rules
- Recipient resolution
- Push message formatting and batching
- Watermark deduplication logic

All functions here are deterministic and have no I/O.
"""

from quake_notify.core.earthquake import Event
from quake_notify.core.geo import GeoPoint, bearing_degrees, compass_direction, distance_km
from quake_notify.core.preferences import NotificationProfile, QuietHours, User, parse_user
from quake_notify.core.rules import (
    Eligibility,
    EligibilityRule,
    NotificationDecision,
    evaluate_profile,
    evaluate_user,
    is_quiet_time,
)
from quake_notify.core.recipients import Recipient, resolve_recipients
from quake_notify.core.formatter import build_push_message
from quake_notify.core.watermark import filter_unprocessed, next_watermark

__all__ = [
    # Event
    "Event",
    # Geo
    "GeoPoint",
    "bearing_degrees",
    "compass_direction",
    "distance_km",
    # Preferences
    "NotificationProfile",
    "QuietHours",
    "User",
    "parse_user",
    # Rules
    "Eligibility",
    "EligibilityRule",
    "NotificationDecision",
    "evaluate_profile",
    "evaluate_user",
    "is_quiet_time",
    # Recipients
    "Recipient",
    "resolve_recipients",
    # Formatter
    "build_push_message",
    # Watermark
    "filter_unprocessed",
    "next_watermark",
]
