"""User notification preferences - Pure data structures.

A user document carries either one legacy set of preferences or a list
of named profiles. Both shapes are normalized at load time into a tuple
of NotificationProfile, so rule evaluation only ever sees profiles.

Documents written by the mobile app use camelCase keys; older documents
use snake_case. Both are accepted.
"""

from dataclasses import dataclass, field
from typing import Any

from quake_notify.core.geo import GeoPoint


DEFAULT_PROFILE_NAME = "Default"

ALL_DAYS = frozenset(range(7))

# Field names that may hold the push credential
CREDENTIAL_FIELDS = ("fcm_token", "fcmToken")

# Field names that may hold the user-level master switch
ENABLED_FIELDS = ("notifications_enabled", "notificationsEnabled")


@dataclass(frozen=True)
class QuietHours:
    """A recurring do-not-disturb window.

    Attributes:
        enabled: Whether the window is active at all
        start: (hour, minute) the window opens
        end: (hour, minute) the window closes; may be before start
        days: Weekdays the window applies to (0=Sunday .. 6=Saturday)
    """
    enabled: bool = False
    start: tuple[int, int] = (22, 0)
    end: tuple[int, int] = (7, 0)
    days: frozenset[int] = ALL_DAYS


@dataclass(frozen=True)
class NotificationProfile:
    """A named set of notification preferences.

    Attributes:
        name: Profile name shown in notifications (e.g. "Home")
        min_magnitude: Events below this magnitude are ignored
        radius_km: Only notify within this distance (0 = worldwide)
        notifications_enabled: Master switch for this profile
        always_notify_radius_enabled: Enable the always-notify radius
        always_notify_radius_km: Always notify within this distance
        global_override_magnitude: Always notify at or above this
            magnitude, ignoring every other rule (0 = disabled)
        emergency_magnitude: Minimum magnitude to break quiet hours
        emergency_radius_km: Maximum distance to break quiet hours
        quiet_hours: Do-not-disturb window
        location: Reference point for every radius rule
        timezone: IANA timezone for reading quiet hours (None = default)
    """
    name: str = DEFAULT_PROFILE_NAME
    min_magnitude: float = 0.0
    radius_km: float = 0.0
    notifications_enabled: bool = True
    always_notify_radius_enabled: bool = False
    always_notify_radius_km: float = 0.0
    global_override_magnitude: float = 0.0
    emergency_magnitude: float = 0.0
    emergency_radius_km: float = 0.0
    quiet_hours: QuietHours = field(default_factory=QuietHours)
    location: GeoPoint | None = None
    timezone: str | None = None


@dataclass(frozen=True)
class LegacyPreferences:
    """Single, unnamed preference set from older app versions."""
    profile: NotificationProfile


@dataclass(frozen=True)
class ProfilePreferences:
    """One or more named profiles."""
    profiles: tuple[NotificationProfile, ...]


Preferences = LegacyPreferences | ProfilePreferences


@dataclass(frozen=True)
class User:
    """A subscriber as seen by the notification engine.

    Attributes:
        id: User document ID
        push_credential: Device registration token (None if unregistered)
        profiles: Normalized profiles, at least one
    """
    id: str
    push_credential: str | None
    profiles: tuple[NotificationProfile, ...]


def normalize_preferences(preferences: Preferences) -> tuple[NotificationProfile, ...]:
    """Flatten either preference shape into a non-empty profile tuple.

    Pure function.
    """
    if isinstance(preferences, LegacyPreferences):
        return (preferences.profile,)
    if not preferences.profiles:
        return (NotificationProfile(),)
    return tuple(preferences.profiles)


def _get(data: dict[str, Any], snake: str, camel: str, default: Any = None) -> Any:
    """Read a field under its snake_case or camelCase name."""
    if snake in data:
        return data[snake]
    return data.get(camel, default)


def _as_float(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def parse_time_of_day(value: Any, default: tuple[int, int]) -> tuple[int, int]:
    """Parse an (hour, minute) from a dict, "HH:MM" string or 2-item list.

    Pure function. Out-of-range or malformed values give the default.
    """
    try:
        if isinstance(value, dict):
            hour, minute = int(value.get("hour", 0)), int(value.get("minute", 0))
        elif isinstance(value, str):
            hour_text, _, minute_text = value.partition(":")
            hour, minute = int(hour_text), int(minute_text or 0)
        elif isinstance(value, (list, tuple)) and len(value) == 2:
            hour, minute = int(value[0]), int(value[1])
        else:
            return default
    except (TypeError, ValueError):
        return default

    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return default
    return (hour, minute)


def _parse_days(values: Any) -> frozenset[int]:
    """Keep the valid weekday numbers (0=Sunday .. 6=Saturday)."""
    if not isinstance(values, (list, tuple, set, frozenset)):
        return frozenset()

    days = set()
    for value in values:
        try:
            day = int(value)
        except (TypeError, ValueError):
            continue
        if 0 <= day <= 6:
            days.add(day)
    return frozenset(days)


def parse_quiet_hours(data: dict[str, Any]) -> QuietHours:
    """Parse quiet hours fields from a profile dict.

    Pure function.
    """
    defaults = QuietHours()

    raw_days = _get(data, "quiet_hours_days", "quietHoursDays")
    days = defaults.days if raw_days is None else _parse_days(raw_days)

    return QuietHours(
        enabled=_as_bool(_get(data, "quiet_hours_enabled", "quietHoursEnabled")),
        start=parse_time_of_day(
            _get(data, "quiet_hours_start", "quietHoursStart"), defaults.start
        ),
        end=parse_time_of_day(
            _get(data, "quiet_hours_end", "quietHoursEnd"), defaults.end
        ),
        days=days,
    )


def parse_location(data: dict[str, Any]) -> GeoPoint | None:
    """Parse the profile reference location, if any.

    Pure function. Accepts a nested 'location' dict or top-level
    latitude/longitude fields.
    """
    location = data.get("location")
    source = location if isinstance(location, dict) else data

    lat = source.get("latitude", source.get("lat"))
    lon = source.get("longitude", source.get("lon", source.get("lng")))
    if lat is None or lon is None:
        return None

    try:
        return GeoPoint(latitude=float(lat), longitude=float(lon))
    except (TypeError, ValueError):
        return None


def parse_profile(data: dict[str, Any], default_name: str = DEFAULT_PROFILE_NAME) -> NotificationProfile:
    """Parse one profile dict.

    Pure function. Missing or malformed values fall back to defaults.
    """
    return NotificationProfile(
        name=str(data.get("name") or default_name),
        min_magnitude=_as_float(_get(data, "min_magnitude", "minMagnitude")),
        radius_km=_as_float(_get(data, "radius", "radiusKm")),
        notifications_enabled=_as_bool(
            _get(data, "notifications_enabled", "notificationsEnabled"), default=True
        ),
        always_notify_radius_enabled=_as_bool(
            _get(data, "always_notify_radius_enabled", "alwaysNotifyRadiusEnabled")
        ),
        always_notify_radius_km=_as_float(
            _get(data, "always_notify_radius_value", "alwaysNotifyRadiusValue")
        ),
        global_override_magnitude=_as_float(
            _get(
                data,
                "global_min_magnitude_override_quiet_hours",
                "globalMinMagnitudeOverrideQuietHours",
            )
        ),
        emergency_magnitude=_as_float(
            _get(data, "emergency_magnitude_threshold", "emergencyMagnitudeThreshold")
        ),
        emergency_radius_km=_as_float(_get(data, "emergency_radius", "emergencyRadius")),
        quiet_hours=parse_quiet_hours(data),
        location=parse_location(data),
        timezone=data.get("timezone") or None,
    )


def parse_preferences(data: dict[str, Any]) -> Preferences:
    """Parse the preferences part of a user document.

    Pure function.

    A non-empty 'profiles' list gives ProfilePreferences. Otherwise a
    'preferences' dict, or the document's own top-level fields, form a
    single legacy profile.
    """
    profiles = data.get("profiles")
    if isinstance(profiles, list):
        parsed = tuple(
            parse_profile(p, default_name=f"Profile {i + 1}")
            for i, p in enumerate(profiles)
            if isinstance(p, dict)
        )
        if parsed:
            return ProfilePreferences(profiles=parsed)

    legacy = data.get("preferences")
    if not isinstance(legacy, dict):
        legacy = data
    return LegacyPreferences(profile=parse_profile(legacy))


def parse_user(
    user_id: str,
    data: dict[str, Any],
    credential_fields: tuple[str, ...] = CREDENTIAL_FIELDS,
) -> User:
    """Build a User from a user document.

    Pure function.

    Args:
        user_id: Document ID
        data: Document contents
        credential_fields: Field names that may hold the push token

    Returns:
        User with normalized profiles
    """
    credential = None
    for name in credential_fields:
        value = data.get(name)
        if isinstance(value, str) and value:
            credential = value
            break

    return User(
        id=user_id,
        push_credential=credential,
        profiles=normalize_preferences(parse_preferences(data)),
    )


def is_user_enabled(
    data: dict[str, Any],
    enabled_fields: tuple[str, ...] = ENABLED_FIELDS,
) -> bool:
    """Read the user-level master switch of a user document.

    Pure function. The first field present decides; a document without
    any of them is enabled and left to its per-profile switches.
    """
    for name in enabled_fields:
        if name in data:
            return _as_bool(data[name], default=True)
    return True
