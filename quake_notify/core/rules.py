"""Notification eligibility rules - Pure functions.

Decides, for one event and one user profile, whether the user should be
notified and which rule made the decision. Rules are evaluated in a
fixed precedence: the global magnitude override wins over everything,
then the always-notify radius, then the standard radius filter, then
quiet hours with their emergency exception.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from quake_notify.core.earthquake import Event
from quake_notify.core.geo import describe_relative_position
from quake_notify.core.preferences import NotificationProfile, QuietHours


class EligibilityRule(str, Enum):
    """The rule that decided an eligibility check."""
    DISABLED = "disabled"
    BELOW_MIN_MAGNITUDE = "below_min_magnitude"
    GLOBAL_OVERRIDE = "global_override"
    ALWAYS_NOTIFY_RADIUS = "always_notify_radius"
    OUTSIDE_RADIUS = "outside_radius"
    STANDARD = "standard"
    EMERGENCY = "emergency"
    QUIET_HOURS = "quiet_hours"


@dataclass(frozen=True)
class Eligibility:
    """Result of evaluating one profile against one event.

    Attributes:
        eligible: Whether the profile wants this event
        rule: The rule that decided
        profile_name: Name of the evaluated profile
        distance_km: Distance from profile location (None without location)
        direction: Compass direction from profile location to the event
    """
    eligible: bool
    rule: EligibilityRule
    profile_name: str
    distance_km: float | None = None
    direction: str | None = None


@dataclass(frozen=True)
class NotificationDecision:
    """Why a user is being notified about an event.

    Attributes:
        user_id: The user to notify
        matched_profile_names: Matching profiles, in declaration order
        reason_summary: Human-readable summary for the message body
        evaluations: Per-profile results, in declaration order
    """
    user_id: str
    matched_profile_names: list[str]
    reason_summary: str
    evaluations: tuple[Eligibility, ...] = field(default_factory=tuple)

    @property
    def matched(self) -> list[Eligibility]:
        """Eligibility results of the matching profiles."""
        return [e for e in self.evaluations if e.eligible]


def _zone(name: str | None) -> ZoneInfo | None:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def to_local_time(
    now: datetime,
    timezone_name: str | None,
    default_timezone: str = "UTC",
) -> datetime:
    """Read the wall clock a profile sees at an instant.

    Pure function. Naive datetimes are already wall-clock time and are
    returned unchanged. Unknown zone names fall back to the default.
    """
    if now.tzinfo is None:
        return now

    zone = _zone(timezone_name) or _zone(default_timezone)
    if zone is None:
        return now.astimezone(timezone.utc)
    return now.astimezone(zone)


def sunday_based_weekday(moment: datetime) -> int:
    """Weekday number with 0=Sunday .. 6=Saturday.

    Pure function.
    """
    return moment.isoweekday() % 7


def is_quiet_time(quiet_hours: QuietHours, local_now: datetime) -> bool:
    """Check whether a wall-clock time falls inside quiet hours.

    Pure function.

    Args:
        quiet_hours: The profile's quiet hours
        local_now: Wall-clock time in the profile's timezone

    Returns:
        True if notifications should be held back
    """
    if not quiet_hours.enabled:
        return False

    if sunday_based_weekday(local_now) not in quiet_hours.days:
        return False

    start = quiet_hours.start[0] * 60 + quiet_hours.start[1]
    end = quiet_hours.end[0] * 60 + quiet_hours.end[1]
    now = local_now.hour * 60 + local_now.minute

    if start < end:
        # Same-day window, e.g. 13:00-15:00
        return start <= now < end

    # Window spans midnight, e.g. 22:00-06:00
    return now >= start or now < end


def evaluate_profile(
    event: Event,
    profile: NotificationProfile,
    now: datetime,
    default_timezone: str = "UTC",
) -> Eligibility:
    """Evaluate if an event should be notified for a profile.

    Pure function.

    Args:
        event: Event to evaluate
        profile: Profile to check against
        now: Evaluation instant (aware) or wall-clock time (naive)
        default_timezone: Zone used when the profile has none

    Returns:
        Eligibility with the deciding rule
    """
    distance, direction = (
        describe_relative_position(profile.location, event)
        if profile.location is not None
        else (None, None)
    )

    def decide(eligible: bool, rule: EligibilityRule) -> Eligibility:
        return Eligibility(
            eligible=eligible,
            rule=rule,
            profile_name=profile.name,
            distance_km=distance,
            direction=direction,
        )

    if not profile.notifications_enabled:
        return decide(False, EligibilityRule.DISABLED)

    # The global override is the only way past the magnitude gate
    if (
        profile.global_override_magnitude > 0
        and event.magnitude >= profile.global_override_magnitude
    ):
        return decide(True, EligibilityRule.GLOBAL_OVERRIDE)

    if event.magnitude < profile.min_magnitude:
        return decide(False, EligibilityRule.BELOW_MIN_MAGNITUDE)

    if (
        profile.always_notify_radius_enabled
        and profile.always_notify_radius_km > 0
        and distance is not None
        and distance <= profile.always_notify_radius_km
    ):
        return decide(True, EligibilityRule.ALWAYS_NOTIFY_RADIUS)

    # radius 0 means worldwide
    if profile.radius_km > 0 and distance is not None and distance > profile.radius_km:
        return decide(False, EligibilityRule.OUTSIDE_RADIUS)

    local_now = to_local_time(now, profile.timezone, default_timezone)
    if not is_quiet_time(profile.quiet_hours, local_now):
        return decide(True, EligibilityRule.STANDARD)

    if (
        event.magnitude >= profile.emergency_magnitude
        and distance is not None
        and distance <= profile.emergency_radius_km
    ):
        return decide(True, EligibilityRule.EMERGENCY)

    return decide(False, EligibilityRule.QUIET_HOURS)


def format_match_summary(profile_names: list[str]) -> str:
    """Describe which profiles matched.

    Pure function.

    Examples:
        ["Home"] -> 'Matches your "Home" filter.'
        ["Home", "Work"] -> 'Matches your filters: Home, Work.'
    """
    if not profile_names:
        return ""
    if len(profile_names) == 1:
        return f'Matches your "{profile_names[0]}" filter.'
    return f"Matches your filters: {', '.join(profile_names)}."


def evaluate_user(
    event: Event,
    user_id: str,
    profiles: tuple[NotificationProfile, ...],
    now: datetime,
    default_timezone: str = "UTC",
) -> NotificationDecision | None:
    """Evaluate every profile of a user against an event.

    Pure function. Profiles are evaluated independently; the user is
    notified if any of them matches.

    Returns:
        NotificationDecision, or None if no profile matched
    """
    evaluations = tuple(
        evaluate_profile(event, profile, now, default_timezone)
        for profile in profiles
    )

    matched_names = [e.profile_name for e in evaluations if e.eligible]
    if not matched_names:
        return None

    return NotificationDecision(
        user_id=user_id,
        matched_profile_names=matched_names,
        reason_summary=format_match_summary(matched_names),
        evaluations=evaluations,
    )
