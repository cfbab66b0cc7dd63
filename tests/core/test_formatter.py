"""Unit tests for push message formatting.

Pure function tests - no mocks needed.
"""

import json

import pytest

from quake_notify.core.earthquake import Event
from quake_notify.core.formatter import (
    build_base_payload,
    build_push_message,
    format_body,
    format_event_summary,
    format_map_url,
    format_title,
    get_severity_label,
)
from quake_notify.core.recipients import Recipient
from quake_notify.core.rules import Eligibility, EligibilityRule, NotificationDecision


@pytest.fixture
def event():
    return Event(
        id="us7000abcd",
        magnitude=5.6,
        place="20 km S of Tokyo, Japan",
        time=1703001600000,
        latitude=35.5,
        longitude=139.7,
        depth_km=35.0,
        source="USGS",
    )


def make_recipient(names, evaluations=()):
    summary = (
        f'Matches your "{names[0]}" filter.'
        if len(names) == 1
        else f"Matches your filters: {', '.join(names)}."
    )
    return Recipient(
        user_id="u1",
        push_credential="token-1",
        decision=NotificationDecision(
            user_id="u1",
            matched_profile_names=list(names),
            reason_summary=summary,
            evaluations=tuple(evaluations),
        ),
    )


class TestSeverityLabel:
    """Tests for get_severity_label()."""

    @pytest.mark.parametrize("magnitude,label", [
        (8.1, "Great"),
        (7.0, "Major"),
        (6.2, "Strong"),
        (5.0, "Moderate"),
        (4.5, "Light"),
        (3.0, "Minor"),
        (1.2, "Micro"),
    ])
    def test_labels(self, magnitude, label):
        assert get_severity_label(magnitude) == label


class TestFormatting:
    """Tests for title, map URL and summary formatting."""

    def test_title(self, event):
        assert format_title(event) == "M5.6 Moderate Earthquake"

    def test_map_url(self, event):
        assert format_map_url(event) == "https://www.google.com/maps?q=35.5,139.7"

    def test_event_summary(self, event):
        summary = format_event_summary(event)
        assert "[USGS]" in summary
        assert "M5.6" in summary
        assert "2023-12-19 16:00:00 UTC" in summary


class TestFormatBody:
    """Tests for format_body()."""

    def test_single_profile_without_location(self, event):
        body = format_body(event, make_recipient(["Home"]))
        assert body == '20 km S of Tokyo, Japan. Matches your "Home" filter.'

    def test_mentions_only_matched_profiles(self, event):
        evaluations = [
            Eligibility(True, EligibilityRule.STANDARD, "Home", distance_km=23.4, direction="SW"),
            Eligibility(False, EligibilityRule.OUTSIDE_RADIUS, "Work", distance_km=900.0, direction="N"),
        ]

        body = format_body(event, make_recipient(["Home"], evaluations))

        assert body == '20 km S of Tokyo, Japan. 23 km SW of Home. Matches your "Home" filter.'
        assert "Work" not in body

    def test_two_profiles(self, event):
        body = format_body(event, make_recipient(["Home", "Work"]))
        assert body.endswith("Matches your filters: Home, Work.")


class TestBuildPushMessage:
    """Tests for build_base_payload() and build_push_message()."""

    def test_base_payload(self, event):
        payload = build_base_payload(event)

        assert payload["title"] == "M5.6 Moderate Earthquake"
        assert payload["mapUrl"] == format_map_url(event)
        assert payload["sound"] == "default"
        assert json.loads(payload["event"])["id"] == "us7000abcd"
        assert all(isinstance(v, str) for v in payload.values())

    def test_message_addressed_to_recipient(self, event):
        message = build_push_message(event, make_recipient(["Home"]))

        assert message.token == "token-1"
        assert message.user_id == "u1"
        assert message.title == "M5.6 Moderate Earthquake"
        assert "Home" in message.body
        assert message.data["mapUrl"] == format_map_url(event)
        assert message.sound == "default"

    def test_shared_payload_not_mutated(self, event):
        payload = build_base_payload(event)
        first = build_push_message(event, make_recipient(["Home"]), payload)
        second = build_push_message(event, make_recipient(["Work"]), payload)

        assert first.data == second.data
        assert first.data is not payload
        assert first.body != second.body
