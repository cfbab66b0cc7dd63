"""Unit tests for recipient resolution.

Pure function tests - no mocks needed.
"""

from datetime import datetime

import pytest

from quake_notify.core.earthquake import Event
from quake_notify.core.preferences import NotificationProfile, User
from quake_notify.core.recipients import resolve_recipients


NOW = datetime(2024, 1, 3, 12, 0)


@pytest.fixture
def event():
    return Event(
        id="ev1",
        magnitude=5.0,
        place="Off the coast",
        time=1_704_283_200_000,
        latitude=35.0,
        longitude=139.0,
        depth_km=10.0,
        source="USGS",
    )


def make_user(user_id, token="tok", *profiles):
    return User(
        id=user_id,
        push_credential=token,
        profiles=profiles or (NotificationProfile(),),
    )


class TestResolveRecipients:
    """Tests for resolve_recipients()."""

    def test_collects_matching_users(self, event):
        users = [
            make_user("u1", "t1"),
            make_user("u2", "t2", NotificationProfile(min_magnitude=6.0)),
            make_user("u3", "t3"),
        ]

        recipients = resolve_recipients(event, users, NOW)

        assert [r.user_id for r in recipients] == ["u1", "u3"]
        assert [r.push_credential for r in recipients] == ["t1", "t3"]

    def test_skips_users_without_credential(self, event):
        users = [make_user("u1", None), make_user("u2", "")]
        assert resolve_recipients(event, users, NOW) == []

    def test_no_duplicate_user_ids(self, event):
        users = [make_user("u1", "t1"), make_user("u1", "t1-again")]

        recipients = resolve_recipients(event, users, NOW)

        assert len(recipients) == 1
        assert recipients[0].push_credential == "t1"

    def test_multi_profile_union(self, event):
        """[Home(matches), Work(does not)] -> one entry naming only Home."""
        user = make_user(
            "u1",
            "t1",
            NotificationProfile(name="Home", min_magnitude=4.0),
            NotificationProfile(name="Work", min_magnitude=6.0),
        )

        recipients = resolve_recipients(event, [user], NOW)

        assert len(recipients) == 1
        assert recipients[0].matched_profile_names == ["Home"]

    def test_accepts_generator(self, event):
        users = (make_user(f"u{i}", f"t{i}") for i in range(3))
        assert len(resolve_recipients(event, users, NOW)) == 3
