"""
Tests for user and review models.
"""

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from community.models import (
    ProfileUpdate, ReviewData, SignupUser, SuspendRequest, is_suspended, suspension_elapsed
)

NOW = datetime(2024, 5, 1, 12, 0, 0)


class TestSignupUser:
    def test_missing_fields(self):
        user = SignupUser(username="dana", password="pw", email="", first_name="Dana")

        assert user.missing_fields() == ["email", "family_name"]

    def test_privilege_flags_default_off(self):
        user = SignupUser()

        assert user.give_admin_priviledges is False
        assert user.give_mod_priviledges is False


class TestProfileUpdate:
    def test_blank_username_rejected(self):
        with pytest.raises(ValidationError):
            ProfileUpdate(username="  ")

    def test_role_fields_are_ignored(self):
        update = ProfileUpdate(bio="Hi", user_type="admin", follower_count=100)

        assert update.dict(exclude_none=True) == {"bio": "Hi"}


def test_review_tags_are_normalized():
    review = ReviewData(content="Good", tags=[" sci-fi ", "", "  ", "classic"])

    assert review.tags == ["sci-fi", "classic"]


def test_suspend_request_bounds():
    with pytest.raises(ValidationError):
        SuspendRequest(days=0)
    assert SuspendRequest().days is None


class TestSuspensionState:
    def test_flagged_user_is_suspended(self):
        assert is_suspended({"suspended": True, "suspension_timeline": None}, NOW)

    def test_future_timeline_is_suspended(self):
        doc = {"suspended": False, "suspension_timeline": NOW + timedelta(days=1)}

        assert is_suspended(doc, NOW)

    def test_plain_user_is_not_suspended(self):
        assert not is_suspended({"suspended": False, "suspension_timeline": None}, NOW)

    def test_elapsed_window(self):
        doc = {"suspended": True, "suspension_timeline": NOW - timedelta(minutes=1)}

        assert suspension_elapsed(doc, NOW)

    def test_window_ending_now_has_elapsed(self):
        assert suspension_elapsed({"suspended": True, "suspension_timeline": NOW}, NOW)

    def test_running_window_has_not_elapsed(self):
        doc = {"suspended": True, "suspension_timeline": NOW + timedelta(days=2)}

        assert not suspension_elapsed(doc, NOW)
