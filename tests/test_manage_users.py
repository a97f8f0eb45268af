"""
Tests for the user management script.
"""

from unittest.mock import AsyncMock, patch

import pytest

import manage_users
from community.models import UserType


@pytest.fixture
def user_service(alice):
    service = AsyncMock()
    service.find_by_username.return_value = alice
    return service


@pytest.mark.asyncio
async def test_promote(user_service, alice, capsys):
    user_service.set_user_type.return_value = {**alice, "user_type": "admin"}

    assert await manage_users.promote(user_service, "alice", "ADMIN") is True

    user_service.set_user_type.assert_awaited_once_with("alice", UserType.ADMIN)
    assert "alice is now admin" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_promote_unknown_role(user_service):
    assert await manage_users.promote(user_service, "alice", "owner") is False
    user_service.set_user_type.assert_not_called()


@pytest.mark.asyncio
async def test_suspend_unknown_user(user_service):
    user_service.find_by_username.return_value = None

    assert await manage_users.suspend(user_service, "ghost") is False
    user_service.apply_suspension.assert_not_called()


@pytest.mark.asyncio
async def test_unsuspend(user_service, alice):
    assert await manage_users.unsuspend(user_service, "alice") is True
    user_service.lift_suspension.assert_awaited_once_with(alice["_id"])


@pytest.mark.asyncio
async def test_run_rejects_bad_arguments(capsys):
    manager = AsyncMock()
    with patch("manage_users.MongoDBManager", return_value=manager):
        assert await manage_users.run(["promote", "alice"]) is False

    assert "Usage:" in capsys.readouterr().out
    manager.disconnect.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.parametrize("days", ["0", "-2", "soon"])
async def test_suspend_rejects_bad_days(days, capsys):
    manager = AsyncMock()
    with patch("manage_users.MongoDBManager", return_value=manager):
        assert await manage_users.run(["suspend", "bob", days]) is False

    assert "Error: days must be" in capsys.readouterr().out
    manager.connect.assert_not_called()


def test_parse_days():
    assert manage_users.parse_days("3") == 3
    assert manage_users.parse_days("0") is None
