"""Tests for the signed-in session and profile handling."""

from unittest.mock import MagicMock

import pytest

from daysense.adapters.base import FetchError, WriteError
from daysense.adapters.firestore import FirestoreAdapter
from daysense.adapters.identity import AuthUser, IdentityAdapter
from daysense.models import UserProfile
from daysense.session import Session, placeholder_profile

USER = AuthUser(uid="u1", email="ada@example.com", id_token="tok")


@pytest.fixture
def identity():
    mock = MagicMock(spec=IdentityAdapter)
    mock.current_user = None

    async def sign_in(email, password):
        mock.current_user = USER
        return USER

    mock.sign_in.side_effect = sign_in
    mock.sign_up.return_value = USER
    return mock


@pytest.fixture
def store():
    mock = MagicMock(spec=FirestoreAdapter)
    mock.get_profile.return_value = UserProfile(id="u1", full_name="Ada", energy_level=4)
    return mock


@pytest.fixture
def session(identity, store):
    return Session(identity, store)


class TestSignIn:
    """Test sign-in and profile loading."""

    async def test_sign_in_loads_profile(self, session, store):
        profile = await session.sign_in("ada@example.com", "secret")

        assert profile.full_name == "Ada"
        assert session.is_authenticated
        store.set_id_token.assert_called_once_with("tok")
        store.get_profile.assert_awaited_once_with("u1")

    async def test_store_failure_gives_placeholder(self, session, store):
        store.get_profile.side_effect = FetchError("firestore", "offline")

        profile = await session.sign_in("ada@example.com", "secret")

        assert profile.id == "u1"
        assert profile.full_name == "User"
        assert profile.email == "ada@example.com"
        assert profile.onboarding_completed is False
        assert profile.energy_level == 3

    async def test_store_failure_keeps_loaded_profile(self, session, store):
        await session.sign_in("ada@example.com", "secret")
        store.get_profile.side_effect = FetchError("firestore", "offline")

        profile = await session.load_profile()
        assert profile.full_name == "Ada"

    async def test_no_user_no_profile(self, session):
        assert await session.load_profile() is None
        assert not session.is_authenticated

    async def test_sign_out(self, session, store, identity):
        await session.sign_in("ada@example.com", "secret")
        await session.sign_out()

        assert session.profile is None
        identity.sign_out.assert_awaited_once()
        store.set_id_token.assert_called_with(None)


class TestSignUp:
    """Test account creation."""

    async def test_creates_profile_with_defaults(self, session, store):
        store.create_profile.return_value = UserProfile(id="u1", full_name="Ada")

        await session.sign_up("ada@example.com", "secret", "Ada")

        user_id, data = store.create_profile.await_args.args
        assert user_id == "u1"
        assert data["full_name"] == "Ada"
        assert data["energy_level"] == 3
        assert data["onboarding_completed"] is False
        assert data["streak_days"] == 0


class TestProfileUpdates:
    """Test optimistic profile updates."""

    async def test_complete_onboarding(self, session, store):
        await session.sign_in("ada@example.com", "secret")

        profile = await session.complete_onboarding(5, north_star="Ship v1")

        assert profile.onboarding_completed is True
        assert profile.north_star == "Ship v1"
        assert session.is_onboarding_completed
        store.update_profile.assert_awaited_once_with(
            "u1", {"energy_level": 5, "onboarding_completed": True, "north_star": "Ship v1"}
        )

    async def test_failed_update_rolls_back(self, session, store):
        await session.sign_in("ada@example.com", "secret")
        before = session.profile
        store.update_profile.side_effect = WriteError("firestore", "denied")

        with pytest.raises(WriteError):
            await session.update_profile(energy_level=1)

        assert session.profile == before

    async def test_update_without_profile(self, session):
        assert await session.update_profile(energy_level=2) is None


def test_placeholder_profile():
    profile = placeholder_profile("u9")
    assert profile.id == "u9"
    assert profile.email == ""
    assert profile.streak_days == 0
    assert profile.created_at is not None
