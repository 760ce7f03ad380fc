"""Signed-in user session and profile."""

from typing import Any

import structlog

from daysense.adapters.base import AdapterError
from daysense.adapters.firestore import FirestoreAdapter
from daysense.adapters.identity import AuthUser, IdentityAdapter
from daysense.models import UserProfile, utcnow

logger = structlog.get_logger()

NEW_PROFILE_DEFAULTS: dict[str, Any] = {
    "energy_level": 3,
    "streak_days": 0,
    "onboarding_completed": False,
    "notifications_enabled": True,
    "daily_checkins_enabled": True,
    "task_reminders_enabled": True,
    "focus_sessions_enabled": False,
}


def placeholder_profile(uid: str, email: str | None = None) -> UserProfile:
    """Profile used while the document store is unreachable."""
    return UserProfile(
        id=uid,
        email=email or "",
        full_name="User",
        avatar_url="",
        onboarding_completed=False,
        created_at=utcnow(),
        energy_level=3,
        north_star="",
        streak_days=0,
    )


class Session:
    """Ties the identity service to the user's profile document.

    The document store is handed the user's ID token on every sign-in so
    its requests are made on the user's behalf.
    """

    def __init__(self, identity: IdentityAdapter, store: FirestoreAdapter) -> None:
        self.identity = identity
        self.store = store
        self.profile: UserProfile | None = None

    @property
    def user(self) -> AuthUser | None:
        return self.identity.current_user

    @property
    def is_authenticated(self) -> bool:
        return self.profile is not None

    @property
    def is_onboarding_completed(self) -> bool:
        return bool(self.profile and self.profile.onboarding_completed)

    async def sign_up(self, email: str, password: str, full_name: str) -> UserProfile:
        user = await self.identity.sign_up(email, password, full_name)
        self.store.set_id_token(user.id_token)
        self.profile = await self.store.create_profile(
            user.uid,
            {"email": user.email, "full_name": full_name, **NEW_PROFILE_DEFAULTS},
        )
        return self.profile

    async def sign_in(self, email: str, password: str) -> UserProfile | None:
        user = await self.identity.sign_in(email, password)
        self.store.set_id_token(user.id_token)
        return await self.load_profile()

    async def sign_out(self) -> None:
        await self.identity.sign_out()
        self.store.set_id_token(None)
        self.profile = None

    async def load_profile(self) -> UserProfile | None:
        """Fetch the signed-in user's profile.

        A store failure keeps the current profile, or synthesizes a
        placeholder when there is none yet.
        """
        user = self.user
        if user is None:
            self.profile = None
            return None

        try:
            self.profile = await self.store.get_profile(user.uid)
        except AdapterError as e:
            logger.warning("Profile store unreachable, using placeholder", error=str(e))
            if self.profile is None or self.profile.id != user.uid:
                self.profile = placeholder_profile(user.uid, user.email)
        return self.profile

    async def update_profile(self, **changes: Any) -> UserProfile | None:
        """Apply profile changes locally, rolling back if the write fails."""
        if self.profile is None:
            return None

        previous = self.profile
        self.profile = previous.model_copy(update=changes)
        try:
            await self.store.update_profile(previous.id, changes)
        except AdapterError:
            logger.error("Profile update failed, rolling back", user_id=previous.id)
            self.profile = previous
            raise
        return self.profile

    async def complete_onboarding(
        self,
        energy_level: int,
        north_star: str | None = None,
        chronotype: str | None = None,
    ) -> UserProfile | None:
        changes: dict[str, Any] = {"energy_level": energy_level, "onboarding_completed": True}
        if north_star is not None:
            changes["north_star"] = north_star
        if chronotype is not None:
            changes["chronotype"] = chronotype
        return await self.update_profile(**changes)
