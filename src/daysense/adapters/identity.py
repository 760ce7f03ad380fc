"""Firebase Authentication adapter (Identity Toolkit REST API)."""

from collections.abc import Callable
from typing import Any

import httpx
from pydantic import BaseModel

from daysense.adapters.base import AuthenticationError, HTTPAdapter
from daysense.config.settings import settings

AuthListener = Callable[["AuthUser | None"], None]


class AuthUser(BaseModel):
    """The signed-in account as reported by the identity service."""

    uid: str
    email: str | None = None
    display_name: str | None = None
    id_token: str
    refresh_token: str | None = None


class IdentityAdapter(HTTPAdapter):
    """Email/password accounts.

    Listeners registered with ``on_auth_state_changed`` are called with
    the current user (or None) immediately and after every sign-in,
    sign-up and sign-out.
    """

    def __init__(
        self,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            "identity",
            settings.firebase.auth_url,
            timeout=settings.firebase.timeout_seconds,
            transport=transport,
        )
        self.api_key = (
            api_key if api_key is not None else settings.firebase.api_key.get_secret_value()
        )
        self._user: AuthUser | None = None
        self._listeners: list[AuthListener] = []

    @property
    def current_user(self) -> AuthUser | None:
        return self._user

    async def connect(self) -> bool:
        if not self.api_key:
            self.logger.warning("Firebase API key not set")
            return False
        self._open_client()
        self._connected = True
        return True

    async def _call(self, endpoint: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/accounts:{endpoint}",
            error_cls=AuthenticationError,
            params={"key": self.api_key},
            json=body,
        )

    async def sign_up(
        self, email: str, password: str, full_name: str | None = None
    ) -> AuthUser:
        data = await self._call(
            "signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        if full_name:
            await self._call(
                "update",
                {
                    "idToken": data["idToken"],
                    "displayName": full_name,
                    "returnSecureToken": False,
                },
            )
            data["displayName"] = full_name

        self.logger.info("Account created", email=email)
        return self._set_user(data)

    async def sign_in(self, email: str, password: str) -> AuthUser:
        data = await self._call(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        self.logger.info("Signed in", email=email)
        return self._set_user(data)

    async def sign_out(self) -> None:
        self._user = None
        self._notify()
        self.logger.info("Signed out")

    def on_auth_state_changed(self, listener: AuthListener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)
        listener(self._user)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_user(self, data: dict[str, Any]) -> AuthUser:
        self._user = AuthUser(
            uid=data["localId"],
            email=data.get("email"),
            display_name=data.get("displayName") or None,
            id_token=data["idToken"],
            refresh_token=data.get("refreshToken"),
        )
        self._notify()
        return self._user

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._user)
