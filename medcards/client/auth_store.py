"""Authentication state: the bearer token and the signed-in user."""

import logging
from typing import Optional

from medcards.client.api_client import ApiClient, ApiError
from medcards.client.storage import AUTH_TOKEN_KEY, AUTH_USER_KEY, LocalStorage

logger = logging.getLogger(__name__)


class AuthStore:
    """
    Keeps the token under ``authToken`` and the user under ``authUser`` and
    mirrors the token onto the shared ``ApiClient``.
    """

    def __init__(self, api: ApiClient, storage: LocalStorage):
        self.api = api
        self.storage = storage
        self.user: Optional[dict] = storage.get_item(AUTH_USER_KEY)
        self.api.token = storage.get_item(AUTH_TOKEN_KEY)

    @property
    def token(self) -> Optional[str]:
        return self.api.token

    @property
    def is_authenticated(self) -> bool:
        return bool(self.api.token)

    def _store(self, result: dict) -> dict:
        self.api.token = result["token"]
        self.user = result["user"]
        self.storage.set_item(AUTH_TOKEN_KEY, result["token"])
        self.storage.set_item(AUTH_USER_KEY, result["user"])
        return self.user

    def login(self, email: str, password: str) -> dict:
        """Sign in; raises `ApiError` (401 "Invalid credentials") on failure."""
        return self._store(self.api.login(email, password))

    def register(self, email: str, password: str, name: Optional[str] = None) -> dict:
        return self._store(self.api.register(email, password, name))

    def logout(self) -> None:
        self.api.token = None
        self.user = None
        self.storage.remove_item(AUTH_TOKEN_KEY)
        self.storage.remove_item(AUTH_USER_KEY)

    def refresh_user(self) -> Optional[dict]:
        """
        Re-read the user from `/api/auth/me`.

        An expired token or a deleted account signs the user out; transport
        errors keep the cached user.
        """
        if not self.is_authenticated:
            return None
        try:
            user = self.api.me()
        except ApiError as e:
            if e.status in (401, 404):
                logger.info("Session no longer valid (%s), signing out", e.status)
                self.logout()
                return None
            logger.warning("Could not refresh user: %s", e)
            return self.user
        self.user = user
        self.storage.set_item(AUTH_USER_KEY, user)
        return user
