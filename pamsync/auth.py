"""Authentication collaborator for the sync engine.

The engine only needs a stable user identity and a signed-in signal.
Session management itself (login, token refresh) is handled elsewhere.
"""

import logging
from typing import Optional, Protocol, runtime_checkable

from pamsync.config import Settings, load_credentials

logger = logging.getLogger(__name__)


@runtime_checkable
class Auth(Protocol):
    """What the sync engine needs to know about the current session."""

    @property
    def current_user_id(self) -> Optional[str]: ...

    @property
    def is_authenticated(self) -> bool: ...


class CredentialsAuth:
    """Session derived from stored credentials.

    A session is authenticated when both a user id and an auth token are
    available.
    """

    def __init__(self, user_id: Optional[str], auth_token: Optional[str]):
        self._user_id = user_id or None
        self._auth_token = auth_token or None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CredentialsAuth":
        creds = load_credentials(settings)
        return cls(user_id=creds["user_id"], auth_token=creds["auth_token"])

    @property
    def current_user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def auth_token(self) -> Optional[str]:
        return self._auth_token

    @property
    def is_authenticated(self) -> bool:
        return bool(self._user_id and self._auth_token)

    def sign_out(self) -> None:
        logger.info("Signing out user %s", self._user_id)
        self._user_id = None
        self._auth_token = None
