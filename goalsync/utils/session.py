"""Session credential handling.

The credential is the backend's opaque bearer token. Its presence is what
switches progress reconciliation on; other parts of the service subscribe
to be told when it appears or disappears.
"""
import logging
from typing import Callable, Optional

from jose import JWTError, jwt


logger = logging.getLogger(__name__)

FALLBACK_USER_ID = "current-user"

SessionListener = Callable[[bool], None]


def user_id_from_token(token: Optional[str]) -> str:
    """
    Extract the user id from a token without verifying its signature.

    The backend owns verification; this is only used to stamp updates.

    Args:
        token: Bearer token, may be None

    Returns:
        The ``sub`` (or ``id``) claim, or ``"current-user"`` when the token
        is missing or unreadable

    Example:
        >>> user_id_from_token(None)
        'current-user'
    """
    if not token:
        return FALLBACK_USER_ID
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError as e:
        logger.warning("Could not read token claims: %s", e)
        return FALLBACK_USER_ID
    return claims.get("sub") or claims.get("id") or FALLBACK_USER_ID


class SessionCredential:
    """Holder for the current session token."""

    def __init__(self, token: Optional[str] = None):
        self._token = token or None
        self._listeners: list[SessionListener] = []

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    @property
    def user_id(self) -> str:
        return user_id_from_token(self._token)

    def subscribe(self, listener: SessionListener) -> None:
        """Register a callback invoked with the new authenticated flag."""
        self._listeners.append(listener)

    def set(self, token: Optional[str]) -> None:
        """Replace the token; an empty token clears the session."""
        was_authenticated = self.is_authenticated
        self._token = token or None
        if self.is_authenticated != was_authenticated:
            logger.info(
                "Session %s", "authenticated" if self.is_authenticated else "cleared"
            )
            self._notify()

    def clear(self) -> None:
        self.set(None)

    def set_from_cookies(self, cookies: dict[str, str], cookie_name: str) -> bool:
        """
        Pick the token up from request cookies if one is present.

        Returns:
            True if a token was found
        """
        token = cookies.get(cookie_name)
        if token:
            self.set(token)
            return True
        return False

    def auth_headers(self) -> dict[str, str]:
        """Headers for backend calls; no Authorization without a token."""
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.is_authenticated)
