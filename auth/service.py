"""Authentication service - demo credential login and logout."""

import logging
import secrets

from auth.config import AuthConfig
from auth.exceptions import InvalidCredentialsError
from auth.session import SessionManager
from auth.types import Session

logger = logging.getLogger(__name__)


class AuthService:
    """Checks the demo credential and manages the resulting session."""

    def __init__(self, config: AuthConfig, session_manager: SessionManager):
        self._config = config
        self._session_manager = session_manager

    def login(self, username: str, password: str) -> Session:
        """Create a session for the demo user.

        Raises:
            InvalidCredentialsError: If username or password do not match.
        """
        # Compare both so timing does not reveal which one was wrong
        username_ok = secrets.compare_digest(
            username.encode(), self._config.demo_username.encode()
        )
        password_ok = secrets.compare_digest(
            password.encode(), self._config.demo_password.encode()
        )
        if not (username_ok and password_ok):
            logger.warning("Failed login attempt for username %r", username)
            raise InvalidCredentialsError("Invalid username or password")

        session = self._session_manager.create_session(username)
        logger.info("User %s logged in", username)
        return session

    def logout(self, session_token: str) -> None:
        """Revoke session. Safe to call with invalid token."""
        self._session_manager.revoke_session(session_token)
        logger.info("Session revoked")

    def validate_session(self, token: str) -> Session:
        """Validate session token.

        Raises:
            SessionExpiredError: If session invalid or expired.
        """
        return self._session_manager.validate_session(token)
