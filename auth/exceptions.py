"""Typed exceptions for auth failures."""


class AuthError(Exception):
    """Base class for authentication errors."""


class InvalidCredentialsError(AuthError):
    """Username or password did not match the demo credential."""


class SessionExpiredError(AuthError):
    """Session has expired and user must log in again."""
