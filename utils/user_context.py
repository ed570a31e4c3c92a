"""Propagate the acting username through the call stack using contextvars."""

from contextvars import ContextVar
from contextlib import contextmanager

_current_username: ContextVar[str | None] = ContextVar("current_username", default=None)


def get_current_username() -> str:
    """
    Get current username from context.

    Raises RuntimeError if no user context is set.
    This is fail-fast behavior - if you're in a code path that
    requires an actor (audit trail) and it's not set, that's a bug.
    """
    username = _current_username.get()
    if username is None:
        raise RuntimeError(
            "No user context set. This usually means you're calling "
            "user-scoped code outside of an authenticated request."
        )
    return username


def set_current_username(username: str) -> None:
    """
    Set current username in context.

    Called by auth middleware after validating session.
    """
    _current_username.set(username)


def clear_current_username() -> None:
    """
    Clear user context.

    Called by auth middleware after request completes.
    Must be called in finally block to prevent context leakage.
    """
    _current_username.set(None)


@contextmanager
def user_context(username: str):
    """
    Context manager for temporarily setting user context.

    Useful for:
    - Tests
    - Scripts (seeding) that write outside of a request

    Example:
        with user_context("seed"):
            invoice_service.create(payload)
    """
    previous = _current_username.get()
    set_current_username(username)
    try:
        yield
    finally:
        if previous is None:
            clear_current_username()
        else:
            set_current_username(previous)
