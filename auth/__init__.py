"""Authentication modules."""

from auth.exceptions import (
    AuthError,
    InvalidCredentialsError,
    SessionExpiredError,
)
from auth.types import Session, LoginRequest
from auth.config import AuthConfig
from auth.session import SessionManager
from auth.service import AuthService
from auth.security_middleware import AuthMiddleware
from auth.api import create_auth_router
