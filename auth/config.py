"""Authentication configuration."""

from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """
    Authentication configuration.

    There is a single hardcoded demo credential; this is a gate, not a
    user system.
    """

    # Demo credential
    demo_username: str = Field(
        default="demo",
        description="The only accepted username",
        min_length=1,
    )
    demo_password: str = Field(
        default="demo",
        description="The only accepted password",
        min_length=1,
    )

    # Session settings
    session_expiry_hours: int = Field(
        default=24,
        description="Session lifetime in hours (sliding on activity)",
        ge=1,
        le=720,
    )

    # Cookie
    cookie_name: str = Field(
        default="session_token",
        description="Name of the session cookie",
    )
    secure_cookie: bool = Field(
        default=True,
        description="Send the session cookie over HTTPS only",
    )
