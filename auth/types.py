"""Pydantic models for auth domain."""

from datetime import datetime

from pydantic import BaseModel, Field


class Session(BaseModel):
    """An active login session."""

    token: str = Field(..., description="Session token (opaque string)")
    username: str
    created_at: datetime
    expires_at: datetime
    last_activity_at: datetime


class LoginRequest(BaseModel):
    """Request payload for login."""

    username: str = Field(..., max_length=200)
    password: str = Field(..., max_length=200)
