"""Application configuration."""

import os

from pydantic import BaseModel, Field


class AppConfig(BaseModel):
    """
    Invoicing application configuration.

    Secrets (database and Valkey URLs) come from Vault, not from here.
    """

    timezone: str = Field(
        default="UTC",
        description="IANA timezone used to decide what 'today' is for the board",
    )
    invoice_number_prefix: str = Field(
        default="INV",
        description="Prefix for suggested invoice numbers",
        min_length=1,
        max_length=10,
    )
    default_page_limit: int = Field(
        default=20,
        description="Page size when a page is requested without a limit",
        ge=1,
        le=500,
    )
    max_page_limit: int = Field(
        default=500,
        description="Largest page size a client may request",
        ge=1,
        le=5000,
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )

    # Connection pool
    db_min_connections: int = Field(default=1, ge=1, le=50)
    db_max_connections: int = Field(default=10, ge=1, le=100)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build config from INVOICING_* environment variables, defaults otherwise."""
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(f"INVOICING_{name.upper()}")
            if raw is not None:
                values[name] = raw
        return cls(**values)
