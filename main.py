"""
Application assembly.

create_app() wires routers, middleware and error handlers around services
it is handed; build_app() constructs those services for production from
Vault secrets. Run with:

    uvicorn main:build_app --factory
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.errors import register_error_handlers
from api.invoices import create_invoices_router
from api.middleware import RequestIDMiddleware
from api.reports import create_reports_router
from api.base import success_response
from auth.api import create_auth_router
from auth.config import AuthConfig
from auth.security_middleware import AuthMiddleware
from auth.service import AuthService
from auth.session import SessionManager
from clients.postgres_client import DatabaseUnavailableError, PostgresClient
from clients.valkey_client import ValkeyClient
from clients.vault_client import get_database_url, get_valkey_url
from core.audit import AuditLogger
from core.config import AppConfig
from core.exceptions import BackingStoreUnavailableError
from core.repository import InvoiceRepository
from core.services.invoice_service import InvoiceService
from core.services.report_service import IncomeReportService

logger = logging.getLogger(__name__)


def create_app(
    services: dict,
    session_manager: SessionManager,
    auth_config: AuthConfig,
    postgres: PostgresClient | None = None,
) -> FastAPI:
    """
    Assemble the FastAPI app.

    Args:
        services: {"invoice": InvoiceService, "report": IncomeReportService}
        session_manager: Validates session cookies
        auth_config: Demo credential and cookie settings
        postgres: Checked by /health when given
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if postgres is not None:
            postgres.close()

    app = FastAPI(title="Invoicing", lifespan=lifespan)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        AuthMiddleware,
        session_manager=session_manager,
        cookie_name=auth_config.cookie_name,
    )
    register_error_handlers(app)

    auth_service = AuthService(auth_config, session_manager)
    app.include_router(create_auth_router(auth_service, auth_config), prefix="/auth")
    app.include_router(create_invoices_router(services), prefix="/api")
    app.include_router(create_reports_router(services), prefix="/api")

    @app.get("/health")
    async def health():
        if postgres is not None:
            try:
                postgres.ping()
            except DatabaseUnavailableError as e:
                raise BackingStoreUnavailableError(str(e)) from e
        return success_response({"status": "ok"}).model_dump(mode="json")

    return app


def build_app() -> FastAPI:
    """Production app: config from the environment, secrets from Vault."""
    config = AppConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    postgres = PostgresClient(
        get_database_url(),
        min_connections=config.db_min_connections,
        max_connections=config.db_max_connections,
    )
    repository = InvoiceRepository(postgres)
    audit = AuditLogger(postgres)

    services = {
        "invoice": InvoiceService(repository, audit, config),
        "report": IncomeReportService(repository, config),
    }

    auth_config = AuthConfig()
    session_manager = SessionManager(ValkeyClient(get_valkey_url()), auth_config)

    logger.info("Invoicing app configured (timezone %s)", config.timezone)
    return create_app(services, session_manager, auth_config, postgres=postgres)
