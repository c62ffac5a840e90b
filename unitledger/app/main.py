"""
FastAPI Application Entry Point.

This is the main application file for the Unit Ledger Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from unitledger.app.core.config import settings
from unitledger.app.api.v1.router import router as api_v1_router
from unitledger.app.db.session import engine, Base, AsyncSessionLocal
from unitledger.app.core.observability import ObservabilityMiddleware, configure_logging
from unitledger.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from unitledger.app.domain.ledger.account_registry import AccountRegistry
from unitledger.app.services.audit import log_event, AuditAction

# Import models to ensure they are registered with Base
from unitledger.app.models.account import Account
from unitledger.app.models.transaction import Transaction, TransactionLine
from unitledger.app.models.expense import Expense, ExpenseClaim
from unitledger.app.models.audit_log import AuditLog

logger = logging.getLogger("unitledger")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures logging.
    2. Creates database tables on startup.
    3. Seeds the default chart of accounts (idempotent).
    """
    configure_logging(settings.log_level)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if settings.seed_default_accounts_on_startup:
        async with AsyncSessionLocal() as db:
            created = await AccountRegistry.ensure_default_accounts(db)
            if created:
                await log_event(
                    db=db,
                    action=AuditAction.DEFAULT_ACCOUNTS_SEEDED,
                    entity_type="account",
                    metadata={"codes": created}
                )

    logger.info("%s started (database: %s)", settings.app_name, engine.url.get_backend_name())
    yield
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Cash-basis double-entry ledger for unit administration",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to Unit Ledger Backend API",
        "docs": "/docs",
        "health": "/health",
    }
