"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reconciliation_engine import __version__
from reconciliation_engine.api.routes import automation_router, health_router
from reconciliation_engine.database import create_tables, dispose_db, init_db
from reconciliation_engine.domain.status import InvalidStatusTransitionError
from reconciliation_engine.domain.types import DocumentDateError
from reconciliation_engine.services.orchestrator import (
    EmployeeNotFoundError,
    InvoiceNotFoundError,
)
from reconciliation_engine.store.base import DocumentStore
from reconciliation_engine.store.sql import SqlDocumentStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup: attach the SQL store unless one was injected
    if getattr(app.state, "store", None) is None:
        engine, session_factory = init_db()
        await create_tables(engine)
        app.state.store = SqlDocumentStore(session_factory)
        app.state.owns_db = True
    yield
    # Shutdown
    if getattr(app.state, "owns_db", False):
        await dispose_db()
        app.state.store = None


def create_app(store: DocumentStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        store: Document store to serve from. When omitted the SQL store
            configured by ``DATABASE_URL`` is opened at startup.
    """
    app = FastAPI(
        title="Reconciliation Engine API",
        description="Timesheet, invoice and payroll reconciliation",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.store = store

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(InvoiceNotFoundError)
    @app.exception_handler(EmployeeNotFoundError)
    async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": str(exc), "code": "NOT_FOUND"},
        )

    @app.exception_handler(InvalidStatusTransitionError)
    async def transition_handler(
        request: Request, exc: InvalidStatusTransitionError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": str(exc), "code": "INVALID_STATUS_TRANSITION"},
        )

    @app.exception_handler(DocumentDateError)
    async def document_date_handler(request: Request, exc: DocumentDateError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": str(exc),
                "code": "INVALID_DOCUMENT_DATE",
                "context": {"collection": exc.collection, "document_id": exc.document_id},
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(automation_router, prefix="/api/v1")

    return app
