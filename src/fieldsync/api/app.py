"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from fieldsync.api.routes import health, materials, payroll
from fieldsync.core.config import AppSettings
from fieldsync.core.logging import configure_logging
from fieldsync.core.protocols import IDocumentStore
from fieldsync.payroll.context import PayrollContext
from fieldsync.persistence import create_document_store


def create_app(settings: AppSettings | None = None, store: IDocumentStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Open the document store subscriptions and revoke them on shutdown."""
        app_settings = settings or AppSettings()
        configure_logging(app_settings)
        doc_store = store if store is not None else create_document_store(app_settings)
        context = PayrollContext(doc_store, app_settings)
        context.start()
        app.state.settings = app_settings
        app.state.store = doc_store
        app.state.context = context
        try:
            yield
        finally:
            context.close()
            doc_store.close()

    app = FastAPI(
        title="FieldSync Payroll Reconciliation",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(health.router)
    app.include_router(payroll.router, prefix="/payroll")
    app.include_router(materials.router, prefix="/materials")
    return app
