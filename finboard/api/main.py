"""FastAPI application factory"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from finboard.api.errors import register_exception_handlers
from finboard.api.middleware import RequestIDMiddleware, MetricsMiddleware
from finboard.api.v1 import admin, records, savings, transactions
from finboard.config import Settings, settings as default_settings
from finboard.infrastructure.database.session import Database
from finboard.infrastructure.observability.logging import setup_logging


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    The database handle is built once here (or injected by the caller) and
    disposed when the application shuts down.
    """
    settings = settings or default_settings
    setup_logging(settings.log_level, settings.service_name)
    database = database or Database(settings.database_url, echo=settings.database_echo)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.auto_create_tables:
            database.create_all()
        yield
        database.dispose()

    app = FastAPI(
        title="Finboard API",
        description="Transactions, savings goals and bills scoped to their owning user",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers; fixed paths before the /{record_id} routes
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])
    app.include_router(savings.router, prefix="/v1", tags=["savings"])
    app.include_router(records.transactions_router, prefix="/v1", tags=["transactions"])
    app.include_router(records.savings_router, prefix="/v1", tags=["savings"])
    app.include_router(records.bills_router, prefix="/v1", tags=["bills"])
    app.include_router(admin.router, prefix="/v1", tags=["admin"])

    return app


app = create_app()
