"""
FastAPI application factory and entry point.

create_app() builds and wires a complete application:
  1. Lifespan manager — handles startup/shutdown (DB table creation, cleanup)
  2. App state — engine, session factory, receipt storage and settings
  3. Middleware — CORS and request logging
  4. Exception handlers — maps domain errors to HTTP responses
  5. Router registration — mounts all API endpoint groups

Running locally:
    uvicorn backoffice.main:create_app --factory --reload

The --reload flag watches for file changes and restarts automatically,
which is ideal for development but should not be used in production.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backoffice.config import Settings, configure_logging, settings
from backoffice.database import Base, build_engine, build_sessionmaker
from backoffice.exceptions import register_exception_handlers
from backoffice.middleware import RequestLoggingMiddleware
from backoffice.routers import admin, auth, orders, transactions, users
from backoffice.services.receipt_storage import LocalReceiptStorage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager (replaces deprecated @app.on_event).

    Startup:
      Creates all database tables if they don't exist. In production you'd
      use Alembic migrations so schema changes are versioned.

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    # Register every model on Base.metadata before create_all
    import backoffice.models  # noqa: F401

    engine = app.state.engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Startup complete: %s v%s", app.title, app.version)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


def create_app(config: Settings = settings) -> FastAPI:
    configure_logging(config)

    app = FastAPI(
        title=config.APP_NAME,
        version=config.APP_VERSION,
        description="Back-office ledger: deposits, order payments and balances",
        lifespan=lifespan,
    )

    engine = build_engine(config.DATABASE_URL, echo=config.DEBUG)
    app.state.settings = config
    app.state.engine = engine
    app.state.sessionmaker = build_sessionmaker(engine)
    app.state.receipt_storage = LocalReceiptStorage(
        config.UPLOAD_DIR, config.RECEIPT_BASE_URL
    )

    # -----------------------------------------------------------------------
    # Middleware
    # -----------------------------------------------------------------------

    # CORS: lock this down to the real back-office domain(s) in production.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    register_exception_handlers(app)

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------

    app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
    app.include_router(users.router, prefix="/users", tags=["Users"])
    app.include_router(orders.router, prefix="/orders", tags=["Orders"])
    app.include_router(transactions.router, prefix="/transactions", tags=["Transactions"])
    app.include_router(admin.router, prefix="/admin", tags=["Admin"])

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Liveness probe for load balancers and orchestrators."""
        return {"status": "ok", "version": config.APP_VERSION}

    return app
