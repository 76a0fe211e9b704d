"""
FarmTrace Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers, the produce routes
       and the health route, and returns the app.
Who:   uvicorn (`uvicorn farmtrace.main:app`) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                    FastAPI App                       │
    │                                                      │
    │  Middleware:   Request ID → Logging → CORS           │
    │                                                      │
    │  Routes:       /get_produce/{id}   /add_produce/{p}  │
    │                /get_all_produce    /change_holder/{h}│
    │                /health                               │
    │                                                      │
    │  Exception Handlers:                                 │
    │    Validation/UnknownFunction→400  NotFound→404      │
    │    DuplicateRecord→409  Ledger→500                   │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → schema (auto_create_schema) → seed (seed_ledger)
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from farmtrace import __version__
from farmtrace.config import settings
from farmtrace.database import async_session_factory, create_schema, dispose_engine
from farmtrace.exceptions import (
    DuplicateRecordError,
    FarmTraceError,
    LedgerError,
    NotFoundError,
    UnknownFunctionError,
    ValidationError,
)
from farmtrace.middleware.logging import RequestLoggingMiddleware
from farmtrace.middleware.request_id import RequestIDMiddleware, request_id_var
from farmtrace.routes import health
from farmtrace.routes.produce import build_router
from farmtrace.services.invoker import Invoker, ProduceInvoker

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """Configure the root logger once, at startup."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("FarmTrace Backend %s starting up...", __version__)

    bind = app.state.session_factory.kw["bind"]
    if settings.auto_create_schema:
        await create_schema(bind)
        logger.info("World state schema ready")

    if settings.seed_ledger:
        tx_id = await app.state.ledger_invoker.seed()
        logger.info("Ledger seeded [tx %s]", tx_id)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    logger.info("FarmTrace Backend shutting down...")
    await dispose_engine(bind)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(status_code: int, error: str, message: str, details: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "details": details or {},
            "request_id": request_id_var.get(""),
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the FarmTrace exception hierarchy to HTTP responses.

        ValidationError         → 400
        UnknownFunctionError    → 400
        NotFoundError           → 404
        DuplicateRecordError    → 409
        LedgerError             → 500 (generic message, details logged only)
        FarmTraceError (base)   → 500
        Exception (fallback)    → 500
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(UnknownFunctionError)
    async def handle_unknown_function(request: Request, exc: UnknownFunctionError):
        return _error_response(400, "unknown_function", exc.message, exc.context)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(DuplicateRecordError)
    async def handle_duplicate(request: Request, exc: DuplicateRecordError):
        return _error_response(409, "duplicate_record", exc.message, exc.context)

    @app.exception_handler(LedgerError)
    async def handle_ledger_error(request: Request, exc: LedgerError):
        logger.error("[%s] Ledger error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "ledger_error", exc.message)

    @app.exception_handler(FarmTraceError)
    async def handle_farmtrace_error(request: Request, exc: FarmTraceError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    invoker: Optional[Invoker] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        invoker:         Handler for the produce routes. Defaults to a
                         ProduceInvoker on `session_factory`.
        session_factory: Sessions for the ledger and the health check.
                         Defaults to the engine built from settings.
    """
    session_factory = session_factory or async_session_factory
    ledger_invoker = ProduceInvoker(session_factory)

    app = FastAPI(
        title="FarmTrace API",
        description="Farm produce provenance: record produce batches and track who holds them.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.session_factory = session_factory
    app.state.ledger_invoker = ledger_invoker

    # Last added runs first: RequestID → Logging → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Transaction-ID", "X-Total-Count"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(build_router(invoker or ledger_invoker))
    app.include_router(health.router)

    return app


app = create_app()
