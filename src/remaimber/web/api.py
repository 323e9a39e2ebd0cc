"""FastAPI application factory.

Main entry point for the remaimber Web API. The lifespan is the single
assembly point: it opens the database, builds the grader, orchestrator and
practice service, and at shutdown waits for outstanding grading tasks.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from remaimber import __version__
from remaimber.config.app_config import AppConfig, load_app_config
from remaimber.core.errors import ConflictError, NotFoundError, ValidationError
from remaimber.core.grader import Grader, LLMGrader
from remaimber.core.orchestrator import GradingOrchestrator
from remaimber.core.practice_service import PracticeService
from remaimber.db.database import Database
from remaimber.db.store import SQLiteStore
from remaimber.llm.client import LLMClient, LLMConfig
from remaimber.web.routes import (
    banks_router,
    health_router,
    hierarchy_router,
    sessions_router,
)

logger = structlog.get_logger(__name__)

ERROR_STATUS: dict[type[Exception], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
}


async def _domain_error_handler(request: Request, exc: Exception) -> JSONResponse:
    code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.info("request_rejected", path=request.url.path, status=code, error=str(exc))
    return JSONResponse(status_code=code, content={"detail": str(exc)})


def create_app(
    config: AppConfig | None = None,
    store: SQLiteStore | None = None,
    grader: Grader | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Application config (loaded from YAML/env if not provided)
        store: Pre-built store (tests); otherwise opened from config
        grader: Pre-built grader (tests); otherwise an LLMGrader

    Returns:
        Configured FastAPI app instance
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        app_config = config or load_app_config()

        app_store = store
        if app_store is None:
            db = Database(app_config.database.path)
            db.init()
            app_store = SQLiteStore(db)

        app_grader = grader
        if app_grader is None:
            client = LLMClient(LLMConfig.from_settings(app_config.llm))
            app_grader = LLMGrader(client, max_attempts=app_config.grading.max_attempts)

        orchestrator = GradingOrchestrator(app_store, app_grader)
        app.state.store = app_store
        app.state.orchestrator = orchestrator
        app.state.practice = PracticeService(app_store, orchestrator)

        logger.info(
            "api_startup",
            llm_base_url=app_config.llm.base_url,
            llm_model=app_config.llm.model,
        )
        yield

        # Grading tasks are never cancelled; let them record their results
        await orchestrator.drain()
        logger.info("api_shutdown")

    app = FastAPI(
        title="remaimber API",
        description="Practice question banks with asynchronous LLM grading",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware for the web client
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for error_type in ERROR_STATUS:
        app.add_exception_handler(error_type, _domain_error_handler)

    app.include_router(health_router)
    app.include_router(hierarchy_router)
    app.include_router(banks_router)
    app.include_router(sessions_router)

    return app
