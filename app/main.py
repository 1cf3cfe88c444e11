"""FastAPI 애플리케이션 엔트리포인트 — 미들웨어, 예외 처리, 라우터 등록.

FastAPI application entry point.
``create_app`` wires logging, the service container, middleware,
exception handlers and routers. The lifespan validates settings,
optionally creates tables, starts the reminder scheduler and closes the
services on shutdown.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import api_router, probe_router
from app.config import Settings, settings, validate_settings
from app.container import Services, build_services
from app.database import async_session, create_tables
from app.middleware.axiom_logging import AxiomLoggingMiddleware
from app.utils.log import setup_logging

logger = logging.getLogger(__name__)

APP_VERSION: str = "1.0.0"


def _error_body(error: str, **extra: Any) -> dict[str, Any]:
    return {"success": False, "error": error, "message": error, **extra}


def register_exception_handlers(app: FastAPI) -> None:
    """예외 처리기 등록 — Render every error in the ``{success: false, ...}`` envelope."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(status_code=exc.status_code, content=_error_body(detail), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """검증 오류 — 400 with a field-level ``errors`` list."""
        errors = [
            {"field": ".".join(str(part) for part in error["loc"][1:]) or str(error["loc"][0]), "message": error["msg"]}
            for error in exc.errors()
        ]
        logger.info("Validation failed", extra={"path": request.url.path, "errors": errors})
        return JSONResponse(status_code=400, content=_error_body("Validation failed", errors=errors))

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        logger.warning("Integrity conflict", extra={"path": request.url.path, "error": str(exc.orig)})
        return JSONResponse(status_code=409, content=_error_body("Resource already exists"))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled server error", extra={"path": request.url.path})
        return JSONResponse(status_code=500, content=_error_body("Internal server error"))


def create_app(config: Settings = settings, services: Services | None = None) -> FastAPI:
    """애플리케이션 생성.

    Build the FastAPI application. A prebuilt ``services`` container
    (tests) is attached as-is; otherwise the lifespan builds one from
    ``config``.
    """
    setup_logging(config.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        validate_settings(config)
        logger.info("Starting application", extra={"app_name": config.APP_NAME, "env": config.APP_ENV})
        if config.AUTO_CREATE_TABLES:
            await create_tables()
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services(config, async_session)
        container: Services = app.state.services
        if config.SCHEDULER_ENABLED and not config.is_test:
            container.scheduler.start()
        yield
        logger.info("Shutting down application")
        await container.close()

    app = FastAPI(
        title=config.APP_NAME,
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    # Axiom API 로깅 미들웨어 — CORS보다 먼저 등록하여 모든 요청을 캡처
    # (Registered before CORS to capture all requests)
    app.add_middleware(AxiomLoggingMiddleware, config=config)

    # CORS 미들웨어 — Cross-Origin Resource Sharing middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")
    app.include_router(probe_router, tags=["Monitoring"])
    return app


app: FastAPI = create_app()
