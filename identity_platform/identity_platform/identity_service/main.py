"""
Identity Service - account registration, credential checks and bearer tokens
"""
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Callable, Optional
import logging
import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from .accounts import AccountService
from .auth import PasswordHasher, TokenIssuer
from .config import Settings, settings as default_settings
from .db import ConnectionPoolManager
from .executor import QueryExecutor
from .lifecycle import LifecycleController
from .routes import accounts, health
from .store import AccountStore

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def create_app(
    settings: Optional[Settings] = None,
    *,
    pool: Optional[ConnectionPoolManager] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> FastAPI:
    """
    Build the application with its own pool, executor and token issuer.

    Nothing connects to the store until the lifespan starts.
    """
    settings = settings or default_settings
    pool = pool or ConnectionPoolManager.from_settings(settings)
    lifecycle = LifecycleController.from_settings(pool, settings, sleep=sleep)
    issuer = TokenIssuer(
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
        ttl=timedelta(minutes=settings.JWT_EXPIRES_MINUTES),
    )
    service = AccountService(
        AccountStore(QueryExecutor(pool)),
        PasswordHasher(rounds=settings.PASSWORD_HASH_ROUNDS),
        issuer,
        min_password_length=settings.PASSWORD_MIN_LENGTH,
    )

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        """Gate startup on the store, drain and close the pool on shutdown"""
        configure_logging(settings.LOG_LEVEL)
        if settings.uses_default_secret:
            logger.warning("JWT_SECRET is not set; using the placeholder signing secret")
        await run_in_threadpool(lifecycle.start)
        try:
            yield
        finally:
            await run_in_threadpool(lifecycle.shutdown)

    app = FastAPI(
        title="Identity Service",
        description="Account registration, authentication and bearer tokens",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pool = pool
    app.state.lifecycle = lifecycle
    app.state.token_issuer = issuer
    app.state.accounts = service

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Invalid request body"},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    app.include_router(accounts.router)
    app.include_router(health.router)

    @app.get("/")
    def root():
        """Root endpoint"""
        return {
            "service": "Identity Service",
            "version": "1.0.0",
            "status": lifecycle.state.value,
        }

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT)
