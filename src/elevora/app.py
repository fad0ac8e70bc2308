"""
FastAPI application for the Elevora billing core
"""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .billing_routes import router as billing_router
from .config import config
from .content_routes import router as content_router
from .db.engine import init_db
from .exceptions import (
    ElevoraError,
    elevora_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .logging_config import RequestIDMiddleware, setup_logging
from .user_routes import router as user_router
from .webhook_routes import router as webhook_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting Elevora API (env={config.ENV}, build={config.BUILD_VERSION})")
    init_db()
    yield
    logger.info("Elevora API shutting down")


def create_app() -> FastAPI:
    setup_logging(env=config.ENV, log_level=config.LOG_LEVEL)

    app = FastAPI(title="Elevora API", version=config.BUILD_VERSION, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Added last so it wraps CORS and every handler sees the request id
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(ElevoraError, elevora_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(webhook_router)
    app.include_router(billing_router)
    app.include_router(content_router)
    app.include_router(user_router)

    @app.get("/health")
    async def health():
        """Liveness check for the platform load balancer"""
        return {"status": "ok", "env": config.ENV}

    return app


app = create_app()
