from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from keuthlie.api.error_handling import register_exception_handlers
from keuthlie.api.routes import router
from keuthlie.config import Settings
from keuthlie.logging import get_logger, set_correlation_id
from keuthlie.service.runtime import Runtime

logger = get_logger(__name__)

__version__ = "0.1.0"


def _allowed_origins(settings: Settings) -> List[str]:
    if settings.cors_allow_origins:
        return settings.cors_allow_origins
    return ["http://localhost", "http://localhost:3000", "http://127.0.0.1:3000"]


def create_app(
    runtime: Optional[Runtime] = None, settings: Optional[Settings] = None
) -> FastAPI:
    """Build the HTTP app.

    With no ``runtime`` the lifespan builds one from the environment on startup
    and closes it on shutdown; a runtime passed in stays owned by the caller.
    """
    if settings is None:
        settings = runtime.settings if runtime is not None else Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = getattr(app.state, "runtime", None) is None
        if owned:
            app.state.runtime = Runtime.from_settings(settings)
        logger.info("app_started", issuer_id=settings.issuer_id)
        try:
            yield
        finally:
            if owned:
                app.state.runtime.close()
                app.state.runtime = None
            logger.info("app_stopped")

    app = FastAPI(title="Keuthlie", version=__version__, lifespan=lifespan)
    app.state.runtime = runtime

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(settings),
        allow_credentials=False,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        max_age=3600,
    )

    # Registered before the correlation middleware so it runs inside it and
    # the access line carries the request id.
    @app.middleware("http")
    async def log_request(request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            latency_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response

    @app.middleware("http")
    async def add_correlation_id(request, call_next):
        """Tag every log line of the request with ``X-Request-ID`` (or a fresh id)."""
        correlation_id = set_correlation_id(request.headers.get("X-Request-ID"))
        response = await call_next(request)
        response.headers["X-Request-ID"] = correlation_id
        return response

    @app.middleware("http")
    async def add_security_headers(request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Cache-Control", "no-store")
        return response

    register_exception_handlers(app)
    app.include_router(router)
    return app


app = create_app()
