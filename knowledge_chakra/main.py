"""FastAPI entry point."""

import time
from typing import Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from knowledge_chakra.api.v1 import router as api_router
from knowledge_chakra.config import get_settings
from knowledge_chakra.db import Base, engine
from knowledge_chakra.exceptions import ChakraError, InternalError
from knowledge_chakra.logging_config import (
    generate_request_id,
    get_logger,
    set_request_id,
    setup_logging,
)

# Register every table on Base.metadata
import knowledge_chakra.models  # noqa: F401

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """Application factory."""

    settings = get_settings()
    setup_logging(settings)
    app = FastAPI(title=settings.app_name, version="0.1.0")

    @app.on_event("startup")
    def init_models() -> None:
        """Create missing tables on startup."""

        Base.metadata.create_all(bind=engine)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s - %s (%.2fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={"event_type": "http_request", "duration_ms": duration_ms},
        )
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(ChakraError)
    async def chakra_error_handler(request: Request, exc: ChakraError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", exc.code, request.url.path, exc.message, exc_info=exc)
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content=InternalError().to_dict())

    app.include_router(api_router)

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok", "environment": settings.environment}

    return app


app = create_app()
