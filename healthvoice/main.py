from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.middleware import install_request_logging
from .api.routes_extraction import router as extraction_router
from .api.routes_health import router as health_router
from .core.config import Settings, get_settings
from .core.errors import ErrorCode, ServiceError
from .core.logging import setup_logging

logger = logging.getLogger(__name__)


def _error_body(request: Request, code: str, message: str) -> dict:
    request_id = getattr(request.state, "request_id", None) or request.headers.get("x-request-id")
    return {"error": {"code": code, "message": message, "request_id": request_id}}


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    code = exc.code.value if hasattr(exc.code, "value") else str(exc.code)
    if exc.http_status >= 500:
        logger.error("service error: %s", exc.message, extra={"status_code": exc.http_status})
    return JSONResponse(status_code=exc.http_status, content=_error_body(request, code, exc.message))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    body = _error_body(request, ErrorCode.VALIDATION_ERROR.value, "Validation error")
    return JSONResponse(status_code=422, content=body)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error")
    body = _error_body(request, ErrorCode.INTERNAL_ERROR.value, "Internal server error")
    return JSONResponse(status_code=500, content=body)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(title="HealthVoice Extraction Service", version=settings.MICROSERVICE_VERSION)
    install_request_logging(app)
    app.include_router(health_router)
    app.include_router(extraction_router)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    return app


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    # Or: uvicorn healthvoice.main:create_app --factory --reload
    uvicorn.run("healthvoice.main:create_app", factory=True, host="0.0.0.0", port=8000)
