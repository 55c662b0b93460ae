from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool

from ..core.errors import ErrorCode, ServiceError
from ..models.api_io import ErrorResponse, ParseHealthLogRequest
from ..models.domain import ExtractionResult
from ..services.extraction import extract_health_logs


router = APIRouter(prefix="/v1", tags=["extraction"])
logger = logging.getLogger(__name__)


@router.post(
    "/parse-health-log",
    response_model=ExtractionResult,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def parse_health_log(payload: ParseHealthLogRequest, request: Request) -> ExtractionResult:
    transcript = (payload.transcript or "").strip()
    if not transcript:
        raise ServiceError(ErrorCode.VALIDATION_ERROR, 400, "Transcript is required")

    start = time.perf_counter()
    result = await run_in_threadpool(extract_health_logs, transcript, payload.clarification)
    result.processing_time_ms = int((time.perf_counter() - start) * 1000)
    logger.info(
        "parse-health-log",
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "items_count": len(result.items),
            "timing_ms": result.processing_time_ms,
        },
    )
    return result
