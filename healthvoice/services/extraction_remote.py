from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..core.config import Settings, get_settings
from ..core.errors import ErrorCode, ExtractionParseFailure, ExtractionTransportFailure, ServiceError
from ..models.domain import ClarificationAnswer, ExtractionResult, fallback_result
from .extraction import parse_extraction_payload

logger = logging.getLogger(__name__)


def _build_payload(transcript: str, clarification: Optional[ClarificationAnswer]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"transcript": transcript}
    if clarification is not None:
        payload["clarification"] = clarification.model_dump()
    return payload


class RemoteExtractionClient:
    """Calls the HTTP extraction service (``POST /v1/parse-health-log``)."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    def extract(
        self,
        transcript: str,
        clarification: Optional[ClarificationAnswer] = None,
    ) -> ExtractionResult:
        settings = self._settings
        if not settings.EXTRACTION_SERVICE_URL:
            raise ServiceError(ErrorCode.INTERNAL_ERROR, 500, "EXTRACTION_SERVICE_URL is not configured")

        try:
            response = httpx.post(
                settings.EXTRACTION_SERVICE_URL,
                json=_build_payload(transcript, clarification),
                timeout=settings.EXTRACTION_TIMEOUT,
            )
        except httpx.RequestError as exc:
            raise ExtractionTransportFailure(f"extraction service request failed: {exc}") from exc

        if response.status_code >= 400:
            raise ExtractionTransportFailure(
                f"extraction service returned {response.status_code}: {response.text}",
            )

        try:
            data = response.json()
        except ValueError:
            data = None

        try:
            result = parse_extraction_payload(data)
        except ExtractionParseFailure as exc:
            logger.warning("extraction service payload rejected, using fallback: %s", exc.message)
            return fallback_result(transcript)
        return result


__all__ = ["RemoteExtractionClient"]
