from __future__ import annotations

import json
import logging
import time
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from ..core.config import Settings, get_settings
from ..core.errors import (
    ErrorCode,
    ExtractionParseFailure,
    ExtractionTransportFailure,
    ServiceError,
)
from ..models.domain import ClarificationAnswer, ExtractionResult, fallback_result

logger = logging.getLogger(__name__)

CLARIFICATION_TEMPLATE = (
    'Originele input: "{transcript}"\n'
    "\n"
    "De gebruiker heeft de volgende verduidelijking gegeven:\n"
    "Veld: {field}\n"
    "Antwoord: {answer}\n"
    "\n"
    "Verwerk de input opnieuw met deze extra informatie."
)


@lru_cache(maxsize=1)
def _load_instructions(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8-sig").strip()
    except FileNotFoundError as exc:  # pragma: no cover - configuration errors
        raise ServiceError(ErrorCode.INTERNAL_ERROR, 500, f"Instructions file not found: {path}") from exc
    except OSError as exc:  # pragma: no cover - configuration errors
        raise ServiceError(ErrorCode.INTERNAL_ERROR, 500, f"Failed to read instructions: {exc}") from exc


@lru_cache(maxsize=4)
def _get_openai_client(api_key: Optional[str], timeout: float) -> OpenAI:
    if not api_key:
        raise ServiceError(ErrorCode.INTERNAL_ERROR, 500, "OPENAI_API_KEY is not configured")
    # one request per extraction; the caller decides what to do on failure
    return OpenAI(api_key=api_key, timeout=timeout, max_retries=0)


def build_user_message(transcript: str, clarification: Optional[ClarificationAnswer] = None) -> str:
    if clarification is None:
        return transcript
    return CLARIFICATION_TEMPLATE.format(
        transcript=transcript,
        field=clarification.field,
        answer=clarification.answer,
    )


def _closing_brace(text: str, start: int) -> int:
    """Index just past the brace that balances ``text[start]``, or -1."""
    depth = 0
    in_string = False
    escaped = False
    for pos in range(start, len(text)):
        char = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return pos + 1
    return -1


def find_json_object(text: str) -> Dict[str, Any]:
    """Return the first top-level JSON object embedded in ``text``.

    Model replies may surround the object with prose or markdown fences.
    Braces nested in a candidate that fails to decode are never tried on
    their own, so a truncated reply cannot yield one of its inner objects.
    """
    if not isinstance(text, str):
        raise ExtractionParseFailure("Response content is not text")

    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            candidate, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            end = _closing_brace(text, start)
            if end == -1:
                raise ExtractionParseFailure("Unterminated JSON object in response")
            start = text.find("{", end)
            continue
        return candidate
    raise ExtractionParseFailure("No JSON object found in response")


def parse_extraction_payload(payload: Any) -> ExtractionResult:
    if not isinstance(payload, dict):
        raise ExtractionParseFailure("Extraction payload is not an object")
    if "items" not in payload:
        raise ExtractionParseFailure("Extraction payload has no 'items'")
    try:
        return ExtractionResult.model_validate(payload)
    except (ValidationError, ValueError, TypeError) as exc:
        raise ExtractionParseFailure(f"Invalid extraction payload: {exc}") from exc


def parse_extraction_text(text: str, transcript: str) -> ExtractionResult:
    """Interpret raw model output, degrading to the fallback item on any defect."""
    try:
        return parse_extraction_payload(find_json_object(text))
    except ExtractionParseFailure as exc:
        logger.warning("extraction response rejected, using fallback: %s", exc.message)
        logger.debug("raw extraction response: %s", text)
        return fallback_result(transcript)


class ExtractionClient:
    """Turns one utterance into an ``ExtractionResult`` with a single LLM call.

    Stateless; clarification continuity lives in the coordinator.
    """

    def __init__(self, settings: Optional[Settings] = None, client: Optional[OpenAI] = None) -> None:
        self._settings = settings
        self._client = client

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def _openai(self) -> OpenAI:
        if self._client is not None:
            return self._client
        settings = self.settings
        return _get_openai_client(settings.OPENAI_API_KEY, settings.EXTRACTION_TIMEOUT)

    def extract(
        self,
        transcript: str,
        clarification: Optional[ClarificationAnswer] = None,
    ) -> ExtractionResult:
        if not transcript or not transcript.strip():
            raise ServiceError(ErrorCode.VALIDATION_ERROR, 400, "Transcript is required")

        settings = self.settings
        instructions = _load_instructions(settings.EXTRACTION_INSTRUCTIONS_PATH)
        client = self._openai()

        start = time.perf_counter()
        try:
            response = client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                max_tokens=settings.EXTRACTION_MAX_TOKENS,
                messages=[
                    {"role": "system", "content": instructions},
                    {"role": "user", "content": build_user_message(transcript, clarification)},
                ],
            )
        except OpenAIError as exc:
            raise ExtractionTransportFailure(f"OpenAI request failed: {exc}") from exc
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            content = None

        result = parse_extraction_text(content or "", transcript)
        result.processing_time_ms = elapsed_ms
        logger.info(
            "extraction finished",
            extra={
                "timing_ms": elapsed_ms,
                "items_count": len(result.items),
                "field": result.needs_clarification.field if result.needs_clarification else None,
            },
        )
        return result


def extract_health_logs(
    transcript: str,
    clarification: Optional[ClarificationAnswer] = None,
) -> ExtractionResult:
    return ExtractionClient().extract(transcript, clarification)


__all__ = [
    "CLARIFICATION_TEMPLATE",
    "ExtractionClient",
    "build_user_message",
    "extract_health_logs",
    "find_json_object",
    "parse_extraction_payload",
    "parse_extraction_text",
]
