from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import unquote, urlparse

import httpx

from ..core.config import Settings, get_settings
from ..core.errors import TranscriptionFailure

logger = logging.getLogger(__name__)

_MIME_TYPES = {
    ".m4a": "audio/mp4",
    ".mp4": "audio/mp4",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".webm": "audio/webm",
    ".ogg": "audio/ogg",
}


@dataclass(frozen=True)
class TranscriptionResult:
    text: str
    duration_ms: int


def _build_form(settings: Settings) -> Dict[str, str]:
    form = {"model": settings.TRANSCRIBE_MODEL}
    if settings.TRANSCRIBE_LANGUAGE:
        form["language"] = settings.TRANSCRIBE_LANGUAGE
    return form


def transcribe_audio(audio_bytes: bytes, filename: str, settings: Settings) -> TranscriptionResult:
    if not settings.TRANSCRIBE_URL:
        raise TranscriptionFailure("TRANSCRIBE_URL is not configured", 500)
    if not settings.OPENAI_API_KEY:
        raise TranscriptionFailure("OPENAI_API_KEY is not configured", 500)

    mime = _MIME_TYPES.get(Path(filename).suffix.lower(), "application/octet-stream")
    start = time.perf_counter()
    try:
        response = httpx.post(
            settings.TRANSCRIBE_URL,
            headers={"Authorization": f"Bearer {settings.OPENAI_API_KEY}"},
            data=_build_form(settings),
            files={"file": (filename, audio_bytes, mime)},
            timeout=settings.TRANSCRIBE_TIMEOUT,
        )
    except httpx.RequestError as exc:
        raise TranscriptionFailure(f"transcription request failed: {exc}") from exc

    if response.status_code >= 400:
        raise TranscriptionFailure(f"transcription service returned {response.status_code}: {response.text}")

    try:
        data = response.json()
    except ValueError as exc:
        raise TranscriptionFailure(f"Invalid JSON from transcription service: {exc}") from exc

    text = data.get("text") if isinstance(data, dict) else None
    if not isinstance(text, str):
        raise TranscriptionFailure("transcription payload has no text")

    elapsed_ms = int((time.perf_counter() - start) * 1000)
    logger.info("transcription finished", extra={"timing_ms": elapsed_ms})
    return TranscriptionResult(text=text.strip(), duration_ms=elapsed_ms)


def _resolve_audio_path(audio_ref: str) -> Path:
    parsed = urlparse(audio_ref)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(audio_ref)


class WhisperTranscriber:
    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    def transcribe(self, audio_ref: str) -> TranscriptionResult:
        path = _resolve_audio_path(audio_ref)
        try:
            audio_bytes = path.read_bytes()
        except OSError as exc:
            raise TranscriptionFailure(f"Audio file not readable: {path}", 400) from exc
        return transcribe_audio(audio_bytes, path.name, self._settings)


__all__ = ["TranscriptionResult", "WhisperTranscriber", "transcribe_audio"]
