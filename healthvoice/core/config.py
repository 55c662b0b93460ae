from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

PKG_ROOT = Path(__file__).resolve().parents[1]

# Load variables from the .env file located at the project root.
load_dotenv(PKG_ROOT.parent / ".env")


@dataclass(frozen=True)
class Settings:
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    EXTRACTION_INSTRUCTIONS_PATH: str = str(PKG_ROOT / "config" / "extraction_instructions.txt")
    EXTRACTION_TIMEOUT: float = 30.0
    EXTRACTION_MAX_TOKENS: int = 1024
    EXTRACTION_SERVICE_URL: Optional[str] = "http://localhost:8000/v1/parse-health-log"
    TRANSCRIBE_URL: Optional[str] = "https://api.openai.com/v1/audio/transcriptions"
    TRANSCRIBE_MODEL: str = "whisper-1"
    TRANSCRIBE_LANGUAGE: Optional[str] = "nl"
    TRANSCRIBE_TIMEOUT: float = 30.0
    SUCCESS_DISPLAY_SECONDS: float = 1.5
    ERROR_DISPLAY_SECONDS: float = 2.0
    LOG_LEVEL: str = "INFO"
    MICROSERVICE_VERSION: str = "0.1.0"


def _get_env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    if value < 0:
        return default
    return value


def _get_env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    defaults = Settings()
    return Settings(
        OPENAI_API_KEY=os.getenv("OPENAI_API_KEY") or None,
        OPENAI_MODEL=os.getenv("OPENAI_MODEL", defaults.OPENAI_MODEL),
        EXTRACTION_INSTRUCTIONS_PATH=os.getenv(
            "EXTRACTION_INSTRUCTIONS_PATH", defaults.EXTRACTION_INSTRUCTIONS_PATH
        ),
        EXTRACTION_TIMEOUT=_get_env_float("EXTRACTION_TIMEOUT", defaults.EXTRACTION_TIMEOUT),
        EXTRACTION_MAX_TOKENS=_get_env_int("EXTRACTION_MAX_TOKENS", defaults.EXTRACTION_MAX_TOKENS),
        EXTRACTION_SERVICE_URL=os.getenv("EXTRACTION_SERVICE_URL", defaults.EXTRACTION_SERVICE_URL),
        TRANSCRIBE_URL=os.getenv("TRANSCRIBE_URL", defaults.TRANSCRIBE_URL),
        TRANSCRIBE_MODEL=os.getenv("TRANSCRIBE_MODEL", defaults.TRANSCRIBE_MODEL),
        TRANSCRIBE_LANGUAGE=os.getenv("TRANSCRIBE_LANGUAGE", defaults.TRANSCRIBE_LANGUAGE) or None,
        TRANSCRIBE_TIMEOUT=_get_env_float("TRANSCRIBE_TIMEOUT", defaults.TRANSCRIBE_TIMEOUT),
        SUCCESS_DISPLAY_SECONDS=_get_env_float("SUCCESS_DISPLAY_SECONDS", defaults.SUCCESS_DISPLAY_SECONDS),
        ERROR_DISPLAY_SECONDS=_get_env_float("ERROR_DISPLAY_SECONDS", defaults.ERROR_DISPLAY_SECONDS),
        LOG_LEVEL=os.getenv("LOG_LEVEL", defaults.LOG_LEVEL),
        MICROSERVICE_VERSION=os.getenv("MICROSERVICE_VERSION", defaults.MICROSERVICE_VERSION),
    )


__all__ = ["Settings", "get_settings"]
