from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    RECORDING_ERROR = "RECORDING_ERROR"
    TRANSCRIPTION_ERROR = "TRANSCRIPTION_ERROR"
    EXTRACTION_ERROR = "EXTRACTION_ERROR"
    EXTRACTION_PARSE_ERROR = "EXTRACTION_PARSE_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    INVALID_STATE = "INVALID_STATE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass
class ServiceError(Exception):
    code: ErrorCode
    http_status: int
    message: str

    def __str__(self) -> str:  # pragma: no cover - convenience
        return f"{self.code} ({self.http_status}): {self.message}"


class PermissionDenied(ServiceError):
    """Microphone access was refused."""

    def __init__(self, message: str = "Microphone permission not granted") -> None:
        super().__init__(ErrorCode.PERMISSION_DENIED, 403, message)


class RecordingFailure(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.RECORDING_ERROR, 500, message)


class TranscriptionFailure(ServiceError):
    def __init__(self, message: str, http_status: int = 424) -> None:
        super().__init__(ErrorCode.TRANSCRIPTION_ERROR, http_status, message)


class ExtractionTransportFailure(ServiceError):
    """No usable response came back from the language model."""

    def __init__(self, message: str, http_status: int = 500) -> None:
        super().__init__(ErrorCode.EXTRACTION_ERROR, http_status, message)


class ExtractionParseFailure(ServiceError):
    """A response arrived but does not describe an extraction result.

    Recovered by the extraction clients; never reaches the user.
    """

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.EXTRACTION_PARSE_ERROR, 422, message)


class StorageFailure(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.STORAGE_ERROR, 503, message)


class InvalidStateError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.INVALID_STATE, 409, message)


ExtractionFailure = ExtractionTransportFailure


__all__ = [
    "ErrorCode",
    "ServiceError",
    "PermissionDenied",
    "RecordingFailure",
    "TranscriptionFailure",
    "ExtractionTransportFailure",
    "ExtractionFailure",
    "ExtractionParseFailure",
    "StorageFailure",
    "InvalidStateError",
]
