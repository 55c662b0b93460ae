from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from ..core.config import Settings, get_settings
from ..core.errors import InvalidStateError, RecordingFailure, ServiceError, TranscriptionFailure
from ..core.ids import new_utterance_id
from ..models.domain import ClarificationRequest, LogBatchMeta
from .clarification import ClarificationCoordinator, ClarificationState, Extractor, Resolution
from .transcription import TranscriptionResult

logger = logging.getLogger(__name__)

START_FAILED_MESSAGE = "Kon opname niet starten. Controleer microfoon permissies."
PROCESSING_FAILED_MESSAGE = "Er ging iets mis bij het verwerken"
CLARIFICATION_FAILED_MESSAGE = "Kon verduidelijking niet verwerken"


class RecordingState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class CaptureResult:
    uri: str
    duration_ms: int


class AudioRecorder(Protocol):
    def start_capture(self) -> Any:
        ...

    def stop_capture(self, handle: Any) -> Optional[CaptureResult]:
        ...

    def cancel_capture(self, handle: Any) -> None:
        ...


class Transcriber(Protocol):
    def transcribe(self, audio_ref: str) -> TranscriptionResult:
        ...


@dataclass
class RecordingSession:
    handle: Any
    started_at: float
    utterance_id: str = field(default_factory=new_utterance_id)


class RecordingSessionController:
    """Drives one utterance at a time from capture to persisted logs.

    ``success`` and ``error`` are display states: once their delay has
    passed on ``clock`` the controller reads as ``idle`` again.
    """

    def __init__(
        self,
        recorder: AudioRecorder,
        transcriber: Transcriber,
        extractor: Extractor,
        coordinator: ClarificationCoordinator,
        *,
        user_id: Optional[str] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._recorder = recorder
        self._transcriber = transcriber
        self._extractor = extractor
        self._coordinator = coordinator
        self._user_id = user_id
        self._settings = settings or get_settings()
        self._clock = clock

        self._state = RecordingState.IDLE
        self._revert_at: Optional[float] = None
        self._session: Optional[RecordingSession] = None
        self.error_message: Optional[str] = None
        self.current_transcript: Optional[str] = None

    @property
    def state(self) -> RecordingState:
        if self._revert_at is not None and self._clock() >= self._revert_at:
            self._reset()
        return self._state

    @property
    def session(self) -> Optional[RecordingSession]:
        return self._session

    @property
    def pending_clarification(self) -> Optional[ClarificationRequest]:
        pending = self._coordinator.pending
        return pending.clarification if pending else None

    def start(self) -> RecordingSession:
        self._require(RecordingState.IDLE, "start")
        self.error_message = None

        if self._coordinator.state is ClarificationState.AWAITING_CLARIFICATION:
            try:
                self._coordinator.abandon()
            except ServiceError as exc:
                self._fail(exc.message)
                raise
            self.current_transcript = None

        self._state = RecordingState.RECORDING
        try:
            handle = self._recorder.start_capture()
        except Exception as exc:
            logger.warning("recording could not start: %s", exc)
            self._fail(START_FAILED_MESSAGE)
            raise

        self._session = RecordingSession(handle=handle, started_at=self._clock())
        logger.info(
            "recording started",
            extra={"utterance_id": self._session.utterance_id, "state": self._state.value},
        )
        return self._session

    def stop(self) -> Resolution:
        self._require(RecordingState.RECORDING, "stop")
        session = self._session
        self._session = None
        self._state = RecordingState.PROCESSING

        try:
            capture = self._recorder.stop_capture(session.handle)
            if capture is None:
                raise RecordingFailure("No recording result")

            transcription = self._transcriber.transcribe(capture.uri)
            transcript = transcription.text.strip()
            if not transcript:
                raise TranscriptionFailure("Transcript is empty", 422)
            self.current_transcript = transcript

            result = self._extractor.extract(transcript)
            meta = LogBatchMeta(
                user_id=self._user_id,
                raw_transcript=transcript,
                audio_duration_ms=capture.duration_ms,
                logged_at=datetime.now(timezone.utc),
            )
            resolution = self._coordinator.accept(result, meta)
        except Exception as exc:
            logger.exception("utterance failed", extra={"utterance_id": session.utterance_id})
            self._fail(exc.message if isinstance(exc, ServiceError) else PROCESSING_FAILED_MESSAGE)
            raise

        if resolution.awaiting:
            self._state = RecordingState.IDLE
            logger.info(
                "utterance awaiting clarification",
                extra={"utterance_id": session.utterance_id, "field": resolution.clarification.field},
            )
        else:
            self._succeed()
            logger.info(
                "utterance stored",
                extra={"utterance_id": session.utterance_id, "items_count": len(resolution.logs)},
            )
        return resolution

    def cancel(self) -> None:
        if self.state is not RecordingState.RECORDING:
            return
        session = self._session
        self._session = None
        try:
            self._recorder.cancel_capture(session.handle)
        finally:
            self._state = RecordingState.IDLE
            self.current_transcript = None
        logger.info("recording cancelled", extra={"utterance_id": session.utterance_id})

    def answer_clarification(self, answer: str) -> Resolution:
        self._require(RecordingState.IDLE, "answer a clarification")
        self._require_pending()
        self._state = RecordingState.PROCESSING
        try:
            resolution = self._coordinator.answer(answer)
        except Exception:
            logger.exception("clarification failed")
            self._fail(CLARIFICATION_FAILED_MESSAGE)
            raise
        self._succeed()
        return resolution

    def skip_clarification(self) -> Resolution:
        self._require(RecordingState.IDLE, "skip a clarification")
        self._require_pending()
        try:
            resolution = self._coordinator.skip()
        except ServiceError as exc:
            self._fail(exc.message)
            raise
        self.current_transcript = None
        return resolution

    def _require(self, expected: RecordingState, action: str) -> None:
        current = self.state
        if current is not expected:
            raise InvalidStateError(f"Cannot {action} while {current.value}")

    def _require_pending(self) -> None:
        if self._coordinator.state is not ClarificationState.AWAITING_CLARIFICATION:
            raise InvalidStateError("No clarification is pending")

    def _succeed(self) -> None:
        self._state = RecordingState.SUCCESS
        self._revert_at = self._clock() + self._settings.SUCCESS_DISPLAY_SECONDS

    def _fail(self, message: str) -> None:
        self._state = RecordingState.ERROR
        self.error_message = message
        self._revert_at = self._clock() + self._settings.ERROR_DISPLAY_SECONDS

    def _reset(self) -> None:
        self._state = RecordingState.IDLE
        self._revert_at = None
        self.error_message = None
        self.current_transcript = None


__all__ = [
    "AudioRecorder",
    "CaptureResult",
    "RecordingSession",
    "RecordingSessionController",
    "RecordingState",
    "Transcriber",
]
