"""Holds extracted items across a clarification round-trip.

An utterance that needs clarification produces one persistence batch in the
end: the items held from the first extraction plus whatever the answer's
re-extraction yields, or the held items alone when the question is skipped
or abandoned.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol, Sequence

from ..core.errors import ErrorCode, InvalidStateError, ServiceError
from ..models.domain import (
    ClarificationAnswer,
    ClarificationRequest,
    ExtractedItem,
    ExtractionResult,
    HealthLog,
    LogBatchMeta,
)
from .log_store import LogStore

logger = logging.getLogger(__name__)


class Extractor(Protocol):
    def extract(
        self,
        transcript: str,
        clarification: Optional[ClarificationAnswer] = None,
    ) -> ExtractionResult:
        ...


class ClarificationState(str, Enum):
    IDLE = "idle"
    AWAITING_CLARIFICATION = "awaiting_clarification"


@dataclass
class PendingState:
    transcript: str
    clarification: ClarificationRequest
    items: List[ExtractedItem]
    meta: LogBatchMeta


@dataclass
class Resolution:
    logs: List[HealthLog] = field(default_factory=list)
    clarification: Optional[ClarificationRequest] = None
    # a follow-up question raised by a re-extraction; reported, not asked
    ignored_clarification: Optional[ClarificationRequest] = None

    @property
    def awaiting(self) -> bool:
        return self.clarification is not None


class ClarificationCoordinator:
    def __init__(self, extractor: Extractor, store: LogStore) -> None:
        self.extractor = extractor
        self.store = store
        self._pending: Optional[PendingState] = None

    @property
    def state(self) -> ClarificationState:
        if self._pending is None:
            return ClarificationState.IDLE
        return ClarificationState.AWAITING_CLARIFICATION

    @property
    def pending(self) -> Optional[PendingState]:
        return self._pending

    def accept(self, result: ExtractionResult, meta: LogBatchMeta) -> Resolution:
        if self._pending is not None:
            raise InvalidStateError("A clarification is already pending")

        if result.needs_clarification is not None:
            self._pending = PendingState(
                transcript=meta.raw_transcript,
                clarification=result.needs_clarification,
                items=list(result.items),
                meta=meta,
            )
            logger.info(
                "clarification requested",
                extra={
                    "field": result.needs_clarification.field,
                    "items_count": len(result.items),
                    "state": self.state.value,
                },
            )
            return Resolution(clarification=result.needs_clarification)

        return Resolution(logs=self._persist(result.items, meta))

    def answer(self, answer: str) -> Resolution:
        pending = self._require_pending()
        if not answer or not answer.strip():
            raise ServiceError(ErrorCode.VALIDATION_ERROR, 400, "Clarification answer is required")

        result = self.extractor.extract(
            pending.transcript,
            ClarificationAnswer(field=pending.clarification.field, answer=answer.strip()),
        )
        ignored = result.needs_clarification
        if ignored is not None:
            # one round per utterance; the new items are used as they are
            logger.warning(
                "nested clarification ignored",
                extra={"field": ignored.field, "items_count": len(result.items)},
            )

        logs = self._persist([*pending.items, *result.items], pending.meta)
        self._pending = None
        return Resolution(logs=logs, ignored_clarification=ignored)

    def skip(self) -> Resolution:
        pending = self._require_pending()
        logs = self._persist(pending.items, pending.meta)
        self._pending = None
        return Resolution(logs=logs)

    def abandon(self) -> Resolution:
        """Close a pending clarification because a new utterance starts."""
        pending = self._require_pending()
        logger.info(
            "pending clarification abandoned",
            extra={"field": pending.clarification.field, "items_count": len(pending.items)},
        )
        return self.skip()

    def _require_pending(self) -> PendingState:
        if self._pending is None:
            raise InvalidStateError("No clarification is pending")
        return self._pending

    def _persist(self, items: Sequence[ExtractedItem], meta: LogBatchMeta) -> List[HealthLog]:
        if not items:
            return []
        logs = self.store.create_logs_batch(list(items), meta)
        logger.info("logs persisted", extra={"items_count": len(logs)})
        return logs


__all__ = [
    "ClarificationCoordinator",
    "ClarificationState",
    "Extractor",
    "PendingState",
    "Resolution",
]
