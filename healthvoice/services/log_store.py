from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from ..core.errors import StorageFailure
from ..core.ids import new_log_id
from ..models.domain import ExtractedItem, HealthLog, LogBatchMeta


def build_health_logs(
    items: Sequence[ExtractedItem],
    meta: LogBatchMeta,
    *,
    created_at: Optional[datetime] = None,
    id_factory: Callable[[], str] = new_log_id,
) -> List[HealthLog]:
    created = created_at or datetime.now(timezone.utc)
    return [
        HealthLog(
            id=id_factory(),
            user_id=meta.user_id,
            created_at=created,
            logged_at=meta.logged_at,
            raw_transcript=meta.raw_transcript,
            audio_duration_ms=meta.audio_duration_ms,
            category=item.category,
            subcategory=item.subcategory,
            content=item.content,
            confidence_score=item.confidence,
            original_text=item.original_text,
            was_edited=False,
            apple_health_synced=False,
        )
        for item in items
    ]


class LogStore(Protocol):
    def create_logs_batch(self, items: Sequence[ExtractedItem], meta: LogBatchMeta) -> List[HealthLog]:
        ...


class MemoryLogStore:
    """Process-local store; a batch is written completely or not at all."""

    def __init__(self) -> None:
        self.logs: Dict[str, HealthLog] = {}
        self.batches: List[List[str]] = []

    def create_logs_batch(self, items: Sequence[ExtractedItem], meta: LogBatchMeta) -> List[HealthLog]:
        try:
            logs = build_health_logs(items, meta)
        except ValueError as exc:
            raise StorageFailure(f"Could not build health logs: {exc}") from exc
        for log in logs:
            self.logs[log.id] = log
        self.batches.append([log.id for log in logs])
        return logs

    def list_logs(self, user_id: Optional[str] = None) -> List[HealthLog]:
        logs = [log for log in self.logs.values() if user_id is None or log.user_id == user_id]
        return sorted(logs, key=lambda log: log.logged_at, reverse=True)


__all__ = ["LogStore", "MemoryLogStore", "build_health_logs"]
