from __future__ import annotations

from datetime import datetime, timezone

from healthvoice.models.domain import Category, ExtractedItem, LogBatchMeta, OtherContent
from healthvoice.services.log_store import MemoryLogStore, build_health_logs

LOGGED_AT = datetime(2026, 3, 14, 8, 30, tzinfo=timezone.utc)


def _item(description: str, confidence: float = 0.8) -> ExtractedItem:
    return ExtractedItem(
        category=Category.OTHER,
        content=OtherContent(description=description),
        confidence=confidence,
        original_text=description,
    )


def _meta() -> LogBatchMeta:
    return LogBatchMeta(user_id="user-1", raw_transcript="alles samen", audio_duration_ms=4200, logged_at=LOGGED_AT)


def test_build_health_logs_copies_item_and_shared_fields():
    ids = iter(["a", "b"])
    logs = build_health_logs([_item("een"), _item("twee", 0.6)], _meta(), id_factory=lambda: next(ids))

    assert [log.id for log in logs] == ["a", "b"]
    assert [log.original_text for log in logs] == ["een", "twee"]
    assert [log.confidence_score for log in logs] == [0.8, 0.6]
    for log in logs:
        assert log.raw_transcript == "alles samen"
        assert log.audio_duration_ms == 4200
        assert log.logged_at == LOGGED_AT
        assert log.user_id == "user-1"
        assert log.was_edited is False
        assert log.apple_health_synced is False


def test_memory_store_records_one_batch():
    store = MemoryLogStore()
    logs = store.create_logs_batch([_item("een"), _item("twee")], _meta())

    assert len(store.batches) == 1
    assert store.batches[0] == [log.id for log in logs]
    assert {log.id for log in store.list_logs("user-1")} == set(store.logs)
    assert store.list_logs("someone-else") == []
