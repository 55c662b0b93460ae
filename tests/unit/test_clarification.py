from __future__ import annotations

from datetime import datetime, timezone

import pytest

from fakes import FailingStore, ScriptedExtractor
from healthvoice.core.errors import ExtractionTransportFailure, InvalidStateError, StorageFailure
from healthvoice.models.domain import (
    Category,
    ClarificationAnswer,
    ClarificationRequest,
    ExtractedItem,
    ExtractionResult,
    LogBatchMeta,
    MovementContent,
    SupplementContent,
)
from healthvoice.services.clarification import ClarificationCoordinator, ClarificationState
from healthvoice.services.log_store import MemoryLogStore

TRANSCRIPT = "nam vitamine C en liep een rondje"

ITEM_A = ExtractedItem(
    category=Category.MOVEMENT,
    content=MovementContent(activity="hardlopen"),
    confidence=0.9,
    original_text="liep een rondje",
)
ITEM_B = ExtractedItem(
    category=Category.SUPPLEMENT,
    content=SupplementContent(name="vitamine C", dosage="500", unit="mg"),
    confidence=0.95,
    original_text="nam vitamine C",
)
DOSAGE_QUESTION = ClarificationRequest(field="dosage", question="Hoeveel vitamine C nam je?")


def _meta() -> LogBatchMeta:
    return LogBatchMeta(
        user_id="user-1",
        raw_transcript=TRANSCRIPT,
        audio_duration_ms=2500,
        logged_at=datetime(2026, 3, 14, 8, 30, tzinfo=timezone.utc),
    )


def _awaiting(extractor=None, store=None):
    coordinator = ClarificationCoordinator(extractor or ScriptedExtractor(), store or MemoryLogStore())
    resolution = coordinator.accept(
        ExtractionResult(items=[ITEM_A], needs_clarification=DOSAGE_QUESTION), _meta()
    )
    return coordinator, resolution


def test_accept_without_clarification_persists_one_batch():
    store = MemoryLogStore()
    coordinator = ClarificationCoordinator(ScriptedExtractor(), store)

    resolution = coordinator.accept(ExtractionResult(items=[ITEM_A, ITEM_B]), _meta())

    assert not resolution.awaiting
    assert [log.category for log in resolution.logs] == [Category.MOVEMENT, Category.SUPPLEMENT]
    assert len(store.batches) == 1
    assert coordinator.state is ClarificationState.IDLE


def test_accept_with_clarification_holds_items():
    store = MemoryLogStore()
    coordinator, resolution = _awaiting(store=store)

    assert resolution.awaiting
    assert resolution.clarification == DOSAGE_QUESTION
    assert resolution.logs == []
    assert store.logs == {}
    assert coordinator.state is ClarificationState.AWAITING_CLARIFICATION
    assert coordinator.pending.items == [ITEM_A]
    assert coordinator.pending.transcript == TRANSCRIPT


def test_answer_merges_pending_and_new_items():
    extractor = ScriptedExtractor(ExtractionResult(items=[ITEM_B]))
    store = MemoryLogStore()
    coordinator, _ = _awaiting(extractor, store)

    resolution = coordinator.answer("500mg")

    assert extractor.calls == [(TRANSCRIPT, ClarificationAnswer(field="dosage", answer="500mg"))]
    assert [log.original_text for log in resolution.logs] == ["liep een rondje", "nam vitamine C"]
    assert len(store.batches) == 1
    assert all(log.audio_duration_ms == 2500 for log in resolution.logs)
    assert coordinator.pending is None
    assert coordinator.state is ClarificationState.IDLE


def test_skip_persists_pending_items_only():
    extractor = ScriptedExtractor()
    store = MemoryLogStore()
    coordinator, _ = _awaiting(extractor, store)

    resolution = coordinator.skip()

    assert [log.original_text for log in resolution.logs] == ["liep een rondje"]
    assert extractor.calls == []
    assert coordinator.pending is None


def test_abandon_behaves_like_skip():
    store = MemoryLogStore()
    coordinator, _ = _awaiting(store=store)

    resolution = coordinator.abandon()

    assert len(resolution.logs) == 1
    assert len(store.batches) == 1
    assert coordinator.state is ClarificationState.IDLE


def test_skip_without_items_does_not_touch_store():
    store = FailingStore()
    coordinator = ClarificationCoordinator(ScriptedExtractor(), store)
    coordinator.accept(ExtractionResult(items=[], needs_clarification=DOSAGE_QUESTION), _meta())

    assert coordinator.skip().logs == []


def test_nested_clarification_is_flattened():
    follow_up = ClarificationRequest(field="unit", question="mg of IU?")
    extractor = ScriptedExtractor(ExtractionResult(items=[ITEM_B], needs_clarification=follow_up))
    coordinator, _ = _awaiting(extractor)

    resolution = coordinator.answer("500")

    assert not resolution.awaiting
    assert resolution.ignored_clarification == follow_up
    assert len(resolution.logs) == 2
    assert coordinator.state is ClarificationState.IDLE


def test_failed_answer_keeps_pending_state():
    extractor = ScriptedExtractor(ExtractionTransportFailure("timeout"))
    coordinator, _ = _awaiting(extractor)

    with pytest.raises(ExtractionTransportFailure):
        coordinator.answer("500mg")

    assert coordinator.pending is not None
    assert coordinator.skip().logs[0].original_text == "liep een rondje"


def test_storage_failure_surfaces():
    coordinator = ClarificationCoordinator(ScriptedExtractor(), FailingStore())
    with pytest.raises(StorageFailure):
        coordinator.accept(ExtractionResult(items=[ITEM_A]), _meta())


def test_invalid_transitions():
    coordinator = ClarificationCoordinator(ScriptedExtractor(), MemoryLogStore())
    with pytest.raises(InvalidStateError):
        coordinator.answer("iets")
    with pytest.raises(InvalidStateError):
        coordinator.skip()

    coordinator, _ = _awaiting()
    with pytest.raises(InvalidStateError):
        coordinator.accept(ExtractionResult(items=[ITEM_B]), _meta())
