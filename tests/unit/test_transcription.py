from __future__ import annotations

import httpx
import pytest

from healthvoice.core.config import Settings
from healthvoice.core.errors import ErrorCode, TranscriptionFailure
from healthvoice.services import transcription


class DummyResponse:
    def __init__(self, status_code: int = 200, json_data=None, text: str = ""):
        self.status_code = status_code
        self._json_data = json_data or {}
        self.text = text

    def json(self):
        if isinstance(self._json_data, Exception):
            raise self._json_data
        return self._json_data


def _make_settings(**overrides):
    base = {"OPENAI_API_KEY": "sk-test", "TRANSCRIBE_URL": "http://audio"}
    base.update(overrides)
    return Settings(**base)


def test_transcribe_audio_success(monkeypatch):
    captured = {}

    def fake_post(url, headers, data, files, timeout):  # noqa: ANN001
        captured.update({"url": url, "headers": headers, "data": data, "files": files, "timeout": timeout})
        return DummyResponse(json_data={"text": " dronk water "})

    monkeypatch.setattr(transcription.httpx, "post", fake_post)

    settings = _make_settings(TRANSCRIBE_TIMEOUT=12)
    result = transcription.transcribe_audio(b"audio-bytes", "recording.m4a", settings)

    assert result.text == "dronk water"
    assert result.duration_ms >= 0
    assert captured["url"] == "http://audio"
    assert captured["timeout"] == 12
    assert captured["headers"]["Authorization"] == "Bearer sk-test"
    assert captured["data"] == {"model": "whisper-1", "language": "nl"}
    assert captured["files"]["file"] == ("recording.m4a", b"audio-bytes", "audio/mp4")


def test_transcribe_audio_error_status(monkeypatch):
    monkeypatch.setattr(
        transcription.httpx,
        "post",
        lambda url, headers, data, files, timeout: DummyResponse(status_code=500, text="boom"),
    )

    with pytest.raises(TranscriptionFailure) as exc:
        transcription.transcribe_audio(b"x", "a.wav", _make_settings())
    assert exc.value.code == ErrorCode.TRANSCRIPTION_ERROR


def test_transcribe_audio_timeout(monkeypatch):
    def fake_post(url, headers, data, files, timeout):  # noqa: ANN001
        raise httpx.ReadTimeout("slow")

    monkeypatch.setattr(transcription.httpx, "post", fake_post)
    with pytest.raises(TranscriptionFailure):
        transcription.transcribe_audio(b"x", "a.wav", _make_settings())


def test_transcribe_audio_requires_key():
    with pytest.raises(TranscriptionFailure) as exc:
        transcription.transcribe_audio(b"x", "a.wav", _make_settings(OPENAI_API_KEY=None))
    assert exc.value.http_status == 500


def test_whisper_transcriber_reads_file_uri(monkeypatch, tmp_path):
    audio = tmp_path / "recording.m4a"
    audio.write_bytes(b"m4a-data")
    seen = {}

    def fake_transcribe(audio_bytes, filename, settings):  # noqa: ANN001
        seen.update({"bytes": audio_bytes, "filename": filename})
        return transcription.TranscriptionResult(text="hallo", duration_ms=5)

    monkeypatch.setattr(transcription, "transcribe_audio", fake_transcribe)

    result = transcription.WhisperTranscriber(_make_settings()).transcribe(audio.as_uri())
    assert result.text == "hallo"
    assert seen == {"bytes": b"m4a-data", "filename": "recording.m4a"}


def test_whisper_transcriber_missing_file(tmp_path):
    with pytest.raises(TranscriptionFailure):
        transcription.WhisperTranscriber(_make_settings()).transcribe(str(tmp_path / "missing.m4a"))
