"""Tests for vidgist.transcribe module."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from vidgist.exceptions import PrivacyModeError, TranscriptionError
from vidgist.models import AssetKind
from vidgist.scratch import ScratchSpace
from vidgist.transcribe.engine import (
    Transcriber,
    _parse_whisper_result,
    check_privacy,
    transcribe_audio,
)


class TestParseWhisperResult:
    def test_maps_segments(self, sample_whisper_response: dict) -> None:
        transcript = _parse_whisper_result(sample_whisper_response, None)
        assert len(transcript.segments) == 2
        assert transcript.segments[0].text == "Welcome back to the channel."
        assert transcript.segments[1].start == 4.2
        assert transcript.duration_seconds == 9.8
        assert transcript.language == "english"
        assert transcript.full_text.startswith("Welcome back")

    def test_overlapping_segments_clipped(self) -> None:
        result = {
            "segments": [
                {"start": 0.0, "end": 5.0, "text": "first"},
                {"start": 4.5, "end": 8.0, "text": "second"},
                {"start": 7.0, "end": 7.5, "text": "inside"},
            ]
        }
        transcript = _parse_whisper_result(result, "en")
        starts = [s.start for s in transcript.segments]
        ends = [s.end for s in transcript.segments]
        assert starts == [0.0, 5.0, 8.0]
        assert ends == [5.0, 8.0, 8.0]

    def test_full_text_joined_when_missing(self) -> None:
        result = {"segments": [{"start": 0, "end": 1, "text": " Hello"}, {"start": 1, "end": 2, "text": "world "}]}
        transcript = _parse_whisper_result(result, "en")
        assert transcript.full_text == "Hello world"
        assert transcript.language == "en"

    def test_no_segments(self) -> None:
        transcript = _parse_whisper_result({"text": ""}, None)
        assert transcript.is_empty
        assert transcript.duration_seconds == 0.0
        assert transcript.language == "unknown"

    def test_object_segments(self) -> None:
        class Segment:
            def __init__(self, start: float, end: float, text: str) -> None:
                self.start, self.end, self.text = start, end, text

        transcript = _parse_whisper_result({"segments": [Segment(0.0, 2.0, "hi")]}, None)
        assert transcript.segments[0].end == 2.0


class TestPrivacy:
    def test_local_mode_refuses_api(self) -> None:
        with pytest.raises(PrivacyModeError):
            check_privacy("api", "local")

    def test_local_backends_allowed(self) -> None:
        check_privacy("faster", "local")
        check_privacy("mlx", "local")
        check_privacy("api", "hybrid")


class TestTranscribeAudio:
    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(TranscriptionError, match="not found"):
            asyncio.run(transcribe_audio(tmp_path / "missing.mp3"))

    def test_privacy_refusal_wrapped(self, tmp_path: Path) -> None:
        audio = tmp_path / "a.mp3"
        audio.write_bytes(b"ID3")
        with pytest.raises(TranscriptionError) as excinfo:
            asyncio.run(transcribe_audio(audio, backend="api", privacy_mode="local"))
        assert isinstance(excinfo.value.__cause__, PrivacyModeError)

    def test_unknown_backend(self, tmp_path: Path) -> None:
        audio = tmp_path / "a.mp3"
        audio.write_bytes(b"ID3")
        with pytest.raises(TranscriptionError, match="Unknown backend"):
            asyncio.run(transcribe_audio(audio, backend="cpp"))

    def test_api_backend(self, tmp_path: Path, monkeypatch, sample_whisper_response: dict) -> None:
        seen = {}

        async def fake_api(audio_path, model, language, timeout):
            seen.update(model=model, language=language)
            return sample_whisper_response

        monkeypatch.setattr("vidgist.transcribe.engine._transcribe_api", fake_api)
        audio = tmp_path / "a.mp3"
        audio.write_bytes(b"ID3")
        transcript = asyncio.run(transcribe_audio(audio, model="whisper-1", language="en"))
        assert seen == {"model": "whisper-1", "language": "en"}
        assert len(transcript.segments) == 2


class TestTranscriber:
    def _asset(self, scratch_root: Path):
        scratch = ScratchSpace(scratch_root)
        asset = scratch.allocate(AssetKind.AUDIO, ".mp3")
        asset.path.write_bytes(b"ID3 audio")
        return scratch, asset

    def test_releases_asset_on_success(
        self, scratch_root: Path, monkeypatch, sample_whisper_response: dict
    ) -> None:
        async def fake_api(audio_path, model, language, timeout):
            return sample_whisper_response

        monkeypatch.setattr("vidgist.transcribe.engine._transcribe_api", fake_api)
        scratch, asset = self._asset(scratch_root)
        transcript = asyncio.run(Transcriber().transcribe(asset, scratch))
        assert transcript.full_text
        assert not asset.path.exists()
        assert scratch.assets == []

    def test_releases_asset_on_failure(self, scratch_root: Path, monkeypatch) -> None:
        async def failing_api(audio_path, model, language, timeout):
            raise RuntimeError("500 Internal Server Error")

        monkeypatch.setattr("vidgist.transcribe.engine._transcribe_api", failing_api)
        scratch, asset = self._asset(scratch_root)
        with pytest.raises(TranscriptionError, match="500"):
            asyncio.run(Transcriber().transcribe(asset, scratch))
        assert list(scratch_root.iterdir()) == []
