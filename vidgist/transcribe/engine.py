"""
vidgist.transcribe.engine - Whisper transcription engine.

Uses the hosted Whisper API through litellm (default) or a local Whisper
backend (faster-whisper, mlx-whisper). Produces a Transcript with
segment-level timestamps in the order the backend returned them.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from vidgist.exceptions import PrivacyModeError, TranscriptionError
from vidgist.logging import logger
from vidgist.models import TemporaryAsset, Transcript, TranscriptSegment
from vidgist.scratch import ScratchSpace

CLOUD_BACKENDS = {"api"}


def check_privacy(backend: str, privacy_mode: str) -> None:
    """Refuse cloud transcription when privacy_mode is local."""
    if privacy_mode == "local" and backend in CLOUD_BACKENDS:
        raise PrivacyModeError(
            f"Cloud transcription backend '{backend}' not allowed in local privacy mode. "
            f"Set privacy_mode: hybrid in vidgist.yaml to enable cloud APIs."
        )


async def transcribe_audio(
    audio_path: Path,
    model: str = "whisper-1",
    language: str | None = None,
    backend: str = "api",
    privacy_mode: str = "hybrid",
    timeout: int = 600,
) -> Transcript:
    """Transcribe an audio file using Whisper.

    Args:
        audio_path: Path to audio file (16kHz mono recommended)
        model: Whisper model (API model name or local model size)
        language: Language code (auto-detect if None)
        backend: Whisper backend (api, faster, mlx)
        privacy_mode: local refuses the api backend
        timeout: Request timeout for the api backend, in seconds

    Returns:
        Transcript with segments and detected language

    Raises:
        TranscriptionError: If transcription fails
    """
    if not audio_path.exists():
        raise TranscriptionError(f"Audio file not found: {audio_path}")

    try:
        check_privacy(backend, privacy_mode)
        if backend == "api":
            result = await _transcribe_api(audio_path, model, language, timeout)
        elif backend == "faster":
            result = await asyncio.to_thread(_transcribe_faster, audio_path, model, language)
        elif backend == "mlx":
            result = await asyncio.to_thread(_transcribe_mlx, audio_path, model, language)
        else:
            raise TranscriptionError(f"Unknown backend: {backend}")

        return _parse_whisper_result(result, language)

    except TranscriptionError:
        raise
    except Exception as e:
        raise TranscriptionError(f"Transcription failed: {e}") from e


async def _transcribe_api(
    audio_path: Path,
    model: str,
    language: str | None,
    timeout: int,
) -> dict[str, Any]:
    """Transcribe using the hosted Whisper API via litellm."""
    try:
        import litellm
    except ImportError as e:
        raise TranscriptionError("litellm not installed. Install with: pip install litellm") from e

    litellm.telemetry = False

    kwargs: dict[str, Any] = {
        "model": model,
        "response_format": "verbose_json",
        "timestamp_granularities": ["segment"],
        "timeout": timeout,
    }
    if language:
        kwargs["language"] = language

    with open(audio_path, "rb") as audio_file:
        response = await litellm.atranscription(file=audio_file, **kwargs)

    return _response_to_dict(response)


def _transcribe_faster(
    audio_path: Path,
    model: str,
    language: str | None,
) -> dict[str, Any]:
    """Transcribe using faster-whisper."""
    try:
        from faster_whisper import WhisperModel
    except ImportError as e:
        raise TranscriptionError(
            "faster-whisper not installed. Install with: pip install faster-whisper"
        ) from e

    model_instance = WhisperModel(model, device="auto", compute_type="auto")

    kwargs = {}
    if language:
        kwargs["language"] = language

    segments, info = model_instance.transcribe(str(audio_path), **kwargs)

    return {
        "language": info.language,
        "segments": [
            {"start": s.start, "end": s.end, "text": s.text}
            for s in segments
        ],
    }


def _transcribe_mlx(
    audio_path: Path,
    model: str,
    language: str | None,
) -> dict[str, Any]:
    """Transcribe using mlx-whisper."""
    try:
        import mlx_whisper
    except ImportError as e:
        raise TranscriptionError(
            "mlx-whisper not installed. Install with: pip install mlx-whisper"
        ) from e

    kwargs: dict[str, Any] = {"path_or_hf_repo": f"mlx-community/whisper-{model}-mlx"}
    if language:
        kwargs["language"] = language

    return mlx_whisper.transcribe(str(audio_path), **kwargs)


def _response_to_dict(response: Any) -> dict[str, Any]:
    if isinstance(response, dict):
        return response
    dump = getattr(response, "model_dump", None)
    if callable(dump):
        return dump()
    return dict(vars(response))


def _field(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def _parse_whisper_result(result: dict[str, Any], language: str | None) -> Transcript:
    """Parse a Whisper result into a Transcript.

    Segment order is kept as returned. A segment that starts before the
    previous one ends is clipped to start at that end.
    """
    segments: list[TranscriptSegment] = []
    previous_end = 0.0

    for seg in result.get("segments") or []:
        start = max(float(_field(seg, "start", 0) or 0), previous_end)
        end = max(float(_field(seg, "end", 0) or 0), start)
        text = (_field(seg, "text", "") or "").strip()
        segments.append(TranscriptSegment(start=start, end=end, text=text))
        previous_end = end

    full_text = (result.get("text") or "").strip() or None
    detected = result.get("language") or language or "unknown"
    return Transcript.from_segments(segments, full_text=full_text, language=detected)


class Transcriber:
    """Turns an Audio asset into a Transcript and deletes the asset."""

    def __init__(
        self,
        backend: str = "api",
        model: str = "whisper-1",
        language: str | None = None,
        privacy_mode: str = "hybrid",
        timeout: int = 600,
    ) -> None:
        self.backend = backend
        self.model = model
        self.language = language
        self.privacy_mode = privacy_mode
        self.timeout = timeout

    async def transcribe(self, asset: TemporaryAsset, scratch: ScratchSpace) -> Transcript:
        """Transcribe asset. The asset is released whatever the outcome.

        Raises:
            TranscriptionError: If the speech-to-text backend fails
        """
        try:
            transcript = await transcribe_audio(
                asset.path,
                model=self.model,
                language=self.language,
                backend=self.backend,
                privacy_mode=self.privacy_mode,
                timeout=self.timeout,
            )
        finally:
            scratch.release(asset)

        logger.info(
            "Transcribed %d segment(s), %.1fs, language=%s",
            len(transcript.segments),
            transcript.duration_seconds,
            transcript.language,
        )
        return transcript
