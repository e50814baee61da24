"""
vidgist.vision.client - Vision model abstraction using litellm.

Provides a unified interface for Ollama, LM Studio, OpenAI, Claude and
Gemini vision models with privacy mode enforcement and retry logic.
"""

from __future__ import annotations

import asyncio
import base64
from pathlib import Path
from typing import Any

from vidgist.exceptions import PrivacyModeError, VisionAnalysisError

FRAME_INSTRUCTION = (
    "Analyze this video frame and extract any important visual information, text, "
    "charts, diagrams, or key visual elements that should not be missed in a summary. "
    'Quote any readable on-screen text exactly, in double quotes, like "this".'
)

IMAGE_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}


class VisionClient:
    """Vision model client with privacy mode enforcement and retry logic."""

    def __init__(
        self,
        backend: str = "openai",
        model: str = "gpt-4o",
        privacy_mode: str = "hybrid",
        max_tokens: int = 300,
        timeout: int = 120,
        max_retries: int = 1,
        retry_delay: float = 2.0,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self.backend = backend
        self.model = model
        self.privacy_mode = privacy_mode
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._cloud_backends = {"openai", "claude", "gemini"}
        self._token_usage = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}

    def _get_model_string(self) -> str:
        """Get the model string for litellm based on backend."""
        if self.backend == "ollama":
            return f"ollama/{self.model}"
        elif self.backend == "lmstudio":
            return f"openai/{self.model}"
        elif self.backend == "claude":
            return f"anthropic/{self.model}"
        elif self.backend == "gemini":
            return f"gemini/{self.model}"
        return self.model

    def _api_base(self) -> str | None:
        if self.backend == "ollama":
            return "http://localhost:11434"
        elif self.backend == "lmstudio":
            return "http://localhost:1234/v1"
        return None

    def _check_privacy(self) -> None:
        """Check if cloud API is allowed in current privacy mode."""
        if self.privacy_mode == "local" and self.backend in self._cloud_backends:
            raise PrivacyModeError(
                f"Cloud vision backend '{self.backend}' not allowed in local privacy mode. "
                f"Set privacy_mode: hybrid in vidgist.yaml to enable cloud APIs."
            )

    def build_messages(self, image_path: Path, instruction: str) -> list[dict[str, Any]]:
        """Build a single user message carrying the instruction and the image."""
        mime = IMAGE_MIME_TYPES.get(image_path.suffix.lower(), "image/png")
        encoded = base64.b64encode(image_path.read_bytes()).decode("ascii")
        return [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": instruction},
                    {"type": "image_url", "image_url": {"url": f"data:{mime};base64,{encoded}"}},
                ],
            }
        ]

    async def describe_image(self, image_path: Path, instruction: str = FRAME_INSTRUCTION) -> str:
        """Send one image to the vision model and return its description.

        Args:
            image_path: Path to a still image
            instruction: Text prompt sent alongside the image

        Returns:
            Free-text description

        Raises:
            VisionAnalysisError: If the request fails after all retries or the
                response carries no content
        """
        try:
            self._check_privacy()
        except PrivacyModeError as e:
            raise VisionAnalysisError(str(e)) from e

        try:
            import litellm
        except ImportError as e:
            raise VisionAnalysisError("litellm not installed. Install with: pip install litellm") from e

        litellm.telemetry = False

        try:
            messages = self.build_messages(image_path, instruction)
        except OSError as e:
            raise VisionAnalysisError(f"Cannot read frame {image_path.name}: {e}") from e

        model = self._get_model_string()
        last_error: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                kwargs: dict[str, Any] = {
                    "model": model,
                    "messages": messages,
                    "max_tokens": self.max_tokens,
                    "timeout": self.timeout,
                }
                api_base = self._api_base()
                if api_base:
                    kwargs["api_base"] = api_base

                response = await litellm.acompletion(**kwargs)
                self._record_usage(response)
                return _response_content(response)

            except VisionAnalysisError:
                raise
            except Exception as e:
                last_error = e
                if attempt < self.max_retries - 1:
                    delay = self.retry_delay * (2 if "rate limit" in str(e).lower() else 1)
                    await asyncio.sleep(delay)

        raise VisionAnalysisError(
            f"Vision request failed after {self.max_retries} attempt(s): {last_error}"
        ) from last_error

    def _record_usage(self, response: Any) -> None:
        usage = getattr(response, "usage", None)
        if usage:
            self._token_usage["prompt_tokens"] += getattr(usage, "prompt_tokens", 0) or 0
            self._token_usage["completion_tokens"] += getattr(usage, "completion_tokens", 0) or 0
            self._token_usage["total_tokens"] += getattr(usage, "total_tokens", 0) or 0

    def get_token_usage(self) -> dict[str, int]:
        """Get cumulative token usage."""
        return self._token_usage.copy()


def _response_content(response: Any) -> str:
    choices = getattr(response, "choices", None) or []
    if not choices:
        raise VisionAnalysisError("Empty response from vision model")
    message = getattr(choices[0], "message", None)
    if message is None:
        raise VisionAnalysisError("No message in vision model response")
    content = getattr(message, "content", None)
    if not content:
        raise VisionAnalysisError("No content in vision model message")
    return content


def create_client_from_config(config: Any) -> VisionClient:
    """Create a VisionClient from VidgistConfig."""
    return VisionClient(
        backend=config.vision_backend,
        model=config.vision_model,
        privacy_mode=config.privacy_mode,
        max_tokens=config.vision_max_tokens,
        timeout=config.vision_timeout,
        max_retries=config.vision_max_retries,
    )
