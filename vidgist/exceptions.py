"""
vidgist.exceptions - Custom exception classes.

All Vidgist-specific exceptions inherit from VidgistError.
"""

from __future__ import annotations


class VidgistError(Exception):
    """Base exception for all Vidgist errors."""

    pass


class ConfigError(VidgistError):
    """Configuration loading or validation error."""

    pass


class PrivacyModeError(ConfigError):
    """Attempted to use a cloud backend in local privacy mode."""

    pass


class UnsupportedPlatformError(VidgistError):
    """URL does not belong to a supported hosting platform."""

    def __init__(self, url: str, platform: str = "unknown"):
        self.url = url
        self.platform = platform
        super().__init__(f"Unsupported video platform '{platform}' for {url}")


class ExtractionError(VidgistError):
    """Download, transcode or frame capture error."""

    pass


class TranscriptionError(VidgistError):
    """Speech-to-text error."""

    pass


class VisionAnalysisError(VidgistError):
    """Vision analysis of a single frame failed."""

    def __init__(self, message: str, frame_index: int | None = None):
        self.frame_index = frame_index
        super().__init__(message)


class PipelineFailedError(VidgistError):
    """Both the audio and the visual branch failed."""

    def __init__(self, audio_error: BaseException, visual_error: BaseException):
        self.audio_error = audio_error
        self.visual_error = visual_error
        super().__init__(
            f"Video pipeline failed. audio: {audio_error}; visual: {visual_error}"
        )


class PipelineTimeoutError(VidgistError, TimeoutError):
    """The pipeline run exceeded its deadline."""

    def __init__(self, timeout: float | None):
        self.timeout = timeout
        super().__init__(f"Video pipeline timed out after {timeout}s")


class DependencyError(VidgistError):
    """Required dependency missing or misconfigured."""

    def __init__(self, dependency: str, message: str, install_hint: str | None = None):
        self.dependency = dependency
        self.message = message
        self.install_hint = install_hint
        super().__init__(f"{dependency}: {message}")


class ValidationError(VidgistError):
    """Environment or input validation error."""

    pass
