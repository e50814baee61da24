"""
vidgist.config - YAML config loading, profile merging, validation.

Handles loading vidgist.yaml, applying profile defaults, and validating
all pipeline parameters.
"""

from __future__ import annotations

import re
import tempfile
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_FILENAME = "vidgist.yaml"

CLOUD_WHISPER_BACKENDS = {"api"}
CLOUD_VISION_BACKENDS = {"openai", "claude", "gemini"}
MAX_FRAME_COUNT = 60


def default_scratch_dir() -> Path:
    return Path(tempfile.gettempdir()) / "vidgist"


class VidgistConfig(BaseModel):
    """Resolved configuration for the video ingestion pipeline."""

    profile: str = "cloud"
    privacy_mode: str = "hybrid"

    scratch_dir: Path = Field(default_factory=default_scratch_dir)
    timeout_seconds: float = Field(default=900.0, gt=0.0)

    frame_count: int = Field(default=10, ge=0, le=MAX_FRAME_COUNT)
    frame_size: str = "1280x720"
    frame_concurrency: int = Field(default=3, ge=1, le=8)

    audio_sample_rate: int = Field(default=16000, gt=0)
    audio_bitrate_kbps: int = Field(default=128, gt=0)

    whisper_backend: str = "api"
    whisper_model: str = "whisper-1"
    whisper_language: str | None = None

    vision_backend: str = "openai"
    vision_model: str = "gpt-4o"
    vision_max_tokens: int = Field(default=300, gt=0)
    vision_timeout: int = Field(default=120, gt=0)
    vision_max_retries: int = Field(default=1, ge=1)

    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"

    config_path: Path | None = None

    @field_validator("privacy_mode")
    @classmethod
    def validate_privacy_mode(cls, v: str) -> str:
        valid = {"local", "hybrid"}
        if v not in valid:
            raise ValueError(f"privacy_mode must be one of: {valid}")
        return v

    @field_validator("whisper_backend")
    @classmethod
    def validate_whisper_backend(cls, v: str) -> str:
        valid = {"api", "faster", "mlx"}
        if v not in valid:
            raise ValueError(f"whisper_backend must be one of: {valid}")
        return v

    @field_validator("vision_backend")
    @classmethod
    def validate_vision_backend(cls, v: str) -> str:
        valid = {"ollama", "lmstudio", "openai", "claude", "gemini"}
        if v not in valid:
            raise ValueError(f"vision_backend must be one of: {valid}")
        return v

    @field_validator("profile")
    @classmethod
    def validate_profile(cls, v: str) -> str:
        if v not in BUILTIN_PROFILES:
            raise ValueError(f"profile must be one of: {set(BUILTIN_PROFILES)}")
        return v

    @field_validator("frame_size")
    @classmethod
    def validate_frame_size(cls, v: str) -> str:
        if not re.fullmatch(r"\d+x\d+", v):
            raise ValueError("frame_size must look like WIDTHxHEIGHT, e.g. 1280x720")
        return v

    @property
    def frame_dimensions(self) -> tuple[int, int]:
        width, height = self.frame_size.split("x")
        return int(width), int(height)


BUILTIN_PROFILES: dict[str, dict[str, Any]] = {
    "cloud": {
        "privacy_mode": "hybrid",
        "whisper_backend": "api",
        "whisper_model": "whisper-1",
        "vision_backend": "openai",
        "vision_model": "gpt-4o",
    },
    "local": {
        "privacy_mode": "local",
        "whisper_backend": "faster",
        "whisper_model": "medium",
        "vision_backend": "ollama",
        "vision_model": "llava:13b",
        "frame_concurrency": 1,
    },
}


def load_profile(name: str) -> dict[str, Any]:
    """Load a built-in profile by name."""
    if name in BUILTIN_PROFILES:
        return BUILTIN_PROFILES[name].copy()
    raise ValueError(f"Unknown profile: {name}")


def merge_config(config: dict[str, Any], profile: dict[str, Any]) -> dict[str, Any]:
    """Merge file config with profile defaults. File config takes precedence."""
    merged = profile.copy()
    for key, value in config.items():
        if value is not None:
            merged[key] = value
    return merged


def find_config_file(start: Path | None = None) -> Path | None:
    """Find vidgist.yaml in the given directory or any of its parents."""
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.exists():
            return candidate
        if current == current.parent:
            return None
        current = current.parent


def load_config(config_file: Path | None = None) -> VidgistConfig:
    """Load and validate configuration.

    Args:
        config_file: Explicit path to a YAML config. When None, vidgist.yaml
            is searched for from the working directory upwards and the
            built-in defaults are used if none is found.

    Raises:
        FileNotFoundError: If an explicit config_file does not exist
        ConfigError: If the file or a profile fails validation
    """
    from pydantic import ValidationError

    from vidgist.exceptions import ConfigError

    if config_file is not None and not config_file.exists():
        raise FileNotFoundError(f"No config file found at {config_file}")

    path = config_file or find_config_file()
    raw_config: dict[str, Any] = {}
    if path is not None:
        with open(path) as f:
            raw_config = yaml.safe_load(f) or {}
        if not isinstance(raw_config, dict):
            raise ConfigError(f"{path} must contain a YAML mapping")

    try:
        profile = load_profile(raw_config.get("profile", "cloud"))
        merged = merge_config(raw_config, profile)
        merged["config_path"] = path
        return VidgistConfig(**merged)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def create_default_config(profile: str = "cloud") -> dict[str, Any]:
    """Create a default config dict for a new vidgist.yaml."""
    defaults: dict[str, Any] = {
        "profile": profile,
        "frame_count": 10,
        "frame_size": "1280x720",
        "timeout_seconds": 900,
    }
    return merge_config(defaults, load_profile(profile))


def write_config(config: dict[str, Any], path: Path) -> None:
    """Write configuration to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)
