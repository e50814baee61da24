"""
vidgist.validation - Dependency checks and environment validation.

Validates external tools, backends and the scratch directory before a
pipeline run.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Any

from vidgist.exceptions import DependencyError, ValidationError

FFMPEG_INSTALL_HINT = "Install with: brew install ffmpeg (macOS) or apt install ffmpeg (Linux)"


def _tool_version(path: str) -> str:
    try:
        proc = subprocess.run(
            [path, "-version"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        version_line = proc.stdout.split("\n")[0]
        return version_line.split()[2] if version_line else "unknown"
    except (subprocess.TimeoutExpired, IndexError, OSError):
        return "unknown"


def check_ffmpeg(ffmpeg: str = "ffmpeg", ffprobe: str = "ffprobe") -> dict[str, str]:
    """Check that FFmpeg and FFprobe are installed and get versions.

    Returns:
        Dict with 'ffmpeg_version' and 'ffprobe_version'

    Raises:
        DependencyError: If FFmpeg or FFprobe not found
    """
    result = {}

    ffmpeg_path = shutil.which(ffmpeg)
    if not ffmpeg_path:
        raise DependencyError("ffmpeg", "FFmpeg not found in PATH", FFMPEG_INSTALL_HINT)
    result["ffmpeg_version"] = _tool_version(ffmpeg_path)

    ffprobe_path = shutil.which(ffprobe)
    if not ffprobe_path:
        raise DependencyError("ffprobe", "FFprobe not found in PATH", FFMPEG_INSTALL_HINT)
    result["ffprobe_version"] = _tool_version(ffprobe_path)

    return result


def check_yt_dlp() -> dict[str, str]:
    """Check that yt-dlp is importable.

    Raises:
        DependencyError: If yt-dlp is missing
    """
    try:
        from yt_dlp.version import __version__
    except ImportError as e:
        raise DependencyError("yt-dlp", "yt-dlp not installed", "Install with: pip install yt-dlp") from e
    return {"yt_dlp_version": __version__}


def check_disk_space(path: Path, required_mb: int) -> dict[str, Any]:
    """Check if there's enough disk space at the given path.

    Args:
        path: Path to check (nearest existing parent is used)
        required_mb: Required space in megabytes

    Returns:
        Dict with 'available_mb', 'required_mb', 'sufficient'

    Raises:
        ValidationError: If no existing parent can be found
    """
    check_path = path
    while not check_path.exists():
        if check_path == check_path.parent:
            raise ValidationError(f"Cannot check disk space: {path} has no existing parent")
        check_path = check_path.parent

    try:
        stat = shutil.disk_usage(check_path)
    except OSError as e:
        raise ValidationError(f"Cannot check disk space: {e}") from e

    available_mb = stat.free // (1024 * 1024)
    return {
        "available_mb": available_mb,
        "required_mb": required_mb,
        "sufficient": available_mb >= required_mb,
    }


def check_scratch_dir(path: Path) -> dict[str, Any]:
    """Check the scratch directory can be created and written.

    Returns:
        Dict with 'path', 'writable' and 'leftover_files'

    Raises:
        ValidationError: If the directory cannot be created or written
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
        probe = path / ".vidgist-write-test"
        probe.write_bytes(b"")
        probe.unlink()
    except OSError as e:
        raise ValidationError(f"Scratch directory {path} is not writable: {e}") from e

    leftovers = [p.name for p in path.iterdir() if p.is_file()]
    return {"path": str(path), "writable": True, "leftover_files": leftovers}


def check_ollama_running(model: str | None = None) -> dict[str, Any]:
    """Check if Ollama server is running and optionally if a model is available.

    Args:
        model: Optional model name to check

    Returns:
        Dict with 'running', 'model_available', 'error'
    """
    import json
    import urllib.error
    import urllib.request

    try:
        req = urllib.request.Request("http://localhost:11434/api/tags", method="GET")
        with urllib.request.urlopen(req, timeout=5) as response:
            data = json.loads(response.read().decode())
            models = [m.get("name", "") for m in data.get("models", [])]
            model_available = True
            if model:
                model_available = any(model in m for m in models)
            return {
                "running": True,
                "model_available": model_available,
                "models": models,
            }
    except urllib.error.URLError:
        return {
            "running": False,
            "model_available": False,
            "error": "Ollama server not running. Start with: ollama serve",
        }
    except (OSError, ValueError) as e:
        return {
            "running": False,
            "model_available": False,
            "error": str(e),
        }


def validate_backends(config: Any) -> dict[str, Any]:
    """Validate transcription and vision backend settings.

    Args:
        config: VidgistConfig

    Returns:
        Dict with 'valid', 'warnings', 'errors'
    """
    from vidgist.config import CLOUD_VISION_BACKENDS, CLOUD_WHISPER_BACKENDS

    result: dict[str, Any] = {"valid": True, "warnings": [], "errors": []}

    if config.privacy_mode == "local":
        if config.whisper_backend in CLOUD_WHISPER_BACKENDS:
            result["errors"].append(
                f"whisper_backend '{config.whisper_backend}' is a cloud API; not allowed in local privacy mode"
            )
        if config.vision_backend in CLOUD_VISION_BACKENDS:
            result["errors"].append(
                f"vision_backend '{config.vision_backend}' is a cloud API; not allowed in local privacy mode"
            )

    if config.vision_backend == "ollama":
        ollama_status = check_ollama_running(config.vision_model)
        if not ollama_status["running"]:
            result["errors"].append(ollama_status.get("error", "Ollama not running"))
        elif not ollama_status["model_available"]:
            result["warnings"].append(
                f"Model '{config.vision_model}' may not be pulled. Run: ollama pull {config.vision_model}"
            )

    result["valid"] = not result["errors"]
    return result


def run_preflight_checks(config: Any, required_mb: int = 500) -> dict[str, Any]:
    """Run all checks needed before a pipeline run.

    Args:
        config: VidgistConfig
        required_mb: Free space wanted in the scratch directory

    Returns:
        Dict with 'passed' and per-check results under 'checks'
    """
    results: dict[str, Any] = {"passed": True, "checks": {}}

    try:
        results["checks"]["ffmpeg"] = check_ffmpeg(config.ffmpeg_path, config.ffprobe_path)
    except DependencyError as e:
        results["checks"]["ffmpeg"] = {"error": str(e), "install_hint": e.install_hint}
        results["passed"] = False

    try:
        results["checks"]["yt_dlp"] = check_yt_dlp()
    except DependencyError as e:
        results["checks"]["yt_dlp"] = {"error": str(e), "install_hint": e.install_hint}
        results["passed"] = False

    try:
        results["checks"]["scratch_dir"] = check_scratch_dir(config.scratch_dir)
        disk = check_disk_space(config.scratch_dir, required_mb)
        results["checks"]["disk_space"] = disk
        if not disk["sufficient"]:
            results["passed"] = False
    except ValidationError as e:
        results["checks"]["scratch_dir"] = {"error": str(e)}
        results["passed"] = False

    results["checks"]["backends"] = validate_backends(config)
    if results["checks"]["backends"]["errors"]:
        results["passed"] = False

    return results
