"""
vidgist.io - Saving and loading extracted content.

Downstream generators read the JSON written by `vidgist analyze --output`.
"""

from __future__ import annotations

import json
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import IO, Any

from pydantic import ValidationError as PydanticValidationError

from vidgist.exceptions import ValidationError
from vidgist.models import ExtractedContent


def _atomic_write(path: Path, write: Callable[[IO[str]], None]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w", encoding="utf-8", dir=path.parent, delete=False, suffix=".tmp"
    ) as tmp:
        tmp_path = Path(tmp.name)
        try:
            write(tmp)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise
    tmp_path.replace(path)


def read_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def write_json(path: Path, data: Any, indent: int = 2) -> None:
    """Write data as pretty JSON; the file is replaced only once fully written."""
    _atomic_write(path, lambda f: json.dump(data, f, indent=indent, ensure_ascii=False))


def save_content(path: Path, content: ExtractedContent) -> None:
    write_json(path, content.model_dump(mode="json"))


def load_content(path: Path) -> ExtractedContent:
    """Load content saved by save_content.

    Raises:
        FileNotFoundError: If path doesn't exist
        ValidationError: If the file is not valid extracted content
    """
    try:
        return ExtractedContent.model_validate(read_json(path))
    except json.JSONDecodeError as e:
        raise ValidationError(f"{path} is not valid JSON: {e}") from e
    except PydanticValidationError as e:
        raise ValidationError(f"{path} is not extracted content: {e}") from e


def save_text(path: Path, content: ExtractedContent) -> None:
    """Write the canonical text rendering of content."""
    _atomic_write(path, lambda f: f.write(content.to_text() + "\n"))
