"""
vidgist.scratch - Run-scoped temporary files.

Every pipeline run owns a ScratchSpace. Assets are named after the run id
so concurrent runs sharing one scratch directory never collide, and
purge() removes whatever a run still owns on any exit path.
"""

from __future__ import annotations

import uuid
from pathlib import Path

from vidgist.logging import logger
from vidgist.models import AssetKind, TemporaryAsset


def new_run_id() -> str:
    return uuid.uuid4().hex[:12]


class ScratchSpace:
    """Allocates and releases the temporary assets of one pipeline run."""

    def __init__(self, root: Path, run_id: str | None = None) -> None:
        self.root = root
        self.run_id = run_id or new_run_id()
        self._assets: dict[Path, TemporaryAsset] = {}

    def __enter__(self) -> ScratchSpace:
        return self

    def __exit__(self, *exc_info) -> None:
        self.purge()

    @property
    def assets(self) -> list[TemporaryAsset]:
        return list(self._assets.values())

    def allocate(
        self,
        kind: AssetKind,
        suffix: str,
        index: int | None = None,
        offset_seconds: float | None = None,
    ) -> TemporaryAsset:
        """Reserve a unique path for a new asset. The file is not created."""
        self.root.mkdir(parents=True, exist_ok=True)
        name = f"{self.run_id}-{kind.value}"
        if index is not None:
            name += f"-{index:03d}"
        path = self.root / f"{name}{suffix}"
        asset = TemporaryAsset(
            path=path,
            kind=kind,
            owner=self.run_id,
            index=index,
            offset_seconds=offset_seconds,
        )
        self._assets[path] = asset
        return asset

    def release(self, asset: TemporaryAsset) -> None:
        """Delete an asset's file. Safe to call more than once."""
        self._assets.pop(asset.path, None)
        try:
            asset.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not delete scratch file %s: %s", asset.path, e)

    def release_all(self, assets: list[TemporaryAsset]) -> None:
        for asset in assets:
            self.release(asset)

    def purge(self) -> None:
        """Delete every file this run still owns, including stray tool output."""
        for asset in list(self._assets.values()):
            self.release(asset)
        for stray in self.owned_files():
            logger.debug("Removing stray scratch file %s", stray)
            try:
                stray.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not delete scratch file %s: %s", stray, e)

    def owned_files(self) -> list[Path]:
        """Files on disk that belong to this run."""
        if not self.root.exists():
            return []
        return sorted(self.root.glob(f"{self.run_id}-*"))
