"""Workspace storage scanner.

The editor keeps one directory per opened project::

    {profile}/User/workspaceStorage/{id}/workspace.json

where ``workspace.json`` holds the project's folder URI.  The directory
name is the record id; the locator recorded as provenance is the document
path relative to ``{profile}/User``.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from loguru import logger

from workspace_recall.errors import SourceUnavailable
from workspace_recall.models.entries import StorageEntry

STORAGE_DIR = "workspaceStorage"
STORAGE_DOCUMENT = "workspace.json"


class WorkspaceStorageScanner:
    """``StorageScanner`` over ``{profile}/User/workspaceStorage``."""

    def __init__(self, profile_root: str | Path, pattern: str = f"*/{STORAGE_DOCUMENT}") -> None:
        self._user_dir = Path(profile_root) / "User"
        self._pattern = pattern

    @property
    def base(self) -> Path:
        return self._user_dir / STORAGE_DIR

    def scan(self) -> Iterator[StorageEntry]:
        if not self.base.is_dir():
            raise SourceUnavailable(str(self.base), "workspace storage directory does not exist")

        for path in sorted(self.base.glob(self._pattern)):
            logger.debug("Reading workspace file: {}", path)
            try:
                mtime_ms = int(path.stat().st_mtime * 1000)
                raw = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Failed to read workspace file {}: {}", path, exc)
                continue

            yield StorageEntry(
                raw=raw,
                locator=path.relative_to(self._user_dir).as_posix(),
                mtime_ms=mtime_ms,
            )


def storage_id(locator: str) -> str | None:
    """Extract ``{id}`` from ``workspaceStorage/{id}/workspace.json``."""
    parts = locator.split("/")
    if len(parts) >= 2 and parts[0] == STORAGE_DIR and parts[1]:
        return parts[1]
    return None


def storage_dir(profile_root: str | Path, locator: str) -> Path | None:
    """Directory backing a storage locator, or ``None`` if the locator is malformed."""
    workspace_id = storage_id(locator)
    if workspace_id is None:
        return None
    return Path(profile_root) / "User" / STORAGE_DIR / workspace_id
