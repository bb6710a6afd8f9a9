"""Raw per-source entries, as produced by the store collaborators.

These carry just enough structure for the reconciler; interpretation of the
payloads (which JSON field holds the identity path, how a remote identity is
synthesized) lives in ``engine.reconciler``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class StorageEntry(BaseModel):
    """One ``workspace.json`` document from the workspace storage tree."""

    raw: str = Field(description="Undecoded JSON document")
    locator: str = Field(description="e.g. workspaceStorage/<id>/workspace.json")
    mtime_ms: int = 0


class RecentEntry(BaseModel):
    """One element of a serialized recently-opened list."""

    entry: dict[str, Any]
    locator: str = Field(description="Store path relative to the profile root")


class ExternalEntry(BaseModel):
    """One row of the external editor's workspace table."""

    workspace_id: str
    paths: str | None = None
    timestamp_ms: int = 0
    channel: str
    remote_kind: str | None = None
    remote_host: str | None = None
    remote_port: int | None = Field(default=None, ge=0, le=65535)
    remote_user: str | None = None

    @property
    def is_remote(self) -> bool:
        return self.remote_kind is not None or self.remote_host is not None
