"""Parsed view of a single workspace path or remote URI."""

from __future__ import annotations

from pydantic import BaseModel, Field

from workspace_recall.models.enums import WorkspaceType


class WorkspacePathInfo(BaseModel):
    """Structured metadata extracted from a raw path/URI.

    ``workspace_type`` is ``WORKSPACE`` whenever ``remote_authority`` is set;
    ``FILE`` and ``FOLDER`` only describe local paths.
    """

    original_path: str
    workspace_type: WorkspaceType = WorkspaceType.FOLDER
    remote_authority: str | None = None
    remote_host: str | None = None
    remote_user: str | None = None
    remote_port: int | None = Field(default=None, ge=0, le=65535)
    path: str
    container_path: str | None = Field(default=None, description="Path before a hostPath override")
    label: str | None = None
    tags: list[str] = Field(default_factory=list)

    @property
    def is_remote(self) -> bool:
        return self.remote_authority is not None

    def add_tag(self, tag: str) -> None:
        if tag not in self.tags:
            self.tags.append(tag)
