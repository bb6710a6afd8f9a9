"""Unified workspace record and its provenance.

A ``WorkspaceRecord`` is the reconciled view of one project across every
store that mentions it.  Each contributing store is tracked as a ``Source``
so that deletion can undo the reconciliation store by store.
"""

from __future__ import annotations

from collections.abc import Callable

from pydantic import BaseModel, ConfigDict, Field

from workspace_recall.models.enums import SourceKind, WorkspaceType
from workspace_recall.models.path_info import WorkspacePathInfo


class Source(BaseModel):
    """Provenance tag.  Compares and hashes structurally."""

    model_config = ConfigDict(frozen=True)

    kind: SourceKind
    locator: str

    @classmethod
    def storage_file(cls, locator: str) -> Source:
        """Per-project metadata file, e.g. ``workspaceStorage/<id>/workspace.json``."""
        return cls(kind=SourceKind.STORAGE, locator=locator)

    @classmethod
    def database_entry(cls, locator: str) -> Source:
        """Recent list inside a key-value store, e.g. ``User/state.vscdb``."""
        return cls(kind=SourceKind.DATABASE, locator=locator)

    @classmethod
    def external_channel(cls, name: str) -> Source:
        """Third-party editor database, identified by release channel."""
        return cls(kind=SourceKind.EXTERNAL, locator=name)

    def __str__(self) -> str:
        return f"{self.kind.value.capitalize()}({self.locator})"


class WorkspaceRecord(BaseModel):
    """Reconciled workspace entity."""

    id: str
    name: str | None = None
    path: str = Field(description="Canonical path, used as the cross-source matching key")
    last_used: int = Field(default=0, description="Epoch milliseconds")
    sources: list[Source] = Field(default_factory=list)
    parsed_info: WorkspacePathInfo | None = None

    # -- Provenance ------------------------------------------------------------

    def add_source(self, source: Source) -> bool:
        """Append *source* unless an identical one is already present."""
        if source in self.sources:
            return False
        self.sources.append(source)
        return True

    def sources_of(self, kind: SourceKind) -> list[Source]:
        return [s for s in self.sources if s.kind == kind]

    @property
    def storage_locator(self) -> str | None:
        storage = self.sources_of(SourceKind.STORAGE)
        return storage[0].locator if storage else None

    # -- Parsed view -----------------------------------------------------------

    def parse_path(self, is_file: Callable[[str], bool] | None = None) -> WorkspacePathInfo | None:
        """Parse ``path`` once and cache the result.  ``None`` if unparsable."""
        if self.parsed_info is None:
            from workspace_recall.engine.parser import parse
            from workspace_recall.errors import ParseError

            try:
                self.parsed_info = parse(self.path, is_file=is_file)
            except ParseError:
                return None
        return self.parsed_info

    def label(self) -> str:
        """Human readable label: name, parsed label, ``user@host:port: path``, or path."""
        if self.name:
            return self.name

        info = self.parse_path()
        if info is None:
            return self.path
        if info.label:
            return info.label

        if info.remote_host:
            remote = info.remote_host
            if info.remote_user:
                remote = f"{info.remote_user}@{remote}"
            if info.remote_port is not None:
                remote = f"{remote}:{info.remote_port}"
            return f"{remote}: {info.path}"

        return info.path

    def type_name(self) -> str:
        info = self.parse_path()
        return (info.workspace_type if info else WorkspaceType.FOLDER).value

    def is_remote(self) -> bool:
        info = self.parse_path()
        return info is not None and info.is_remote
