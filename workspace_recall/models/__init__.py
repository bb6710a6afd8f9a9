"""Data models for workspace recall."""

from workspace_recall.models.entries import ExternalEntry, RecentEntry, StorageEntry
from workspace_recall.models.enums import MatchPolicy, SourceKind, WorkspaceType
from workspace_recall.models.path_info import WorkspacePathInfo
from workspace_recall.models.workspace import Source, WorkspaceRecord

__all__ = [
    "ExternalEntry",
    "MatchPolicy",
    "RecentEntry",
    "Source",
    "SourceKind",
    "StorageEntry",
    "WorkspacePathInfo",
    "WorkspaceRecord",
    "WorkspaceType",
]
