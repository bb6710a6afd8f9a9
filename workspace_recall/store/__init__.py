"""Store collaborators: storage scanner, key-value store, external editor store."""

from workspace_recall.store.base import ExternalEditorStore, KeyValueStore, StorageScanner
from workspace_recall.store.external import ZedWorkspaceStore
from workspace_recall.store.kv import SqliteKeyValueStore
from workspace_recall.store.storage import WorkspaceStorageScanner

__all__ = [
    "ExternalEditorStore",
    "KeyValueStore",
    "SqliteKeyValueStore",
    "StorageScanner",
    "WorkspaceStorageScanner",
    "ZedWorkspaceStore",
]
