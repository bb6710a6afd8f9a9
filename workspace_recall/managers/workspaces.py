"""Workspace listing, lookup, and deletion for one editor profile.

Loads every source independently, hands the raw entries to the reconciler,
and raises ``AggregateFailure`` only when not a single source could be read.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path
from typing import TypeVar

from loguru import logger

from workspace_recall.engine.deletion import DeletionEngine
from workspace_recall.engine.filters import filter_records
from workspace_recall.engine.normalizer import normalize
from workspace_recall.engine.parser import parse
from workspace_recall.engine.reconciler import reconcile
from workspace_recall.errors import AggregateFailure, WorkspaceRecallError
from workspace_recall.models.entries import ExternalEntry, RecentEntry, StorageEntry
from workspace_recall.models.workspace import WorkspaceRecord
from workspace_recall.settings import RecallSettings, get_settings
from workspace_recall.store.base import ExternalEditorStore, KeyValueStoreOpener, StorageScanner
from workspace_recall.store.external import ZedWorkspaceStore
from workspace_recall.store.kv import SqliteKeyValueStore, read_recent_list
from workspace_recall.store.profiles import default_zed_db_dir, expand_tilde
from workspace_recall.store.storage import WorkspaceStorageScanner

__all__ = ["delete_records", "find_record", "list_records", "parse", "search_records"]

T = TypeVar("T")


class _SourceLoader:
    """Runs source loaders, remembering which failed and why."""

    def __init__(self) -> None:
        self.errors: list[WorkspaceRecallError] = []
        self.succeeded = 0

    def load(self, label: str, loader: Callable[[], list[T]]) -> list[T]:
        try:
            entries = loader()
        except WorkspaceRecallError as exc:
            logger.warning("Skipping {}: {}", label, exc)
            self.errors.append(exc)
            return []
        self.succeeded += 1
        logger.info("Loaded {} entries from {}", len(entries), label)
        return entries


def _load_recent_entries(root: Path, locator: str, opener: KeyValueStoreOpener) -> list[RecentEntry]:
    with opener(root / locator) as store:
        document = read_recent_list(store, locator)
    if document is None:
        return []
    return [RecentEntry(entry=e, locator=locator) for e in document["entries"] if isinstance(e, dict)]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def list_records(
    root: str | Path,
    *,
    settings: RecallSettings | None = None,
    include_external: bool | None = None,
    scanner: StorageScanner | None = None,
    store_opener: KeyValueStoreOpener = SqliteKeyValueStore.open,
    external_store: ExternalEditorStore | None = None,
) -> list[WorkspaceRecord]:
    """All workspaces known to the profile at *root*, most recent first.

    Raises ``AggregateFailure`` if every consulted source failed.
    """
    settings = settings or get_settings()
    root = expand_tilde(root)
    if include_external is None:
        include_external = settings.include_external
    logger.info("Getting workspaces from: {}", root)

    scanner = scanner or WorkspaceStorageScanner(root, settings.storage_glob)
    sources = _SourceLoader()

    storage: list[StorageEntry] = sources.load("workspace storage", lambda: list(scanner.scan()))
    primary: list[RecentEntry] = sources.load(
        settings.primary_database,
        lambda: _load_recent_entries(root, settings.primary_database, store_opener),
    )
    secondary: list[RecentEntry] = sources.load(
        settings.secondary_database,
        lambda: _load_recent_entries(root, settings.secondary_database, store_opener),
    )

    external: list[ExternalEntry] = []
    if include_external:
        store = external_store or ZedWorkspaceStore(settings.zed_db_dir or default_zed_db_dir())
        external = sources.load("external editor", lambda: list(store.scan()))

    if sources.succeeded == 0:
        raise AggregateFailure(sources.errors)

    records = reconcile(storage, primary, secondary, external, policy=settings.match_policy)
    for record in records:
        record.parse_path()

    logger.info("Found {} workspaces in profile", len(records))
    return records


def search_records(root: str | Path, query: str, **kwargs: object) -> list[WorkspaceRecord]:
    """``list_records`` narrowed by a filter query (see ``engine.filters``)."""
    records = list_records(root, **kwargs)  # type: ignore[arg-type]
    matched = filter_records(records, query)
    logger.info("Found {} matching workspaces", len(matched))
    return matched


def find_record(records: Iterable[WorkspaceRecord], id_or_path: str) -> WorkspaceRecord | None:
    """Look a record up by id, canonical path, or any spelling that normalizes to it."""
    canonical = normalize(id_or_path)
    for record in records:
        if id_or_path in (record.id, record.path) or record.path == canonical:
            return record
    return None


def delete_records(root: str | Path, records: Iterable[WorkspaceRecord]) -> bool:
    """Remove *records* from every store of the profile at *root*."""
    return DeletionEngine(expand_tilde(root)).delete(records)
