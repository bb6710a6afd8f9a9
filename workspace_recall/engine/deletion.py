"""Deletion engine: undo a reconciled record in every store that mentions it.

Per source kind:

- storage: the ``workspaceStorage/{id}`` directory is removed recursively.
  A directory that is already gone counts as removed.
- database: entries whose identity normalizes to the record's canonical
  path are dropped from the recently-opened list, and the list is written
  back once, only if something was dropped.  A missing store, table or key
  counts as removed.
- external: read-only provenance, skipped.

Failures are isolated per source and logged; ``delete`` reports whether
every source of every record was handled.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterable
from pathlib import Path

from loguru import logger

from workspace_recall.engine.normalizer import normalize
from workspace_recall.engine.reconciler import recent_entry_identity
from workspace_recall.errors import SourceCorrupt, SourceUnavailable
from workspace_recall.models.enums import SourceKind
from workspace_recall.models.workspace import Source, WorkspaceRecord
from workspace_recall.store.base import KeyValueStoreOpener
from workspace_recall.store.kv import SqliteKeyValueStore, read_recent_list, write_recent_list
from workspace_recall.store.storage import storage_dir


class DeletionError(RuntimeError):
    """A single source of a record could not be removed."""


class DeletionEngine:
    """Removes records from the stores of one profile."""

    def __init__(
        self,
        profile_root: str | Path,
        *,
        store_opener: KeyValueStoreOpener = SqliteKeyValueStore.open,
    ) -> None:
        self.profile_root = Path(profile_root)
        self._open_store = store_opener

    def delete(self, records: Iterable[WorkspaceRecord]) -> bool:
        """Remove every source of every record.  ``True`` iff all succeeded."""
        records = list(records)
        if not records:
            logger.info("No workspaces to delete")
            return True

        logger.info("Deleting {} workspaces from profile {}", len(records), self.profile_root)
        success = True
        removed = 0

        for record in records:
            logger.info("Processing workspace: {} ({})", record.id, record.path)
            for source in record.sources:
                try:
                    if self.delete_source(record, source):
                        removed += 1
                except (DeletionError, OSError) as exc:
                    logger.warning("Failed to delete {} from {}: {}", record.path, source, exc)
                    success = False

        logger.info("Deleted {} workspace sources", removed)
        return success

    def delete_source(self, record: WorkspaceRecord, source: Source) -> bool:
        """Remove *record* from one source.

        Returns ``True`` if the source was handled, ``False`` if the source
        kind is not deletable.  Raises ``DeletionError`` or ``OSError`` on
        failure.
        """
        match source.kind:
            case SourceKind.STORAGE:
                self._delete_storage(source.locator)
                return True
            case SourceKind.DATABASE:
                self._delete_database_entries(source.locator, record.path)
                return True
            case _:
                logger.debug("{} is read-only provenance, nothing to delete", source)
                return False

    # -- Storage ---------------------------------------------------------------

    def _delete_storage(self, locator: str) -> None:
        directory = storage_dir(self.profile_root, locator)
        if directory is None:
            msg = f"Could not determine storage directory for {locator}"
            raise DeletionError(msg)

        if not directory.exists():
            logger.warning("Storage directory does not exist: {}", directory)
            return

        shutil.rmtree(directory)
        logger.info("Deleted storage workspace at {}", directory)

    # -- Database --------------------------------------------------------------

    def _delete_database_entries(self, locator: str, canonical_path: str) -> None:
        db_path = self.profile_root / locator
        try:
            store = self._open_store(db_path)
        except SourceUnavailable as exc:
            logger.warning("Database unavailable, nothing to remove: {}", exc)
            return

        with store:
            try:
                document = read_recent_list(store, locator)
            except SourceCorrupt as exc:
                logger.warning("Recently-opened list is unreadable, leaving it untouched: {}", exc)
                return
            if document is None:
                return

            entries: list = document["entries"]
            matches = []
            for i, entry in enumerate(entries):
                path = recent_entry_identity(entry) if isinstance(entry, dict) else None
                if path is not None and normalize(path) == canonical_path:
                    matches.append(i)
            if not matches:
                logger.info("No matching entries for {} in {}", canonical_path, locator)
                return

            for i in sorted(matches, reverse=True):
                logger.debug("Removing entry {} from {}", i, locator)
                del entries[i]

            try:
                rows = write_recent_list(store, document)
            except SourceCorrupt as exc:
                raise DeletionError(str(exc)) from exc

        if rows > 0:
            logger.info("Removed {} entries for {} from {}", len(matches), canonical_path, locator)
        else:
            logger.warning("No rows were updated in {}", locator)

