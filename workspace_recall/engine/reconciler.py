"""Multi-source record reconciliation.

Raw entries are ingested in a fixed order:

1. workspace storage documents (baseline records, keyed by canonical path),
2. the primary key-value store's recently-opened list,
3. the secondary key-value store's recently-opened list,
4. the external editor's workspace rows.

Each entry after pass 1 is matched against the records known so far (exact
canonical key first, then path variations, see ``MatchPolicy``).  A hit is
merged into the existing record; a miss creates a new one.  The result is
sorted by ``last_used``, most recent first, ties in discovery order.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Iterable
from typing import Any

from loguru import logger

from workspace_recall.engine.normalizer import REMOTE_SCHEME, normalize, variations
from workspace_recall.models.entries import ExternalEntry, RecentEntry, StorageEntry
from workspace_recall.models.enums import MatchPolicy, WorkspaceType
from workspace_recall.models.path_info import WorkspacePathInfo
from workspace_recall.models.workspace import Source, WorkspaceRecord
from workspace_recall.store.storage import storage_id


class RecordIndex:
    """Known records, in discovery order, indexed by canonical path."""

    def __init__(self, policy: MatchPolicy = MatchPolicy.FIRST_VARIATION) -> None:
        self.policy = policy
        self.records: list[WorkspaceRecord] = []
        self._by_path: dict[str, WorkspaceRecord] = {}

    def add(self, record: WorkspaceRecord) -> None:
        self.records.append(record)
        self._by_path.setdefault(record.path, record)

    def get(self, canonical: str) -> WorkspaceRecord | None:
        return self._by_path.get(canonical)

    def match(self, raw: str, canonical: str) -> WorkspaceRecord | None:
        """Find the record *raw* refers to, according to ``policy``."""
        probes = [canonical] if self.policy == MatchPolicy.EXACT else [canonical, *variations(raw)]

        hits: list[WorkspaceRecord] = []
        seen: set[str] = set()
        for probe in probes:
            if probe in seen:
                continue
            seen.add(probe)

            record = self._by_path.get(probe)
            if record is None:
                continue
            if self.policy != MatchPolicy.MOST_RECENT:
                logger.debug("Matched {} to record {} via {}", raw, record.id, probe)
                return record
            if not any(hit is record for hit in hits):
                hits.append(record)

        if not hits:
            return None
        # max() keeps the first maximum, so the earliest probe wins ties.
        best = max(hits, key=lambda r: r.last_used)
        logger.debug("Matched {} to record {} among {} candidates", raw, best.id, len(hits))
        return best


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def reconcile(
    storage_entries: Iterable[StorageEntry] = (),
    primary_db_entries: Iterable[RecentEntry] = (),
    secondary_db_entries: Iterable[RecentEntry] = (),
    external_entries: Iterable[ExternalEntry] = (),
    *,
    policy: MatchPolicy = MatchPolicy.FIRST_VARIATION,
) -> list[WorkspaceRecord]:
    """Merge raw per-source entries into deduplicated workspace records."""
    index = RecordIndex(policy)

    count = sum(_ingest_storage(index, entry) for entry in storage_entries)
    logger.info("Loaded {} workspaces from storage", count)

    for label, entries in (("primary database", primary_db_entries), ("secondary database", secondary_db_entries)):
        count = sum(_ingest_recent(index, entry) for entry in entries)
        logger.info("Processed {} entries from the {}", count, label)

    count = sum(_ingest_external(index, entry) for entry in external_entries)
    logger.info("Processed {} entries from the external editor", count)

    records = sorted(index.records, key=lambda r: r.last_used, reverse=True)
    logger.info("Reconciled {} workspaces", len(records))
    return records


def recent_entry_identity(entry: dict[str, Any]) -> str | None:
    """Identity path of a recently-opened entry.

    ``folderUri`` for folders, ``workspace.uri`` or ``workspace.configPath``
    for workspace descriptors.  Single files (``fileUri``) have no identity
    here: they are not tracked as workspaces.
    """
    folder_uri = entry.get("folderUri")
    if isinstance(folder_uri, str):
        return folder_uri
    if isinstance(entry.get("fileUri"), str):
        return None

    workspace = entry.get("workspace")
    if isinstance(workspace, dict):
        for key in ("uri", "configPath"):
            value = workspace.get(key)
            if isinstance(value, str):
                return value
    return None


def external_identity(entry: ExternalEntry) -> str | None:
    """Identity path of an external editor row.

    Remote rows that only carry connection fields get a synthesized
    ``vscode-remote://{kind}+[user@]host[:port]/path`` identity so they share
    the key space of the other sources.
    """
    primary = _primary_path(entry.paths)

    if not entry.is_remote:
        return primary or None

    primary = primary or "/"
    if not (entry.remote_host and entry.remote_kind):
        return primary

    authority = entry.remote_host
    if entry.remote_user:
        authority = f"{entry.remote_user}@{authority}"
    if entry.remote_port is not None:
        authority = f"{authority}:{entry.remote_port}"
    if not primary.startswith("/"):
        primary = f"/{primary}"
    return f"{REMOTE_SCHEME}{entry.remote_kind}+{authority}{primary}"


# ---------------------------------------------------------------------------
# Passes
# ---------------------------------------------------------------------------


def _ingest_storage(index: RecordIndex, entry: StorageEntry) -> bool:
    try:
        document = json.loads(entry.raw)
    except json.JSONDecodeError as exc:
        logger.warning("Failed to parse workspace file {}: {}", entry.locator, exc)
        return False
    if not isinstance(document, dict):
        logger.warning("Unexpected workspace file shape in {}", entry.locator)
        return False

    folder = document.get("folder")
    if not isinstance(folder, str):
        folder = document.get("workspace")
    if not isinstance(folder, str):
        logger.debug("No folder in workspace file {}", entry.locator)
        return False

    explicit = document.get("lastUsed")
    last_used = explicit if isinstance(explicit, int) and not isinstance(explicit, bool) else entry.mtime_ms
    canonical = normalize(folder)
    source = Source.storage_file(entry.locator)

    existing = index.get(canonical)
    if existing is not None:
        logger.debug("Storage entry {} duplicates record {}", entry.locator, existing.id)
        _merge(existing, name=None, last_used=last_used, source=source)
        return True

    index.add(
        WorkspaceRecord(
            id=storage_id(entry.locator) or entry.locator,
            path=canonical,
            last_used=last_used,
            sources=[source],
        )
    )
    return True


def _ingest_recent(index: RecordIndex, entry: RecentEntry) -> bool:
    path = recent_entry_identity(entry.entry)
    if path is None:
        if "fileUri" in entry.entry:
            logger.debug("Skipping file entry: {}", entry.entry.get("fileUri"))
        else:
            logger.warning("Entry has no folderUri or workspace identity: {}", entry.entry)
        return False

    name = entry.entry.get("name") or entry.entry.get("label")
    last_used = entry.entry.get("lastUsed")
    return _upsert(
        index,
        path,
        name=name if isinstance(name, str) else None,
        last_used=last_used if isinstance(last_used, int) and not isinstance(last_used, bool) else 0,
        source=Source.database_entry(entry.locator),
        id_prefix="db",
    )


def _ingest_external(index: RecordIndex, entry: ExternalEntry) -> bool:
    path = external_identity(entry)
    if path is None:
        logger.debug("Skipping external workspace {} with no paths", entry.workspace_id)
        return False

    return _upsert(
        index,
        path,
        name=None,
        last_used=entry.timestamp_ms,
        source=Source.external_channel(entry.channel),
        id_prefix="ext",
        parsed_info=_external_path_info(entry),
    )


def _upsert(
    index: RecordIndex,
    path: str,
    *,
    name: str | None,
    last_used: int,
    source: Source,
    id_prefix: str,
    parsed_info: WorkspacePathInfo | None = None,
) -> bool:
    canonical = normalize(path)
    record = index.match(path, canonical)

    if record is not None:
        _merge(record, name=name, last_used=last_used, source=source)
        return True

    logger.debug("Creating new workspace from {}: {}", source, canonical)
    index.add(
        WorkspaceRecord(
            id=f"{id_prefix}-{uuid.uuid4()}",
            name=name or None,
            path=canonical,
            last_used=last_used,
            sources=[source],
            parsed_info=parsed_info,
        )
    )
    return True


def _merge(record: WorkspaceRecord, *, name: str | None, last_used: int, source: Source) -> None:
    if name and record.name is None:
        record.name = name
    if last_used > record.last_used:
        record.last_used = last_used
    record.add_source(source)


# ---------------------------------------------------------------------------
# External editor helpers
# ---------------------------------------------------------------------------


def _primary_path(paths: str | None) -> str | None:
    """First path of a ``paths`` column (plain, newline separated, or a JSON array)."""
    if paths is None:
        return None
    value = paths.strip()
    if value.startswith("["):
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, list):
            return next((p for p in decoded if isinstance(p, str) and p), None)
    return value.splitlines()[0] if value else ""


def _external_path_info(entry: ExternalEntry) -> WorkspacePathInfo | None:
    """Pre-parsed view for remote rows; local rows are parsed lazily."""
    if not (entry.remote_host and entry.remote_kind):
        return None

    path = _primary_path(entry.paths) or "/"
    authority = entry.remote_host
    if entry.remote_port is not None:
        authority = f"{authority}:{entry.remote_port}"
    return WorkspacePathInfo(
        original_path=path,
        workspace_type=WorkspaceType.WORKSPACE,
        remote_authority=authority,
        remote_host=entry.remote_host,
        remote_user=entry.remote_user,
        remote_port=entry.remote_port,
        path=path,
        tags=["remote", entry.remote_kind],
    )
