"""Unit tests for DeletionEngine.

Database deletion is exercised both against an in-memory store (to count
writes) and against real SQLite files under ``tmp_path``.
"""

from __future__ import annotations

import json
from pathlib import Path

from workspace_recall.engine.deletion import DeletionEngine
from workspace_recall.models.workspace import Source, WorkspaceRecord
from workspace_recall.store.base import RECENT_LIST_KEY, RECENT_LIST_TABLE

PRIMARY = "User/state.vscdb"


class MemoryStore:
    """In-memory ``KeyValueStore`` that records every write."""

    def __init__(self, value: str | None) -> None:
        self.values = {} if value is None else {RECENT_LIST_KEY: value}
        self.writes: list[str] = []
        self.closed = False

    def has_table(self, name: str) -> bool:
        return name == RECENT_LIST_TABLE

    def read(self, key: str) -> str | None:
        return self.values.get(key)

    def write(self, key: str, value: str) -> int:
        self.writes.append(value)
        self.values[key] = value
        return 1

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> MemoryStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _record(path: str, *sources: Source) -> WorkspaceRecord:
    return WorkspaceRecord(id="r1", path=path, sources=list(sources))


def test_delete_nothing_succeeds(tmp_path: Path) -> None:
    assert DeletionEngine(tmp_path).delete([]) is True


def test_missing_storage_directory_is_success(profile: Path) -> None:
    record = _record("/home/u/p", Source.storage_file("workspaceStorage/gone/workspace.json"))
    assert DeletionEngine(profile).delete([record]) is True


def test_storage_directory_removed(profile: Path, add_storage) -> None:
    directory = add_storage("abc", "file:///home/u/p")
    (directory / "state.vscdb").write_bytes(b"extra")

    record = _record("/home/u/p", Source.storage_file("workspaceStorage/abc/workspace.json"))
    assert DeletionEngine(profile).delete([record]) is True
    assert not directory.exists()


def test_malformed_storage_locator_fails(profile: Path) -> None:
    record = _record("/home/u/p", Source.storage_file("elsewhere.json"))
    assert DeletionEngine(profile).delete([record]) is False


def test_matching_entries_removed_with_single_write(profile: Path) -> None:
    entries = [
        {"folderUri": "file:///home/u/p"},
        {"folderUri": "file:///home/u/other"},
        {"folderUri": "file:///home/u/p/"},
        {"fileUri": "file:///home/u/p"},
    ]
    store = MemoryStore(json.dumps({"entries": entries}))
    engine = DeletionEngine(profile, store_opener=lambda _: store)

    assert engine.delete([_record("/home/u/p", Source.database_entry(PRIMARY))]) is True
    assert len(store.writes) == 1
    remaining = json.loads(store.writes[0])["entries"]
    assert remaining == [{"folderUri": "file:///home/u/other"}, {"fileUri": "file:///home/u/p"}]
    assert store.closed


def test_no_match_means_no_write(profile: Path) -> None:
    store = MemoryStore(json.dumps({"entries": [{"folderUri": "/elsewhere"}]}))
    engine = DeletionEngine(profile, store_opener=lambda _: store)

    assert engine.delete([_record("/home/u/p", Source.database_entry(PRIMARY))]) is True
    assert store.writes == []


def test_missing_key_is_success(profile: Path) -> None:
    store = MemoryStore(None)
    engine = DeletionEngine(profile, store_opener=lambda _: store)
    assert engine.delete([_record("/home/u/p", Source.database_entry(PRIMARY))]) is True


def test_corrupt_list_is_left_untouched(profile: Path) -> None:
    store = MemoryStore("{not json")
    engine = DeletionEngine(profile, store_opener=lambda _: store)

    assert engine.delete([_record("/home/u/p", Source.database_entry(PRIMARY))]) is True
    assert store.writes == []
    assert store.values[RECENT_LIST_KEY] == "{not json"


def test_missing_database_file_is_success(profile: Path) -> None:
    record = _record("/home/u/p", Source.database_entry(PRIMARY))
    assert DeletionEngine(profile).delete([record]) is True


def test_external_sources_are_skipped(profile: Path) -> None:
    engine = DeletionEngine(profile)
    record = _record("/home/u/p", Source.external_channel("0-stable"))

    assert engine.delete_source(record, record.sources[0]) is False
    assert engine.delete([record]) is True


def test_sqlite_round_trip(profile: Path, add_storage, add_recent, read_entries) -> None:
    directory = add_storage("abc", "file:///home/u/p")
    db_path = add_recent(
        [
            {"folderUri": "file:///home/u/p", "label": "p"},
            {"folderUri": "file:///home/u/keep"},
        ]
    )

    record = _record(
        "/home/u/p",
        Source.storage_file("workspaceStorage/abc/workspace.json"),
        Source.database_entry(PRIMARY),
    )
    assert DeletionEngine(profile).delete([record]) is True

    assert not directory.exists()
    assert read_entries(db_path) == [{"folderUri": "file:///home/u/keep"}]


def test_one_failing_source_does_not_stop_the_rest(profile: Path, add_recent, read_entries) -> None:
    db_path = add_recent([{"folderUri": "/home/u/p"}])
    record = _record(
        "/home/u/p",
        Source.storage_file("bogus"),
        Source.database_entry(PRIMARY),
    )

    assert DeletionEngine(profile).delete([record]) is False
    assert read_entries(db_path) == []
