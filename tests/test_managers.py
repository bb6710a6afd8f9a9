"""End-to-end tests for the workspace manager over a profile on disk."""

from __future__ import annotations

from pathlib import Path

import pytest

from workspace_recall.errors import AggregateFailure, SourceUnavailable
from workspace_recall.managers.workspaces import delete_records, find_record, list_records, search_records
from workspace_recall.models.enums import SourceKind
from workspace_recall.models.workspace import Source
from workspace_recall.settings import RecallSettings

M = 1_700_000_000_000


@pytest.fixture
def populated(profile: Path, add_storage, add_recent, zed_db) -> Path:
    add_storage("abc", "file:///home/u/p", mtime_ms=M)
    add_recent([{"folderUri": "file:///home/u/p", "name": "proj", "lastUsed": M + 1000}])
    add_recent(
        [
            {"folderUri": "file:///home/u/p/", "lastUsed": M + 500},
            {"workspace": {"configPath": "file:///home/u/team.code-workspace"}, "lastUsed": M - 10},
        ],
        locator="User/globalStorage/state.vscdb",
    )
    zed_db(
        [(1, "/srv/app", "2023-11-14 22:13:20", 7)],
        [(7, "ssh", "box", 22, "me")],
    )
    return profile


def test_all_sources_merged(populated: Path) -> None:
    records = list_records(populated)

    assert [r.path for r in records] == [
        "/home/u/p",
        "vscode-remote://ssh+me@box:22/srv/app",
        "/home/u/team.code-workspace",
    ]

    proj = records[0]
    assert proj.id == "abc"
    assert proj.name == "proj"
    assert proj.last_used == M + 1000
    assert proj.sources == [
        Source.storage_file("workspaceStorage/abc/workspace.json"),
        Source.database_entry("User/state.vscdb"),
        Source.database_entry("User/globalStorage/state.vscdb"),
    ]
    assert all(r.parsed_info is not None for r in records)

    remote = records[1]
    assert remote.sources == [Source.external_channel("0-stable")]
    assert remote.parsed_info.remote_host == "box"


def test_last_used_is_monotonic(populated: Path) -> None:
    records = list_records(populated)
    assert [r.last_used for r in records] == sorted((r.last_used for r in records), reverse=True)


def test_exclude_external(populated: Path) -> None:
    records = list_records(populated, include_external=False)
    assert not any(r.sources_of(SourceKind.EXTERNAL) for r in records)

    settings = RecallSettings(include_external=False)
    assert len(list_records(populated, settings=settings)) == 2


def test_all_sources_failing_raises(profile: Path) -> None:
    with pytest.raises(AggregateFailure) as exc_info:
        list_records(profile)

    assert len(exc_info.value.errors) == 4
    assert all(isinstance(e, SourceUnavailable) for e in exc_info.value.errors)


def test_disabled_external_store_is_not_consulted(profile: Path) -> None:
    with pytest.raises(AggregateFailure) as exc_info:
        list_records(profile, include_external=False)
    assert len(exc_info.value.errors) == 3


def test_one_source_is_enough(profile: Path, add_storage) -> None:
    add_storage("abc", "/home/u/p")
    records = list_records(profile)
    assert [r.id for r in records] == ["abc"]


def test_corrupt_database_is_skipped(profile: Path, add_storage, state_db) -> None:
    add_storage("abc", "/home/u/p")
    state_db(profile / "User" / "state.vscdb", "{broken")

    assert [r.id for r in list_records(profile)] == ["abc"]


def test_tilde_is_expanded(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, add_storage) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    add_storage("abc", "/home/u/p")
    assert [r.id for r in list_records("~/Code")] == ["abc"]


def test_find_record(populated: Path) -> None:
    records = list_records(populated)

    assert find_record(records, "abc").path == "/home/u/p"
    assert find_record(records, "/home/u/p").id == "abc"
    assert find_record(records, "file:///home/u/p/").id == "abc"
    assert find_record(records, "/nope") is None


def test_search_records(populated: Path) -> None:
    assert [r.id for r in search_records(populated, "proj")] == ["abc"]
    assert [r.path for r in search_records(populated, ":remote:box")] == ["vscode-remote://ssh+me@box:22/srv/app"]


def test_delete_records(populated: Path, read_entries) -> None:
    records = list_records(populated)
    target = find_record(records, "abc")

    assert delete_records(populated, [target]) is True

    assert not (populated / "User" / "workspaceStorage" / "abc").exists()
    assert read_entries(populated / "User" / "state.vscdb") == []
    assert read_entries(populated / "User" / "globalStorage" / "state.vscdb") == [
        {"workspace": {"configPath": "file:///home/u/team.code-workspace"}, "lastUsed": M - 10},
    ]
    assert find_record(list_records(populated), "/home/u/p") is None


def test_delete_external_only_record_is_a_no_op(populated: Path) -> None:
    remote = find_record(list_records(populated), "vscode-remote://ssh+me@box:22/srv/app")
    assert delete_records(populated, [remote]) is True
    assert find_record(list_records(populated), remote.path) is not None


def test_bad_rows_do_not_abort_listing(profile: Path, add_storage, add_recent, zed_db) -> None:
    add_storage("good", "/home/u/good")
    bad = profile / "User" / "workspaceStorage" / "bad"
    bad.mkdir()
    (bad / "workspace.json").write_bytes(b'{"folder": "/home/u/\xff"}')
    add_recent([{"folderUri": "vscode-remote://ssh-remote+host:" + "1" * 5000 + "/p"}])
    zed_db([(1, "/srv", "2024-01-02 03:04:05", 1)], [(1, "ssh", "box", 70000, "u")])

    records = list_records(profile)

    assert [r.id for r in records if not r.id.startswith("db-")] == ["good"]
    remote = next(r for r in records if r.id.startswith("db-"))
    assert remote.parsed_info is not None
    assert remote.parsed_info.remote_port is None
