"""Shared test fixtures: throwaway editor profiles on disk.

Everything lives under ``tmp_path``.  SQLite stores are created through
SQLAlchemy with the same schema the editors use, so the real store classes
are exercised end to end.  Settings are isolated from the developer's
environment (``RECALL_*`` vars and ``.env``) and point the Zed reader at an
empty per-test directory.
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL
from sqlalchemy.pool import NullPool

from workspace_recall.settings import get_settings
from workspace_recall.store.base import RECENT_LIST_KEY

PRIMARY_DB = "User/state.vscdb"
SECONDARY_DB = "User/globalStorage/state.vscdb"


def _engine(path: Path):
    path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(URL.create("sqlite", database=str(path)), poolclass=NullPool)


def create_state_db(path: Path, value: str | bytes | None) -> None:
    """Create a ``state.vscdb`` holding *value* under the recently-opened key."""
    engine = _engine(path)
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE ItemTable (key TEXT UNIQUE ON CONFLICT REPLACE, value BLOB)"))
        if value is not None:
            conn.execute(
                text("INSERT INTO ItemTable (key, value) VALUES (:key, :value)"),
                {"key": RECENT_LIST_KEY, "value": value},
            )
    engine.dispose()


def create_zed_db(
    path: Path,
    workspaces: list[tuple[Any, ...]],
    remotes: list[tuple[Any, ...]] | None = None,
) -> None:
    """Create a Zed ``db.sqlite``.

    *workspaces* rows are ``(workspace_id, paths, timestamp, remote_connection_id)``;
    *remotes* rows are ``(id, kind, host, port, user)``.  ``remotes=None``
    builds the older schema without the ``remote_connections`` table.
    """
    engine = _engine(path)
    with engine.begin() as conn:
        conn.execute(
            text(
                "CREATE TABLE workspaces (workspace_id INTEGER PRIMARY KEY, paths TEXT, "
                "timestamp TEXT, remote_connection_id INTEGER)"
            )
        )
        for row in workspaces:
            conn.execute(
                text("INSERT INTO workspaces VALUES (:id, :paths, :ts, :remote)"),
                dict(zip(("id", "paths", "ts", "remote"), row, strict=True)),
            )
        if remotes is not None:
            conn.execute(
                text(
                    "CREATE TABLE remote_connections (id INTEGER PRIMARY KEY, kind TEXT, "
                    "host TEXT, port INTEGER, user TEXT)"
                )
            )
            for row in remotes:
                conn.execute(
                    text("INSERT INTO remote_connections VALUES (:id, :kind, :host, :port, :user)"),
                    dict(zip(("id", "kind", "host", "port", "user"), row, strict=True)),
                )
    engine.dispose()


def read_state_entries(path: Path) -> list[dict[str, Any]]:
    """The recently-opened entries currently stored at *path*."""
    engine = _engine(path)
    with engine.connect() as conn:
        value = conn.execute(
            text("SELECT value FROM ItemTable WHERE key = :key"), {"key": RECENT_LIST_KEY}
        ).scalar_one()
    engine.dispose()
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    return json.loads(value)["entries"]


# ---------------------------------------------------------------------------
# Settings isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for key in list(os.environ):
        if key.startswith("RECALL_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("RECALL_ZED_DB_DIR", str(tmp_path / "zed"))
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Profile builders
# ---------------------------------------------------------------------------


@pytest.fixture
def profile(tmp_path: Path) -> Path:
    """An empty editor profile root."""
    root = tmp_path / "Code"
    (root / "User").mkdir(parents=True)
    return root


@pytest.fixture
def zed_dir(tmp_path: Path) -> Path:
    """The directory ``RECALL_ZED_DB_DIR`` points at (not created)."""
    return tmp_path / "zed"


@pytest.fixture
def add_storage(profile: Path) -> Callable[..., Path]:
    """Factory: write ``workspaceStorage/{id}/workspace.json`` and return its directory."""

    def _add(
        workspace_id: str,
        folder: str | None = None,
        *,
        mtime_ms: int | None = None,
        document: Any = None,
    ) -> Path:
        directory = profile / "User" / "workspaceStorage" / workspace_id
        directory.mkdir(parents=True, exist_ok=True)
        doc_path = directory / "workspace.json"
        doc_path.write_text(json.dumps(document if document is not None else {"folder": folder}), encoding="utf-8")
        if mtime_ms is not None:
            ns = mtime_ms * 1_000_000
            os.utime(doc_path, ns=(ns, ns))
        return directory

    return _add


@pytest.fixture
def add_recent(profile: Path) -> Callable[..., Path]:
    """Factory: create a key-value store with a recently-opened list, return its path."""

    def _add(entries: list[dict[str, Any]], *, locator: str = PRIMARY_DB) -> Path:
        path = profile / locator
        create_state_db(path, json.dumps({"entries": entries}))
        return path

    return _add


@pytest.fixture
def state_db() -> Callable[[Path, str | bytes | None], None]:
    """Factory: raw ``state.vscdb`` with an arbitrary (possibly invalid) value."""
    return create_state_db


@pytest.fixture
def zed_db(zed_dir: Path) -> Callable[..., Path]:
    """Factory: Zed database for one channel, return its path."""

    def _create(
        workspaces: list[tuple[Any, ...]],
        remotes: list[tuple[Any, ...]] | None = None,
        *,
        channel: str = "0-stable",
    ) -> Path:
        path = zed_dir / channel / "db.sqlite"
        create_zed_db(path, workspaces, remotes)
        return path

    return _create


@pytest.fixture
def read_entries() -> Callable[[Path], list[dict[str, Any]]]:
    return read_state_entries
