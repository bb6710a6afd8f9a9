"""SQLite-backed key-value store (``state.vscdb``).

The editor persists UI state in a single-table SQLite database::

    ItemTable(key TEXT UNIQUE, value BLOB)

The recently-opened list lives under one key as a JSON document of the form
``{"entries": [...]}``.  This module reads and rewrites that document.

Writes are unlocked read-modify-write: the editor may rewrite the same key
while we hold a copy, in which case one of the two updates is lost.  That
race is accepted; callers that need more can wrap their work in the
database's own transaction.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from workspace_recall.errors import SourceCorrupt, SourceUnavailable
from workspace_recall.store.base import RECENT_LIST_KEY, RECENT_LIST_TABLE, KeyValueStore


class SqliteKeyValueStore:
    """``KeyValueStore`` over a SQLite file, accessed through SQLAlchemy.

    Use as a context manager so the engine is disposed deterministically::

        with SqliteKeyValueStore.open(path) as store:
            store.read("history.recentlyOpenedPathsList")
    """

    def __init__(self, path: str | Path, table: str = RECENT_LIST_TABLE) -> None:
        self.path = Path(path)
        self.table = table
        # NullPool: every call gets a fresh connection, nothing stays open.
        self._engine = create_engine(URL.create("sqlite", database=str(self.path)), poolclass=NullPool)

    @classmethod
    def open(cls, path: str | Path) -> SqliteKeyValueStore:
        """Open an existing, non-empty store.  Raises ``SourceUnavailable`` otherwise."""
        path = Path(path)
        if not path.is_file():
            raise SourceUnavailable(str(path), "database file does not exist")
        if path.stat().st_size == 0:
            raise SourceUnavailable(str(path), "database file is empty")
        logger.debug("Opening key-value store: {}", path)
        return cls(path)

    # -- Query -----------------------------------------------------------------

    def has_table(self, name: str) -> bool:
        try:
            return inspect(self._engine).has_table(name)
        except SQLAlchemyError as exc:
            raise SourceCorrupt(str(self.path), f"cannot inspect schema: {exc}") from exc

    def read(self, key: str) -> str | None:
        stmt = text(f'SELECT value FROM "{self.table}" WHERE key = :key')  # noqa: S608
        try:
            with self._engine.connect() as conn:
                row = conn.execute(stmt, {"key": key}).first()
        except SQLAlchemyError as exc:
            raise SourceCorrupt(str(self.path), f"cannot read {key!r}: {exc}") from exc

        if row is None or row[0] is None:
            return None
        value = row[0]
        if isinstance(value, bytes):
            return value.decode("utf-8", errors="replace")
        return str(value)

    # -- Mutation --------------------------------------------------------------

    def write(self, key: str, value: str) -> int:
        stmt = text(f'UPDATE "{self.table}" SET value = :value WHERE key = :key')  # noqa: S608
        try:
            with self._engine.begin() as conn:
                rows = conn.execute(stmt, {"value": value, "key": key}).rowcount
        except SQLAlchemyError as exc:
            raise SourceCorrupt(str(self.path), f"cannot write {key!r}: {exc}") from exc
        return rows

    # -- Lifecycle -------------------------------------------------------------

    def close(self) -> None:
        self._engine.dispose()

    def __enter__(self) -> SqliteKeyValueStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


# -- Recently-opened list ------------------------------------------------------


def read_recent_list(store: KeyValueStore, locator: str) -> dict[str, Any] | None:
    """Return the decoded recently-opened document.

    ``None`` when the table or key is absent.  Raises ``SourceCorrupt`` if the
    value is not JSON or has no ``entries`` array.
    """
    if not store.has_table(RECENT_LIST_TABLE):
        logger.warning("{} not found in {}, no recently-opened history", RECENT_LIST_TABLE, locator)
        return None

    raw = store.read(RECENT_LIST_KEY)
    if raw is None:
        logger.warning("{} not found in {}", RECENT_LIST_KEY, locator)
        return None

    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SourceCorrupt(locator, f"invalid JSON in {RECENT_LIST_KEY}: {exc}") from exc

    if not isinstance(document, dict) or not isinstance(document.get("entries"), list):
        raise SourceCorrupt(locator, f"expected an 'entries' array in {RECENT_LIST_KEY}")
    return document


def write_recent_list(store: KeyValueStore, document: dict[str, Any]) -> int:
    """Serialize *document* compactly and store it.  Returns rows affected."""
    value = json.dumps(document, ensure_ascii=False, separators=(",", ":"))
    return store.write(RECENT_LIST_KEY, value)
