"""Zed workspace history reader.

Zed keeps one SQLite database per release channel::

    {zed_db_dir}/{channel}/db.sqlite

with a ``workspaces`` table and, in newer releases, a ``remote_connections``
table joined on ``remote_connection_id``.  This store is read-only: records
that only Zed knows about are listed but never deleted.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

from loguru import logger
from pydantic import ValidationError
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from workspace_recall.errors import SourceCorrupt, SourceUnavailable
from workspace_recall.models.entries import ExternalEntry

ZED_CHANNELS = ("0-stable", "0-preview", "0-nightly", "0-dev")
ZED_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_JOINED_QUERY = text(
    """
    SELECT w.workspace_id, w.paths, w.timestamp, r.kind, r.host, r.port, r.user
    FROM workspaces w
    LEFT JOIN remote_connections r ON w.remote_connection_id = r.id
    """
)
_LOCAL_QUERY = text(
    """
    SELECT workspace_id, paths, timestamp,
           NULL AS kind, NULL AS host, NULL AS port, NULL AS user
    FROM workspaces
    """
)


def parse_zed_timestamp(value: str | None) -> int:
    """``YYYY-MM-DD HH:MM:SS`` (UTC) to epoch milliseconds; 0 if unparsable."""
    if not value:
        return 0
    try:
        dt = datetime.strptime(value, ZED_TIMESTAMP_FORMAT).replace(tzinfo=UTC)
    except ValueError:
        logger.warning("Failed to parse Zed timestamp '{}'", value)
        return 0
    return int(dt.timestamp() * 1000)


class ZedWorkspaceStore:
    """``ExternalEditorStore`` over every Zed channel database found."""

    def __init__(self, db_dir: str | Path, channels: tuple[str, ...] = ZED_CHANNELS) -> None:
        self.db_dir = Path(db_dir)
        self.channels = channels

    def channel_databases(self) -> list[tuple[str, Path]]:
        found = []
        for channel in self.channels:
            db_file = self.db_dir / channel / "db.sqlite"
            if db_file.is_file():
                found.append((channel, db_file))
            else:
                logger.debug("Zed database for channel '{}' not found: {}", channel, db_file)
        return found

    def scan(self) -> Iterator[ExternalEntry]:
        databases = self.channel_databases()
        if not databases:
            raise SourceUnavailable(str(self.db_dir), "no Zed channel database found")

        for channel, db_file in databases:
            logger.info("Found Zed database for channel '{}': {}", channel, db_file)
            try:
                entries = list(self._read_channel(channel, db_file))
            except SourceCorrupt as exc:
                logger.warning("Failed to read workspaces from Zed database: {}", exc)
                continue
            logger.info("Found {} workspaces in Zed channel '{}'", len(entries), channel)
            yield from entries

    def _read_channel(self, channel: str, db_file: Path) -> Iterator[ExternalEntry]:
        engine = create_engine(URL.create("sqlite", database=str(db_file)), poolclass=NullPool)
        try:
            rows = _query_workspaces(engine)
        except SQLAlchemyError as exc:
            raise SourceCorrupt(str(db_file), str(exc)) from exc
        finally:
            engine.dispose()

        for workspace_id, paths, timestamp, kind, host, port, user in rows:
            try:
                entry = ExternalEntry(
                    workspace_id=str(workspace_id),
                    paths=paths,
                    timestamp_ms=parse_zed_timestamp(timestamp),
                    channel=channel,
                    remote_kind=kind,
                    remote_host=host,
                    remote_port=port,
                    remote_user=user,
                )
            except ValidationError as exc:
                logger.warning("Skipping Zed workspace {} in {}: {}", workspace_id, db_file, exc)
                continue
            yield entry


def _query_workspaces(engine: Engine) -> list[tuple]:
    inspector = inspect(engine)
    if not inspector.has_table("workspaces"):
        logger.debug("workspaces table not found in Zed database {}", engine.url.database)
        return []

    query = _JOINED_QUERY if inspector.has_table("remote_connections") else _LOCAL_QUERY
    with engine.connect() as conn:
        return [tuple(row) for row in conn.execute(query)]
