"""Collaborator interfaces consumed by the engine.

The engine never touches the filesystem or a database directly: it is handed
raw entries by scanners and opens key-value stores through an opener.  The
concrete implementations live next to this module; tests substitute fakes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Protocol, runtime_checkable

from workspace_recall.models.entries import ExternalEntry, StorageEntry

FileExistence = Callable[[str], bool]
"""Returns ``True`` if the path names an existing regular file."""

RECENT_LIST_TABLE = "ItemTable"
RECENT_LIST_KEY = "history.recentlyOpenedPathsList"


@runtime_checkable
class StorageScanner(Protocol):
    """Enumerates per-project metadata documents."""

    def scan(self) -> Iterator[StorageEntry]:
        """Yield one entry per readable document.

        Raises ``SourceUnavailable`` if the storage tree does not exist.
        """
        ...


@runtime_checkable
class KeyValueStore(Protocol):
    """An embedded single-file key/text-value store."""

    def has_table(self, name: str) -> bool: ...

    def read(self, key: str) -> str | None:
        """Return the value stored under *key*, or ``None`` if absent."""
        ...

    def write(self, key: str, value: str) -> int:
        """Overwrite the value under *key*.  Returns the number of rows affected."""
        ...

    def close(self) -> None: ...

    def __enter__(self) -> KeyValueStore: ...

    def __exit__(self, *exc_info: object) -> None: ...


KeyValueStoreOpener = Callable[[Path], KeyValueStore]
"""Opens a store.  Raises ``SourceUnavailable`` if the file is missing or empty."""


@runtime_checkable
class ExternalEditorStore(Protocol):
    """Read-only view of a third-party editor's workspace history."""

    def scan(self) -> Iterator[ExternalEntry]:
        """Yield workspace rows.  Raises ``SourceUnavailable`` if nothing can be read."""
        ...
