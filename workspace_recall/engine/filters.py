"""Record search and existence checks.

Query syntax: free text plus optional ``:key:value[,value...]`` tokens::

    myproj :remote:build-box :type:workspace :tag:ssh :existing:true

Free text matches path, name or label (case-insensitive).  Each filter
token keeps a record if any of its comma-separated values matches.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path, PurePosixPath

from loguru import logger
from pydantic import BaseModel

from workspace_recall.engine.normalizer import FILE_SCHEME, REMOTE_SCHEME
from workspace_recall.engine.parser import parse
from workspace_recall.errors import ParseError
from workspace_recall.models.workspace import WorkspaceRecord

_TRUTHY = {"true", "yes", "1"}
_FALSY = {"false", "no", "0"}


class RecordQuery(BaseModel):
    """A parsed search query."""

    text: str = ""
    remote: list[str] | None = None
    types: list[str] | None = None
    paths: list[str] | None = None
    tags: list[str] | None = None
    existing: bool | None = None


def parse_query(query: str) -> RecordQuery:
    parsed = RecordQuery()
    words: list[str] = []

    for part in query.strip().lower().split(" "):
        if part.startswith(":remote:"):
            parsed.remote = part.removeprefix(":remote:").split(",")
        elif part.startswith(":type:"):
            parsed.types = part.removeprefix(":type:").split(",")
        elif part.startswith(":path:"):
            parsed.paths = part.removeprefix(":path:").split(",")
        elif part.startswith(":tags:"):
            parsed.tags = part.removeprefix(":tags:").split(",")
        elif part.startswith(":tag:"):
            parsed.tags = part.removeprefix(":tag:").split(",")
        elif part.startswith(":existing:"):
            value = part.removeprefix(":existing:")
            if value in _TRUTHY:
                parsed.existing = True
            elif value in _FALSY:
                parsed.existing = False
        elif part:
            words.append(part)

    parsed.text = " ".join(words)
    return parsed


def filter_records(
    records: Iterable[WorkspaceRecord],
    query: str,
    *,
    exists: Callable[[WorkspaceRecord], bool] | None = None,
) -> list[WorkspaceRecord]:
    """Records matching *query*, in their original order."""
    records = list(records)
    for record in records:
        record.parse_path()

    parsed = parse_query(query)
    logger.debug("Filtering workspaces with {}", parsed)
    check_exists = exists or workspace_exists
    return [r for r in records if _matches(r, parsed, check_exists)]


def _matches(record: WorkspaceRecord, query: RecordQuery, exists: Callable[[WorkspaceRecord], bool]) -> bool:
    if query.text:
        haystacks = [record.path, record.name or "", record.label()]
        if not any(query.text in h.lower() for h in haystacks):
            return False

    info = record.parsed_info

    if query.remote is not None:
        if info is None or info.remote_host is None:
            return False
        host = info.remote_host.lower()
        if not any(value in host for value in query.remote):
            return False

    if query.types is not None and record.type_name() not in query.types:
        return False

    if query.paths is not None:
        path = (info.path if info else record.path).lower()
        if not any(value in path for value in query.paths):
            return False

    if query.tags is not None:
        if info is None:
            return False
        tags = [t.lower() for t in info.tags]
        if not any(value in tag for value in query.tags for tag in tags):
            return False

    return query.existing is None or exists(record) == query.existing


def workspace_exists(record: WorkspaceRecord) -> bool:
    """Whether the workspace target is present.

    Remote workspaces cannot be checked and are assumed to exist.
    ``.code-workspace`` descriptors must be files; anything else may be a
    file or a directory.
    """
    if record.is_remote():
        logger.debug("Remote workspace existence is not checked: {}", record.path)
        return True

    path = Path(record.path.removeprefix(FILE_SCHEME))
    if path.suffix == ".code-workspace":
        return path.is_file()
    return path.exists()


def folder_basename(path: str) -> str:
    """Last path component, remote aware.  ``unnamed`` when there is none."""
    if path.startswith(REMOTE_SCHEME):
        try:
            path = parse(path).path
        except ParseError:
            return "unnamed"
    else:
        path = path.removeprefix(FILE_SCHEME)

    name = PurePosixPath(path.replace("\\", "/")).name
    return name or "unnamed"
