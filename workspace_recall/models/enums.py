"""Shared enumerations."""

from __future__ import annotations

from enum import StrEnum

# -- Workspace ---------------------------------------------------------------


class WorkspaceType(StrEnum):
    """What a recent entry points at."""

    FOLDER = "folder"
    FILE = "file"
    WORKSPACE = "workspace"


# -- Provenance --------------------------------------------------------------


class SourceKind(StrEnum):
    """Which kind of store contributed a record."""

    STORAGE = "storage"
    DATABASE = "database"
    EXTERNAL = "external"


# -- Matching ----------------------------------------------------------------


class MatchPolicy(StrEnum):
    """How an incoming path is matched against already known records.

    - ``first_variation``: exact canonical key, then each path variation in
      order; the first hit wins.
    - ``most_recent``: every probe is tried; among the distinct records hit,
      the most recently used one wins (earliest probe breaks ties).
    - ``exact``: canonical key only, variations are ignored.
    """

    FIRST_VARIATION = "first_variation"
    MOST_RECENT = "most_recent"
    EXACT = "exact"
