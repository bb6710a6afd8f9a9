"""Configuration loaded from RECALL_* environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from workspace_recall.models.enums import MatchPolicy


class RecallSettings(BaseSettings):
    """Workspace recall settings.

    All fields are read from environment variables with the ``RECALL_`` prefix.
    For example, ``RECALL_LOG_LEVEL=DEBUG`` maps to ``log_level``.
    """

    model_config = SettingsConfigDict(
        env_prefix="RECALL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "WARNING"

    # -- Sources ---------------------------------------------------------------
    profile_path: Path | None = None
    """Editor profile root.  Defaults to the platform's VS Code profile."""

    primary_database: str = "User/state.vscdb"
    secondary_database: str = "User/globalStorage/state.vscdb"
    """Key-value stores, relative to the profile root, in merge order."""

    storage_glob: str = "*/workspace.json"
    """Pattern matched under ``User/workspaceStorage``."""

    zed_db_dir: Path | None = None
    """Directory holding Zed's per-channel databases.  Platform default if unset."""

    include_external: bool = True
    """Merge the Zed workspace history into the listing."""

    # -- Matching --------------------------------------------------------------
    match_policy: MatchPolicy = MatchPolicy.FIRST_VARIATION
    """Which record wins when several path variations match."""


@lru_cache(maxsize=1)
def get_settings() -> RecallSettings:
    """Return a cached settings instance.

    Call ``get_settings.cache_clear()`` in tests to force a re-read after
    overriding env vars.
    """
    return RecallSettings()
