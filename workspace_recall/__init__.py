"""Recover and prune an editor's recently-opened workspaces."""

from workspace_recall.managers.workspaces import delete_records, find_record, list_records, parse, search_records

__all__ = ["delete_records", "find_record", "list_records", "parse", "search_records"]
