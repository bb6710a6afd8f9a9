"""Exception taxonomy for workspace discovery, parsing, and deletion.

Parsing errors are recoverable: callers may treat the offending string as
opaque.  Source errors are logged and the source is skipped; only
``AggregateFailure`` is propagated out of ``list_records``.
"""

from __future__ import annotations


class WorkspaceRecallError(Exception):
    """Base class for all workspace-recall errors."""


class ParseError(WorkspaceRecallError, ValueError):
    """A path or remote URI does not follow the expected grammar."""


class DecodeError(WorkspaceRecallError, ValueError):
    """Hex decoding of a remote authority failed."""


class SourceUnavailable(WorkspaceRecallError, LookupError):
    """A store or file is missing, empty, or cannot be opened."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


class SourceCorrupt(WorkspaceRecallError, ValueError):
    """A store was opened but its content has an unexpected shape."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


class AggregateFailure(WorkspaceRecallError):
    """Every configured source failed; there is nothing to reconcile."""

    def __init__(self, errors: list[WorkspaceRecallError]) -> None:
        self.errors = errors
        details = "; ".join(str(e) for e in errors) or "no sources configured"
        super().__init__(f"All workspace sources failed ({details})")
