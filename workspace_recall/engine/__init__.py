"""Workspace engine.

- **normalizer**: canonical path keys and equivalence candidates
- **parser**: local path / remote URI classification (``WorkspacePathInfo``)
- **reconciler**: merges raw per-source entries into ``WorkspaceRecord``s
- **deletion**: removes records from each backing store
- **filters**: search queries and existence checks
"""

from workspace_recall.engine.normalizer import normalize, variations
from workspace_recall.engine.parser import decode_hex_if_needed, parse

__all__ = ["decode_hex_if_needed", "normalize", "parse", "variations"]
