"""Path canonicalization and equivalence candidates.

``normalize`` produces the canonical key used to match one project across
stores.  ``variations`` produces alternative spellings to probe when the
canonical key misses.

The variation list is a heuristic identity scheme, not a canonical form:
its order is fixed policy and the first hit wins (see ``MatchPolicy``).
It does not try to model case sensitivity or symlinks.
"""

from __future__ import annotations

from urllib.parse import unquote

from loguru import logger

FILE_SCHEME = "file://"
REMOTE_SCHEME = "vscode-remote://"


def percent_decode(value: str) -> str:
    """Strict UTF-8 percent-decoding; returns *value* unchanged on failure."""
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        logger.debug("Percent-decoding failed, keeping raw value: {}", value)
        return value


def normalize(raw: str) -> str:
    """Canonicalize a raw path/URI.

    Percent-decodes, strips a leading ``file://`` (a ``vscode-remote://``
    scheme is kept so remote identity stays intact), unifies ``\\`` to ``/``,
    and strips trailing separators.  A path made only of separators
    collapses to ``/``.
    """
    value = percent_decode(raw)
    if value.startswith(FILE_SCHEME):
        value = value[len(FILE_SCHEME) :]
    value = value.replace("\\", "/")
    stripped = value.rstrip("/")
    if not stripped and value:
        return "/"
    return stripped


def variations(raw: str) -> list[str]:
    """Ordered, duplicate-free candidate spellings of *raw*, for matching only.

    Order::

        raw
        normalize(raw)
        raw with file:// toggled
        raw with \\ -> /
        raw with / -> \\
        raw without a two-character drive prefix (``C:``), if present
        raw without trailing separators
    """
    candidates: list[str] = [raw, normalize(raw)]

    if raw.startswith(FILE_SCHEME):
        candidates.append(raw[len(FILE_SCHEME) :])
    else:
        candidates.append(FILE_SCHEME + raw)

    candidates.append(raw.replace("\\", "/"))
    candidates.append(raw.replace("/", "\\"))

    if len(raw) >= 2 and raw[1] == ":":
        candidates.append(raw[2:])

    candidates.append(raw.rstrip("/").rstrip("\\"))

    result: list[str] = []
    for candidate in candidates:
        if candidate not in result:
            result.append(candidate)

    logger.debug("Generated {} path variations for {}", len(result), raw)
    return result
