"""Workspace path / remote URI parser.

Classifies a raw path into a ``WorkspacePathInfo``:

- Local paths (anything not starting with ``vscode-remote://``) are a
  ``FILE`` when the injected ``is_file`` capability says so, else a
  ``FOLDER``.  The path is kept verbatim.
- Remote URIs are ``vscode-remote://<authority>/<path>``.  The authority is
  percent-decoded and dispatched on its dialect prefix:

  ``ssh-remote+<descriptor>``
      ``descriptor`` is either a plain ``user@host:port:/path`` style string
      or a hex-encoded JSON object.
  ``dev-container+<config>[@<host>]``
      ``config`` is usually hex-encoded JSON describing the container and
      its host folder (``hostPath``).

Hex-vs-JSON disambiguation is character-class sniffing, not a tagged
encoding: see ``decode_hex_if_needed``.
"""

from __future__ import annotations

import json
import os
import re
import string
from typing import Any

from loguru import logger
from pydantic import BaseModel

from workspace_recall.engine.normalizer import REMOTE_SCHEME, percent_decode
from workspace_recall.errors import DecodeError, ParseError
from workspace_recall.models.enums import WorkspaceType
from workspace_recall.models.path_info import WorkspacePathInfo
from workspace_recall.store.base import FileExistence

SSH_PREFIX = "ssh-remote+"
DEV_CONTAINER_PREFIX = "dev-container+"

# Characters that may appear in a hex-encoded (or already decoded) JSON blob.
_HEX_SNIFF_CHARS = frozenset(string.hexdigits + '{}":, ')
_PORT_RE = re.compile(r"\+?[0-9]{1,5}")


class RemoteConfig(BaseModel):
    """Connection fields extracted from a JSON remote authority."""

    host: str | None = None
    host_path: str | None = None
    scheme: str | None = None
    user: str | None = None
    port: int | None = None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse(raw: str, *, is_file: FileExistence | None = None) -> WorkspacePathInfo:
    """Parse *raw* into structured metadata.

    Raises ``ParseError`` if a remote URI lacks its authority or path segment.
    """
    logger.debug("Parsing workspace path: {}", raw)

    if not raw.startswith(REMOTE_SCHEME):
        check = is_file or os.path.isfile
        workspace_type = WorkspaceType.FILE if check(raw) else WorkspaceType.FOLDER
        return WorkspacePathInfo(original_path=raw, workspace_type=workspace_type, path=raw)

    _, sep, remainder = raw.partition("://")
    if not sep:
        msg = f"Invalid URI format: {raw}"
        raise ParseError(msg)

    authority_raw, slash, remote_path = remainder.partition("/")
    if not slash:
        msg = f"Invalid remote URI format: {raw}"
        raise ParseError(msg)

    authority = percent_decode(authority_raw)
    info = WorkspacePathInfo(
        original_path=raw,
        workspace_type=WorkspaceType.WORKSPACE,
        remote_authority=authority,
        path=remote_path if remote_path.startswith("/") else f"/{remote_path}",
        tags=["remote"],
    )

    if authority.startswith(SSH_PREFIX):
        _parse_ssh_authority(authority[len(SSH_PREFIX) :], info)
    elif authority.startswith(DEV_CONTAINER_PREFIX):
        _parse_dev_container_authority(authority[len(DEV_CONTAINER_PREFIX) :], info)

    logger.debug("Parsed workspace info: {}", info)
    return info


def decode_hex_if_needed(value: str) -> str:
    """Hex-decode *value* if it looks like hex-encoded JSON.

    The check is a heuristic: when every character is a hex digit or one of
    ``{ } " : ,`` and space, and *value* does not already start with ``{``,
    it is decoded pair by pair.  The decoded text is returned only if it
    starts with ``{``; in every other case *value* comes back unchanged.

    Raises ``DecodeError`` when decoding is attempted and the input has odd
    length or a pair that is not hex.
    """
    if not all(c in _HEX_SNIFF_CHARS for c in value):
        return value
    if value.startswith("{"):
        return value

    decoded = _decode_hex(value)
    if decoded.startswith("{"):
        return decoded
    return value


def apply_ssh_descriptor(descriptor: str, info: WorkspacePathInfo) -> None:
    """Populate *info* from a plain SSH descriptor.

    Accepted shapes: ``user@host``, ``user@host:port``, ``user@host:/path``,
    ``user@host:port:/path`` and the same without ``user@``.  The path part,
    when present and non-empty, overrides ``info.path``.
    """
    user, at, host_part = descriptor.partition("@")
    if at:
        info.remote_user = user
    else:
        host_part = descriptor

    host, colon, rest = host_part.partition(":")
    info.remote_host = host
    if colon:
        _apply_port_or_path(rest, info)


# ---------------------------------------------------------------------------
# Dialects
# ---------------------------------------------------------------------------


def _parse_ssh_authority(remote: str, info: WorkspacePathInfo) -> None:
    info.add_tag("ssh")

    try:
        decoded = decode_hex_if_needed(remote)
    except DecodeError as exc:
        logger.warning("Failed to decode hex-encoded SSH remote: {}", exc)
        apply_ssh_descriptor(remote, info)
        return

    if not decoded.startswith("{"):
        apply_ssh_descriptor(decoded, info)
        return

    try:
        config = parse_remote_config(decoded)
    except ValueError as exc:
        logger.warning("Failed to parse SSH JSON config: {}", exc)
        apply_ssh_descriptor(decoded, info)
        return

    info.remote_host = config.host if config.host is not None else decoded
    info.remote_user = config.user
    info.remote_port = config.port
    _apply_container_override(config, info)


def _parse_dev_container_authority(remote: str, info: WorkspacePathInfo) -> None:
    info.add_tag("devcontainer")

    config_hex, at, host_part = remote.rpartition("@")
    host: str | None = host_part
    if not at:
        config_hex, host = remote, None

    try:
        decoded = decode_hex_if_needed(config_hex)
    except DecodeError as exc:
        logger.debug("Dev container config is not hex-encoded: {}", exc)
        _apply_container_host(host, info)
        return

    if not decoded.startswith("{"):
        _apply_container_host(host, info)
        return

    try:
        config = parse_remote_config(decoded)
    except ValueError as exc:
        logger.warning("Failed to parse container JSON config: {}", exc)
        _apply_container_host(host, info)
        return

    host_str = config.host if config.host is not None else (host or "")
    if host_str:
        info.remote_host = host_str
    info.remote_user = config.user
    info.remote_port = config.port
    _apply_container_override(config, info)


def _apply_container_override(config: RemoteConfig, info: WorkspacePathInfo) -> None:
    info.container_path = info.path
    if config.host_path is not None:
        info.path = config.host_path
    if config.scheme is not None:
        info.add_tag(config.scheme)


def _apply_container_host(host: str | None, info: WorkspacePathInfo) -> None:
    if host is None:
        return
    info.remote_host = host
    if "@" in host:
        apply_ssh_descriptor(host, info)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_remote_config(text: str) -> RemoteConfig:
    """Extract connection fields from a JSON authority.

    Host, user and port are read from ``settings.{host,user,port}`` first,
    then from the top-level ``hostName``, ``user`` and ``port``.  Raises
    ``ValueError`` if *text* is not a JSON object.
    """
    config = json.loads(text)
    if not isinstance(config, dict):
        msg = f"Expected a JSON object, got {type(config).__name__}"
        raise ValueError(msg)

    settings = config.get("settings")
    if not isinstance(settings, dict):
        settings = {}

    return RemoteConfig(
        host=_first_str(settings.get("host"), config.get("hostName")),
        host_path=_as_str(config.get("hostPath")),
        scheme=_as_str(config.get("scheme")),
        user=_first_str(settings.get("user"), config.get("user")),
        port=_first_port(settings.get("port"), config.get("port")),
    )


def _decode_hex(value: str) -> str:
    if len(value) % 2:
        msg = f"Odd-length hex string ({len(value)} characters)"
        raise DecodeError(msg)

    data = bytearray()
    for offset in range(0, len(value), 2):
        pair = value[offset : offset + 2]
        if pair[0] not in string.hexdigits or pair[1] not in string.hexdigits:
            msg = f"Invalid hex pair {pair!r} at offset {offset}"
            raise DecodeError(msg)
        data.append(int(pair, 16))

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def _apply_port_or_path(rest: str, info: WorkspacePathInfo) -> None:
    """Disambiguate what follows ``host:`` (port, path, or ``port:path``)."""
    port_text, colon, path_part = rest.partition(":")
    if colon:
        port = parse_port(port_text)
        if port is not None:
            info.remote_port = port
            if path_part:
                info.path = path_part
            return

    port = parse_port(rest)
    if port is not None:
        info.remote_port = port
    elif rest:
        # Absolute, home-relative, or anything else: a path override.
        info.path = rest


def parse_port(text: str) -> int | None:
    """Parse an unsigned 16-bit port number, or return ``None``."""
    if not _PORT_RE.fullmatch(text):
        return None
    port = int(text)
    return port if port <= 65535 else None


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _first_str(*values: Any) -> str | None:
    for value in values:
        if isinstance(value, str):
            return value
    return None


def _first_port(*values: Any) -> int | None:
    for value in values:
        if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 65535:
            return value
    return None
