"""
Small utilities shared by the change control components.

This module intentionally avoids third-party dependencies.
"""

from __future__ import annotations

import getpass
import hashlib
import json
import os
import re
import socket
from datetime import datetime, timezone
from typing import Any

# Regex metacharacters escaped in partial ids. "*" is left alone: it is the wildcard.
_PATTERN_SPECIALS = re.compile(r"[-\[\]{}()+?.,\\^$|#\s]")


def escape_for_pattern(text: str) -> str:
    """Escape regex metacharacters in `text`, leaving `*` untouched."""
    return _PATTERN_SPECIALS.sub(lambda m: "\\" + m.group(0), text)


def compile_pattern(partial_id: str | None) -> re.Pattern[str]:
    """
    Compile a glob-style partial id into an anchored regex.

    `*` matches any run of characters (non-greedy); everything else is literal.
    An empty pattern behaves like `*`.
    """
    partial_id = partial_id or "*"
    return re.compile("^" + escape_for_pattern(partial_id).replace("*", ".*?") + "$")


def matches_pattern(value: str, partial_id: str | None) -> bool:
    return compile_pattern(partial_id).fullmatch(value) is not None


def compute_checksum(payload: bytes | str | Any) -> str:
    """
    Compute the sha256 checksum of a change payload.

    Args:
        payload: Raw bytes, text, or any JSON-serialisable value

    Returns:
        Hex-encoded sha256 digest
    """
    if isinstance(payload, bytes):
        data = payload
    elif isinstance(payload, str):
        data = payload.encode("utf-8")
    else:
        # Canonical JSON serialization for deterministic hashing
        data = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def default_owner_id() -> str:
    """Identity of this process for lock ownership: hostname:pid."""
    return f"{socket.gethostname()}:{os.getpid()}"


def current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return os.environ.get("USER", "unknown")


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()
