"""Helpers for safe debug logging.

The upstream client handles OAuth client secrets and bearer tokens. Run
headers, form bodies and token responses through :func:`redact_for_log`
before emitting them at DEBUG level.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_REDACTED = "<redacted>"

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "access_token",
        "authorization",
        "client_secret",
        "cookie",
        "refresh_token",
        "set_cookie",
        "token",
    }
)


def _is_sensitive(key: str) -> bool:
    return key.replace("-", "_").lower() in _SENSITIVE_KEYS


def redact_for_log(value: Any, *, max_string: int = 256) -> Any:
    """Return a copy of *value* with secrets masked and long strings cut.

    Mappings are redacted by key. ``(key, value)`` pairs, as used for query
    parameters and form fields, are redacted the same way.
    """
    if isinstance(value, Mapping):
        return {
            str(key): _REDACTED if _is_sensitive(str(key)) else redact_for_log(item, max_string=max_string)
            for key, item in value.items()
        }

    if isinstance(value, tuple) and len(value) == 2 and isinstance(value[0], str):
        key, item = value
        return (key, _REDACTED if _is_sensitive(key) else redact_for_log(item, max_string=max_string))

    if isinstance(value, (list, tuple)):
        return [redact_for_log(item, max_string=max_string) for item in value]

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, str) and len(value) > max_string:
        return f"{value[:max_string]}…<truncated>"

    return value
