"""Credential redaction for debug dumps.

:func:`redact` is applied to every request/response pair before it is
written to *stderr*:

* Values under credential-like keys (``authorization``, ``token`` but not
  ``sync_token``, ``api_key``, ...) are masked.
* ``Bearer <token>`` fragments anywhere in a string are masked.
* The known bearer token is scrubbed from every string in the tree.

The sync cursor is not a credential and is left readable.
"""

from __future__ import annotations

import copy
import re
from typing import Any

_SENSITIVE_KEY_PATTERNS: frozenset[str] = frozenset({
    "authorization",
    "token",
    "secret",
    "password",
    "api_key",
    "cookie",
})

# Keys that match a sensitive pattern but hold no credential.
_SAFE_KEYS: frozenset[str] = frozenset({
    "sync_token",
})

_BEARER_RE = re.compile(r"(Bearer\s+)\S+")


def _placeholder(token: str | None) -> str:
    if token and len(token) >= 8:
        return f"<redacted:...{token[-4:]}>"
    return "<redacted>"


def _scrub(value: str, token: str | None) -> str:
    if token and token in value:
        value = value.replace(token, _placeholder(token))
    return _BEARER_RE.sub(lambda m: f"{m.group(1)}<redacted>", value)


def _is_sensitive(key: Any) -> bool:
    if not isinstance(key, str):
        return False
    lowered = key.lower()
    if lowered in _SAFE_KEYS:
        return False
    return any(pat in lowered for pat in _SENSITIVE_KEY_PATTERNS)


def _redact_value(value: Any, token: str | None) -> Any:
    if isinstance(value, dict):
        return {
            k: (_placeholder(token) if _is_sensitive(k) else _redact_value(v, token))
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_redact_value(v, token) for v in value]
    if isinstance(value, str):
        return _scrub(value, token)
    return value


def redact(payload: dict, token: str | None = None) -> dict:
    """Return a deep copy of *payload* with credentials removed.

    Parameters
    ----------
    payload:
        Request/response data to sanitise.  Never mutated.
    token:
        The bearer token in use, scrubbed wherever it appears.

    Examples
    --------
    >>> redact({"Authorization": "Bearer abc"})
    {'Authorization': '<redacted>'}
    >>> redact({"sync_token": "xyz"})
    {'sync_token': 'xyz'}
    """
    return _redact_value(copy.deepcopy(payload), token)
