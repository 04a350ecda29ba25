"""Client configuration for tasksync.

:class:`TaskSyncConfig` captures every tuneable knob of the client.
Instances are passed to both :class:`TaskSyncClient` and
:class:`AsyncTaskSyncClient` (and, through them, to the transports).

Two module-level constants name the resource types the sync endpoint is
asked for:

* :data:`FULL_SYNC_RESOURCE_TYPES` -- the wildcard used by a full sync.
* :data:`DEFAULT_RESOURCE_TYPES` -- the collections mirrored in a
  :class:`~tasksync.models.Snapshot`, requested on every incremental sync.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Resource type constants
# ---------------------------------------------------------------------------

FULL_SYNC_RESOURCE_TYPES: list[str] = ["all"]

DEFAULT_RESOURCE_TYPES: list[str] = [
    "items",
    "projects",
    "labels",
    "sections",
]
"""Every collection the snapshot tracks.  Requesting all of them on each
incremental sync keeps one cursor valid for the whole snapshot."""

DEFAULT_BASE_URL = "https://api.todoist.com/sync/v9/"

__version__ = "0.1.0"


# ---------------------------------------------------------------------------
# Configuration dataclass
# ---------------------------------------------------------------------------

@dataclass
class TaskSyncConfig:
    """Complete configuration for a tasksync client.

    Parameters
    ----------
    token:
        Bearer token for the sync endpoint.  Never logged.
    token_provider:
        Optional zero-argument callable returning the current bearer token.
        Takes precedence over *token* and is consulted on every request, so
        credentials rotated by the host application are picked up without
        rebuilding the client.
    base_url:
        API root URL, with a trailing slash.  The sync endpoint is
        ``<base_url>sync``.
    user_agent:
        Value of the ``User-Agent`` header.
    timeout_seconds:
        HTTP request timeout in seconds.
    http_proxy:
        Optional HTTP/HTTPS proxy URL.
    incremental_resource_types:
        Resource types requested by incremental syncs and by the
        convenience operations.
    metrics:
        A :class:`~tasksync.observability.MetricsHook` implementation, or
        ``None`` for the no-op hook.
    debug_dump_payload:
        Write the (redacted) request and response of every sync call to
        *stderr*.
    """

    # ── Core ────────────────────────────────────────────────────────────
    token: str = ""

    token_provider: Callable[[], str] | None = None

    base_url: str = DEFAULT_BASE_URL

    user_agent: str = f"tasksync/{__version__}"

    # ── HTTP ────────────────────────────────────────────────────────────
    timeout_seconds: float = 30.0

    http_proxy: str | None = None

    # ── Sync ────────────────────────────────────────────────────────────
    incremental_resource_types: list[str] = field(
        default_factory=lambda: list(DEFAULT_RESOURCE_TYPES),
    )

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    # ── Debug ───────────────────────────────────────────────────────────
    debug_dump_payload: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        from urllib.parse import urlparse

        parsed = urlparse(self.base_url)
        if parsed.scheme == "http" and parsed.hostname not in (
            "localhost",
            "127.0.0.1",
            "::1",
        ):
            raise ValueError(
                f"base_url uses insecure HTTP for non-local host '{parsed.hostname}'. "
                "Use HTTPS to protect your API token, or target localhost for testing."
            )
        if not self.base_url.endswith("/"):
            raise ValueError(f"base_url must end with '/', got {self.base_url!r}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")
        if not self.incremental_resource_types:
            raise ValueError("incremental_resource_types must not be empty")

    def resolve_token(self) -> str:
        """Return the bearer token to send with the next request."""
        if self.token_provider is not None:
            return self.token_provider()
        return self.token

    def __repr__(self) -> str:
        """Mask the token to prevent accidental credential leakage."""
        parts: list[str] = []
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if f.name == "token":
                masked = f"...{val[-4:]}" if len(val) >= 4 else "****"
                parts.append(f"token='{masked}'")
            elif f.name == "token_provider":
                parts.append(f"token_provider={'<set>' if val is not None else None}")
            else:
                parts.append(f"{f.name}={val!r}")
        return f"TaskSyncConfig({', '.join(parts)})"
