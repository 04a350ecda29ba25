"""tasksync.sync_api -- sync endpoint transport and wire codec.

This sub-package provides:

* :mod:`.codec` -- Form encoding of requests and validated decoding of
  responses into snapshots.
* :mod:`.transport` -- HTTP transports (sync and async) with bearer auth.
"""

from __future__ import annotations

from .codec import decode_response, encode_request, parse_json_body
from .transport import AsyncSyncTransport, BearerAuth, SyncTransport

__all__ = [
    "AsyncSyncTransport",
    "BearerAuth",
    "SyncTransport",
    "decode_response",
    "encode_request",
    "parse_json_body",
]
