"""Wire encoding and decoding for the sync endpoint.

Requests are form-encoded, but two of the form values are themselves JSON
documents:

* ``resource_types`` -- a JSON array of strings, e.g. ``["items"]``.
* ``commands`` -- a JSON array of ``{type, temp_id, uuid, args}`` objects,
  omitted when there is nothing to send.

Responses are JSON objects.  :func:`decode_response` checks the parts this
client relies on and builds a :class:`~tasksync.models.Snapshot`; any shape
mismatch is a :class:`~tasksync.errors.TaskSyncDecodeError`.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from tasksync.commands import Command
from tasksync.errors import TaskSyncDecodeError, TaskSyncValidationError
from tasksync.models import (
    CommandOutcome,
    Item,
    Label,
    Project,
    Section,
    Snapshot,
)

_E = TypeVar("_E")

# Response key -> entity constructor.
_COLLECTIONS: dict[str, Callable[[dict[str, Any]], Any]] = {
    "items": Item.from_dict,
    "projects": Project.from_dict,
    "labels": Label.from_dict,
    "sections": Section.from_dict,
}


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

def encode_request(
    token: str,
    resource_types: Sequence[str],
    commands: Sequence[Command] = (),
) -> dict[str, str]:
    """Build the form fields of a sync request.

    Raises
    ------
    TaskSyncValidationError
        If *token* or *resource_types* is empty.
    """
    if not token:
        raise TaskSyncValidationError(
            message="sync_token must be '*' or a token returned by the server",
            context={"field": "sync_token"},
        )
    if not resource_types:
        raise TaskSyncValidationError(
            message="At least one resource type must be requested",
            context={"field": "resource_types"},
        )
    form = {
        "sync_token": token,
        "resource_types": json.dumps(list(resource_types)),
    }
    if commands:
        form["commands"] = json.dumps([c.to_wire() for c in commands])
    return form


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

def _decode_error(message: str, field: str, body: Any) -> TaskSyncDecodeError:
    return TaskSyncDecodeError(
        message=message,
        context={"field": field, "body": str(body)[:1000]},
    )


def parse_json_body(text: str) -> dict[str, Any]:
    """Parse a response body that must be a JSON object."""
    try:
        body = json.loads(text)
    except ValueError as exc:
        raise TaskSyncDecodeError(
            message=f"Sync response is not valid JSON: {exc}",
            context={"field": "<body>", "body": text[:1000]},
            cause=exc,
        ) from exc
    if not isinstance(body, dict):
        raise _decode_error("Sync response is not a JSON object", "<body>", text)
    return body


def _decode_collection(
    raw: dict[str, Any],
    key: str,
    build: Callable[[dict[str, Any]], _E],
) -> dict[str, _E]:
    entries = raw.get(key)
    if entries is None:
        return {}
    if not isinstance(entries, list):
        raise _decode_error(f"'{key}' must be an array", key, entries)
    decoded: dict[str, _E] = {}
    for entry in entries:
        if not isinstance(entry, dict) or not isinstance(entry.get("id"), str):
            raise _decode_error(f"'{key}' entries must be objects with a string id", key, entry)
        try:
            decoded[entry["id"]] = build(entry)
        except (TypeError, ValueError) as exc:
            raise TaskSyncDecodeError(
                message=f"Malformed entry in '{key}': {exc}",
                context={"field": key, "body": str(entry)[:1000]},
                cause=exc,
            ) from exc
    return decoded


def _decode_outcome(uuid: str, status: Any) -> CommandOutcome:
    if status == "ok":
        return CommandOutcome(uuid=uuid, ok=True)
    if isinstance(status, dict):
        error_code = status.get("error_code")
        error = status.get("error")
        return CommandOutcome(
            uuid=uuid,
            ok=False,
            error_code=error_code if isinstance(error_code, int) else None,
            error=str(error) if error is not None else "",
        )
    raise _decode_error(f"Unrecognised sync_status for command {uuid}", "sync_status", status)


def decode_response(raw: dict[str, Any]) -> Snapshot:
    """Build a :class:`Snapshot` from a parsed sync response.

    Collections missing from the response decode as empty; they were not
    requested or nothing in them changed.  A missing ``sync_token`` decodes
    as ``""``.

    Raises
    ------
    TaskSyncDecodeError
        If any field this client relies on has an unexpected shape.
    """
    # A response without a token does not move the cursor; the merger keeps
    # the previous one.
    token = raw.get("sync_token", "")
    if not isinstance(token, str):
        raise _decode_error("'sync_token' must be a string", "sync_token", token)

    mapping = raw.get("temp_id_mapping") or {}
    if not isinstance(mapping, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in mapping.items()
    ):
        raise _decode_error("'temp_id_mapping' must map strings to strings", "temp_id_mapping", mapping)

    status = raw.get("sync_status") or {}
    if not isinstance(status, dict):
        raise _decode_error("'sync_status' must be an object", "sync_status", status)

    collections = {key: _decode_collection(raw, key, build) for key, build in _COLLECTIONS.items()}

    return Snapshot(
        sync_token=token,
        items=collections["items"],
        projects=collections["projects"],
        labels=collections["labels"],
        sections=collections["sections"],
        temp_id_mapping=dict(mapping),
        command_outcomes={uuid: _decode_outcome(uuid, s) for uuid, s in status.items()},
        full_sync=bool(raw.get("full_sync", False)),
    )
