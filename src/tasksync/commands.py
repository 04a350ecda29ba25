"""Command builder for the sync endpoint.

A :class:`Command` is a single intended mutation.  Its payload is one of a
closed set of argument dataclasses; each one maps to exactly one wire
``type`` through :data:`COMMAND_TYPES`, and serialisation dispatches over
that table so an unknown payload is rejected rather than sent.

Idempotency
-----------
Every command carries a UUID that the server uses to recognise a retry.
:func:`new_command` generates a fresh one unless the caller passes it in;
to retry an operation, resend the *same* :class:`Command` value.
"""

from __future__ import annotations

import uuid as _uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from tasksync.errors import TaskSyncValidationError
from tasksync.models import DueDate


class CommandType(str, Enum):
    """Wire ``type`` tag of each supported command."""

    ITEM_ADD = "item_add"
    ITEM_UPDATE = "item_update"
    ITEM_DELETE = "item_delete"
    ITEM_CLOSE = "item_close"
    PROJECT_ADD = "project_add"
    LABEL_ADD = "label_add"


def _compact(fields: dict[str, Any]) -> dict[str, Any]:
    """Drop unset (``None``) fields.  Empty strings and lists are kept
    because the server reads them as an explicit clear."""
    return {k: v for k, v in fields.items() if v is not None}


# ---------------------------------------------------------------------------
# Argument variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AddItemArgs:
    """Arguments of ``item_add``.  ``content`` is required."""

    content: str
    description: str | None = None
    project_id: str | None = None
    section_id: str | None = None
    parent_id: str | None = None
    due: DueDate | None = None
    priority: int | None = None
    labels: tuple[str, ...] | None = None
    child_order: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "content": self.content,
            "description": self.description,
            "project_id": self.project_id,
            "section_id": self.section_id,
            "parent_id": self.parent_id,
            "due": self.due.to_dict() if self.due is not None else None,
            "priority": int(self.priority) if self.priority is not None else None,
            "labels": list(self.labels) if self.labels is not None else None,
            "child_order": self.child_order,
        })


@dataclass(frozen=True)
class UpdateItemArgs:
    """Arguments of ``item_update``.

    Only the fields that are not ``None`` are sent; the server leaves
    omitted fields as they are.  ``clear_due=True`` sends an explicit
    ``"due": null`` and removes the due date.
    """

    id: str
    content: str | None = None
    description: str | None = None
    due: DueDate | None = None
    clear_due: bool = False
    priority: int | None = None
    labels: tuple[str, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        out = _compact({
            "id": self.id,
            "content": self.content,
            "description": self.description,
            "due": self.due.to_dict() if self.due is not None else None,
            "priority": int(self.priority) if self.priority is not None else None,
            "labels": list(self.labels) if self.labels is not None else None,
        })
        if self.clear_due and self.due is None:
            out["due"] = None
        return out

    def changed_fields(self) -> list[str]:
        """Names of the fields this patch modifies (``id`` excluded)."""
        return [k for k in self.to_dict() if k != "id"]

    @property
    def is_empty(self) -> bool:
        return not self.changed_fields()


@dataclass(frozen=True)
class DeleteItemArgs:
    """Arguments of ``item_delete``."""

    id: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id}


@dataclass(frozen=True)
class CloseItemArgs:
    """Arguments of ``item_close`` (complete a task)."""

    id: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id}


@dataclass(frozen=True)
class AddProjectArgs:
    """Arguments of ``project_add``.  ``name`` is required."""

    name: str
    color: str | None = None
    parent_id: str | None = None
    child_order: int | None = None
    is_favorite: bool | None = None
    view_style: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "name": self.name,
            "color": self.color,
            "parent_id": self.parent_id,
            "child_order": self.child_order,
            "is_favorite": self.is_favorite,
            "view_style": self.view_style,
        })


@dataclass(frozen=True)
class AddLabelArgs:
    """Arguments of ``label_add``.  ``name`` is required."""

    name: str
    color: str | None = None
    item_order: int | None = None
    is_favorite: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "name": self.name,
            "color": self.color,
            "item_order": self.item_order,
            "is_favorite": self.is_favorite,
        })


CommandArgs = Union[
    AddItemArgs,
    UpdateItemArgs,
    DeleteItemArgs,
    CloseItemArgs,
    AddProjectArgs,
    AddLabelArgs,
]

COMMAND_TYPES: dict[type, CommandType] = {
    AddItemArgs: CommandType.ITEM_ADD,
    UpdateItemArgs: CommandType.ITEM_UPDATE,
    DeleteItemArgs: CommandType.ITEM_DELETE,
    CloseItemArgs: CommandType.ITEM_CLOSE,
    AddProjectArgs: CommandType.PROJECT_ADD,
    AddLabelArgs: CommandType.LABEL_ADD,
}

# Commands that create an entity and therefore need a temp ID.
CREATION_TYPES: frozenset[CommandType] = frozenset({
    CommandType.ITEM_ADD,
    CommandType.PROJECT_ADD,
    CommandType.LABEL_ADD,
})

# Field that must be non-empty for each command type.
_REQUIRED_FIELD: dict[CommandType, str] = {
    CommandType.ITEM_ADD: "content",
    CommandType.ITEM_UPDATE: "id",
    CommandType.ITEM_DELETE: "id",
    CommandType.ITEM_CLOSE: "id",
    CommandType.PROJECT_ADD: "name",
    CommandType.LABEL_ADD: "name",
}


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Command:
    """A single mutation submitted with a sync call.

    Attributes
    ----------
    type:
        Wire tag, always consistent with the type of *args*.
    args:
        The command payload.
    uuid:
        Idempotency key.  Reuse the same command to retry.
    temp_id:
        Client-side placeholder ID of the entity being created; ``None``
        for commands that do not create anything.
    """

    type: CommandType
    args: CommandArgs
    uuid: str
    temp_id: str | None = None

    @property
    def creates_entity(self) -> bool:
        return self.type in CREATION_TYPES

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON object sent inside the ``commands`` form field."""
        wire: dict[str, Any] = {
            "type": self.type.value,
            "uuid": self.uuid,
            "args": self.args.to_dict(),
        }
        if self.temp_id is not None:
            wire["temp_id"] = self.temp_id
        return wire


def command_type_for(args: Any) -> CommandType:
    """Return the wire tag of *args*, rejecting anything outside the union."""
    try:
        return COMMAND_TYPES[type(args)]
    except KeyError:
        raise TaskSyncValidationError(
            message=f"Unsupported command payload {type(args).__name__}",
            context={"field": "args", "command_type": type(args).__name__},
        ) from None


def validate_args(args: CommandArgs) -> CommandType:
    """Check *args* before a command is built.

    Raises
    ------
    TaskSyncValidationError
        When the payload type is unknown or its required field is empty.
    """
    command_type = command_type_for(args)
    required = _REQUIRED_FIELD[command_type]
    value = getattr(args, required)
    if not isinstance(value, str) or not value.strip():
        raise TaskSyncValidationError(
            message=f"{command_type.value} requires a non-empty {required!r}",
            context={"field": required, "command_type": command_type.value},
        )
    return command_type


def new_command(
    args: CommandArgs,
    *,
    uuid: str | None = None,
    temp_id: str | None = None,
) -> Command:
    """Validate *args* and build a :class:`Command`.

    Parameters
    ----------
    args:
        One of the argument dataclasses of this module.
    uuid:
        Idempotency key override.  A fresh UUID4 is generated when omitted.
    temp_id:
        Temp ID override for creation commands.  A fresh UUID4 is generated
        when omitted.  Ignored for commands that do not create an entity.

    Raises
    ------
    TaskSyncValidationError
        When *args* fails validation.  No command is built.
    """
    command_type = validate_args(args)
    if command_type in CREATION_TYPES:
        temp_id = temp_id or str(_uuid.uuid4())
    else:
        temp_id = None
    return Command(
        type=command_type,
        args=args,
        uuid=uuid or str(_uuid.uuid4()),
        temp_id=temp_id,
    )
