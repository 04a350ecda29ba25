"""Public data models for the tasksync client.

This module contains the entity types mirrored from the server (items,
projects, labels, sections), the :class:`Snapshot` that holds them, the
per-command :class:`CommandOutcome`, the :class:`DueDate` wire type and the
form-value types handed over by the UI layer for diffing.  All types are
plain dataclasses; entities keep the raw wire dict they were decoded from so
fields this client does not model survive a load/save cycle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone, tzinfo
from enum import Enum, IntEnum
from typing import Any

WILDCARD_SYNC_TOKEN = "*"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Priority(IntEnum):
    """Task priority as sent on the wire.

    The server's scale is inverted relative to what users see: ``P1`` (very
    urgent) is ``4`` on the wire and ``P4`` (natural) is ``1``.
    """

    P1 = 4
    P2 = 3
    P3 = 2
    P4 = 1


class SyncState(str, Enum):
    """Lifecycle of a sync client's cursor."""

    UNINITIALIZED = "uninitialized"
    """No sync has completed yet; the stored token is the wildcard."""

    FULL_SYNC_PENDING = "full_sync_pending"
    """A full sync is in flight."""

    SYNCED = "synced"
    """The stored token and snapshot reflect the last successful exchange."""

    INCREMENTAL_SYNC_PENDING = "incremental_sync_pending"
    """An incremental sync is in flight."""


# ---------------------------------------------------------------------------
# Due dates
# ---------------------------------------------------------------------------

_DATE_FORMAT = "%Y-%m-%d"
_UTC_INSTANT_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def _parse_wire_datetime(value: str, tz: tzinfo | None) -> datetime:
    """Parse a due ``date`` carrying a time component.

    Values ending in ``Z`` are fixed UTC instants.  Values without an offset
    are floating times and are interpreted in *tz* (the process-local zone
    when *tz* is ``None``).
    """
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz) if tz is not None else parsed.astimezone()
    return parsed


@dataclass
class DueDate:
    """Due date of an item, in the server's wire shape.

    Outgoing values built through the variant constructors populate exactly
    one of ``date`` (absolute date or UTC date-time) or ``string`` (natural
    language, interpreted server-side).  Incoming values may carry both: the
    server echoes the original ``string`` next to the ``date`` it resolved.

    Attributes
    ----------
    date:
        ``YYYY-MM-DD`` for whole-day dates, ``YYYY-MM-DDTHH:MM:SS[.ffffff]``
        for floating times, or the same with a trailing ``Z`` for fixed UTC
        instants.
    timezone:
        IANA zone name for fixed-time dates, else ``None``.
    string:
        Human-readable representation, e.g. ``"every monday"``.
    lang:
        Language used to parse ``string``.
    is_recurring:
        Whether the due date repeats.
    """

    date: str | None = None
    timezone: str | None = None
    string: str | None = None
    lang: str | None = None
    is_recurring: bool = False

    # -- variant constructors ----------------------------------------------

    @classmethod
    def absolute_date(cls, value: date) -> DueDate:
        """A whole-day due date with no time component."""
        return cls(date=value.strftime(_DATE_FORMAT))

    @classmethod
    def absolute_datetime(cls, instant: datetime) -> DueDate:
        """A fixed due instant, normalised to UTC.

        Naive datetimes are taken to be in the process-local zone.
        """
        utc = instant.astimezone(timezone.utc)
        return cls(date=utc.strftime(_UTC_INSTANT_FORMAT))

    @classmethod
    def natural_language(cls, text: str) -> DueDate:
        """A natural-language due date such as ``"tomorrow at 5pm"``."""
        return cls(string=text)

    # -- inspection ---------------------------------------------------------

    @property
    def has_time(self) -> bool:
        return self.date is not None and "T" in self.date

    def calendar_date(self) -> date | None:
        """Return the calendar day of a whole-day due date."""
        if self.date is None or self.has_time:
            return None
        return date.fromisoformat(self.date)

    def instant(self, tz: tzinfo | None = None) -> datetime | None:
        """Return the aware instant of a due date with a time component."""
        if self.date is None or not self.has_time:
            return None
        return _parse_wire_datetime(self.date, tz)

    # -- (de)serialisation --------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DueDate:
        return cls(
            date=data.get("date"),
            timezone=data.get("timezone"),
            string=data.get("string"),
            lang=data.get("lang"),
            is_recurring=bool(data.get("is_recurring", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise only the populated fields."""
        out: dict[str, Any] = {}
        if self.date is not None:
            out["date"] = self.date
        if self.timezone is not None:
            out["timezone"] = self.timezone
        if self.string is not None:
            out["string"] = self.string
        if self.lang is not None:
            out["lang"] = self.lang
        if self.is_recurring:
            out["is_recurring"] = True
        return out


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

@dataclass
class Item:
    """A task.

    ``priority`` uses the wire scale (see :class:`Priority`).  ``labels``
    holds label *names*, not label IDs.
    """

    id: str
    content: str = ""
    description: str = ""
    project_id: str | None = None
    section_id: str | None = None
    parent_id: str | None = None
    due: DueDate | None = None
    priority: int = Priority.P4
    labels: list[str] = field(default_factory=list)
    child_order: int = 0
    collapsed: bool = False
    checked: bool = False
    is_deleted: bool = False
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Item:
        due = data.get("due")
        return cls(
            id=data["id"],
            content=data.get("content") or "",
            description=data.get("description") or "",
            project_id=data.get("project_id"),
            section_id=data.get("section_id"),
            parent_id=data.get("parent_id"),
            due=DueDate.from_dict(due) if isinstance(due, dict) else None,
            priority=int(data.get("priority") or Priority.P4),
            labels=list(data.get("labels") or []),
            child_order=int(data.get("child_order") or 0),
            collapsed=bool(data.get("collapsed", False)),
            checked=bool(data.get("checked", False)),
            is_deleted=bool(data.get("is_deleted", False)),
            raw=dict(data),
        )

    def to_dict(self) -> dict[str, Any]:
        out = dict(self.raw)
        out.update({
            "id": self.id,
            "content": self.content,
            "description": self.description,
            "project_id": self.project_id,
            "section_id": self.section_id,
            "parent_id": self.parent_id,
            "due": self.due.to_dict() if self.due is not None else None,
            "priority": int(self.priority),
            "labels": list(self.labels),
            "child_order": self.child_order,
            "collapsed": self.collapsed,
            "checked": self.checked,
            "is_deleted": self.is_deleted,
        })
        return out


@dataclass
class Project:
    """A project that items belong to."""

    id: str
    name: str = ""
    color: str = ""
    parent_id: str | None = None
    child_order: int = 0
    view_style: str = "list"
    is_favorite: bool = False
    inbox_project: bool = False
    is_archived: bool = False
    is_deleted: bool = False
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            color=data.get("color") or "",
            parent_id=data.get("parent_id"),
            child_order=int(data.get("child_order") or 0),
            view_style=data.get("view_style") or "list",
            is_favorite=bool(data.get("is_favorite", False)),
            inbox_project=bool(data.get("inbox_project", False)),
            is_archived=bool(data.get("is_archived", False)),
            is_deleted=bool(data.get("is_deleted", False)),
            raw=dict(data),
        )

    def to_dict(self) -> dict[str, Any]:
        out = dict(self.raw)
        out.update({
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "parent_id": self.parent_id,
            "child_order": self.child_order,
            "view_style": self.view_style,
            "is_favorite": self.is_favorite,
            "inbox_project": self.inbox_project,
            "is_archived": self.is_archived,
            "is_deleted": self.is_deleted,
        })
        return out


@dataclass
class Label:
    """A personal label.  Items reference labels by name."""

    id: str
    name: str = ""
    color: str = ""
    item_order: int = 0
    is_favorite: bool = False
    is_deleted: bool = False
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Label:
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            color=data.get("color") or "",
            item_order=int(data.get("item_order") or 0),
            is_favorite=bool(data.get("is_favorite", False)),
            is_deleted=bool(data.get("is_deleted", False)),
            raw=dict(data),
        )

    def to_dict(self) -> dict[str, Any]:
        out = dict(self.raw)
        out.update({
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "item_order": self.item_order,
            "is_favorite": self.is_favorite,
            "is_deleted": self.is_deleted,
        })
        return out


@dataclass
class Section:
    """A section grouping items inside a project."""

    id: str
    name: str = ""
    project_id: str | None = None
    section_order: int = 0
    collapsed: bool = False
    is_archived: bool = False
    is_deleted: bool = False
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Section:
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            project_id=data.get("project_id"),
            section_order=int(data.get("section_order") or 0),
            collapsed=bool(data.get("collapsed", False)),
            is_archived=bool(data.get("is_archived", False)),
            is_deleted=bool(data.get("is_deleted", False)),
            raw=dict(data),
        )

    def to_dict(self) -> dict[str, Any]:
        out = dict(self.raw)
        out.update({
            "id": self.id,
            "name": self.name,
            "project_id": self.project_id,
            "section_order": self.section_order,
            "collapsed": self.collapsed,
            "is_archived": self.is_archived,
            "is_deleted": self.is_deleted,
        })
        return out


# ---------------------------------------------------------------------------
# Command outcomes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CommandOutcome:
    """Result of one command, decoded from the response's ``sync_status``.

    Attributes
    ----------
    uuid:
        The command's idempotency key.
    ok:
        ``True`` when the server reported the literal ``"ok"``.
    error_code:
        Server error code for a failed command.
    error:
        Server error message for a failed command.
    """

    uuid: str
    ok: bool
    error_code: int | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

@dataclass
class Snapshot:
    """The client's local mirror of server state.

    A snapshot is produced by decoding a sync response and is folded into
    the previous one by :func:`tasksync.state.merge`.  Callers treat it as
    read-only.

    Attributes
    ----------
    sync_token:
        Opaque cursor of the server state this snapshot reflects.
    items, projects, labels, sections:
        Entity collections keyed by permanent ID.  Soft-deleted and
        archived entities are kept.
    temp_id_mapping:
        Temporary ID to permanent ID, for the exchange that produced this
        snapshot only.
    command_outcomes:
        Outcome per command UUID, for the exchange that produced this
        snapshot only.
    full_sync:
        Whether the server sent its complete state rather than a delta.
    """

    sync_token: str = WILDCARD_SYNC_TOKEN
    items: dict[str, Item] = field(default_factory=dict)
    projects: dict[str, Project] = field(default_factory=dict)
    labels: dict[str, Label] = field(default_factory=dict)
    sections: dict[str, Section] = field(default_factory=dict)
    temp_id_mapping: dict[str, str] = field(default_factory=dict)
    command_outcomes: dict[str, CommandOutcome] = field(default_factory=dict)
    full_sync: bool = False

    def outcome_for(self, uuid: str) -> CommandOutcome | None:
        return self.command_outcomes.get(uuid)

    def resolve_id(self, temp_id: str) -> str | None:
        """Return the permanent ID assigned to *temp_id* in this exchange."""
        return self.temp_id_mapping.get(temp_id)

    def active_items(self) -> list[Item]:
        """Items that are neither deleted nor completed."""
        return [i for i in self.items.values() if not i.is_deleted and not i.checked]

    def to_dict(self) -> dict[str, Any]:
        """Serialise the persistent part of the snapshot.

        The temp-ID mapping and command outcomes belong to a single
        exchange and are not included.
        """
        return {
            "sync_token": self.sync_token,
            "items": [i.to_dict() for i in self.items.values()],
            "projects": [p.to_dict() for p in self.projects.values()],
            "labels": [lb.to_dict() for lb in self.labels.values()],
            "sections": [s.to_dict() for s in self.sections.values()],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Snapshot:
        """Rebuild a snapshot written by :meth:`to_dict`."""
        return cls(
            sync_token=data.get("sync_token", WILDCARD_SYNC_TOKEN),
            items={d["id"]: Item.from_dict(d) for d in data.get("items", [])},
            projects={d["id"]: Project.from_dict(d) for d in data.get("projects", [])},
            labels={d["id"]: Label.from_dict(d) for d in data.get("labels", [])},
            sections={d["id"]: Section.from_dict(d) for d in data.get("sections", [])},
        )


# ---------------------------------------------------------------------------
# Form values (produced by the UI layer)
# ---------------------------------------------------------------------------

@dataclass
class DueDateInput:
    """State of the due-date picker.

    Attributes
    ----------
    has_due_date:
        ``False`` means no due date is selected; the other fields are
        ignored.
    absolute:
        Picked date (and time, when *include_time*).  Naive values are in
        the local zone.
    include_time:
        Whether the hours and minutes of *absolute* are meaningful.
    human_input:
        Free-text due date, e.g. ``"tomorrow"``.  Takes precedence over
        *absolute* when non-empty.
    """

    has_due_date: bool = False
    absolute: datetime | None = None
    include_time: bool = False
    human_input: str = ""


@dataclass
class ItemFormValues:
    """Edited field values of an item, as read back from the edit form.

    ``priority`` of ``None`` means no priority was picked.
    """

    content: str = ""
    description: str = ""
    due: DueDateInput = field(default_factory=DueDateInput)
    labels: list[str] = field(default_factory=list)
    priority: int | None = None

    @classmethod
    def from_item(cls, item: Item, tz: tzinfo | None = None) -> ItemFormValues:
        """Return the form state shown when *item* is opened for editing.

        Fixed-time due dates are presented in *tz* (the process-local zone
        when ``None``).
        """
        due_input = DueDateInput()
        if item.due is not None and item.due.date is not None:
            if item.due.has_time:
                instant = item.due.instant(tz)
                local = instant.astimezone(tz) if tz is not None else instant.astimezone()
                due_input = DueDateInput(has_due_date=True, absolute=local, include_time=True)
            else:
                day = item.due.calendar_date()
                due_input = DueDateInput(
                    has_due_date=True,
                    absolute=datetime.combine(day, time()),
                    include_time=False,
                )
        elif item.due is not None and item.due.string:
            due_input = DueDateInput(has_due_date=True, human_input=item.due.string)
        return cls(
            content=item.content,
            description=item.description,
            due=due_input,
            labels=list(item.labels),
            priority=int(item.priority),
        )
