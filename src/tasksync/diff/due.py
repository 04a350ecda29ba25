"""Due-date resolution for the diff engine.

The due-date picker can hold a natural-language string, an absolute date,
and an absolute date-time at once.  Exactly one of them is sent, by this
precedence:

1. A non-empty natural-language string, sent as-is.
2. A date with a time component, converted from the local zone to a UTC
   instant (``YYYY-MM-DDTHH:MM:SSZ``).
3. A whole-day date (``YYYY-MM-DD``).

No due date selected resolves to ``None``.
"""

from __future__ import annotations

from datetime import tzinfo

from tasksync.errors import TaskSyncValidationError
from tasksync.models import DueDate, DueDateInput


def resolve_due(due: DueDateInput, tz: tzinfo | None = None) -> DueDate | None:
    """Turn the picker state into the single due-date variant to send.

    Parameters
    ----------
    due:
        Picker state from the edit form.
    tz:
        Zone of naive picker values.  The process-local zone when ``None``.

    Raises
    ------
    TaskSyncValidationError
        If a due date is selected but neither a string nor a date is set.
    """
    if not due.has_due_date:
        return None
    if due.human_input:
        return DueDate.natural_language(due.human_input)
    if due.absolute is None:
        raise TaskSyncValidationError(
            message="A due date is selected but no date or text was given",
            context={"field": "due"},
        )
    if due.include_time:
        local = due.absolute
        if local.tzinfo is None:
            local = local.replace(tzinfo=tz) if tz is not None else local.astimezone()
        return DueDate.absolute_datetime(local)
    return DueDate.absolute_date(due.absolute.date())


def same_due(candidate: DueDate, baseline: DueDate | None, tz: tzinfo | None = None) -> bool:
    """Return ``True`` if sending *candidate* would not change *baseline*.

    Natural-language values compare by text.  Date-times compare as
    instants, so a floating baseline time and its UTC equivalent are equal.
    Whole-day dates compare by calendar day.
    """
    if baseline is None:
        return False
    if candidate.string:
        return baseline.string == candidate.string
    if candidate.has_time:
        return baseline.has_time and baseline.instant(tz) == candidate.instant(tz)
    return not baseline.has_time and baseline.calendar_date() == candidate.calendar_date()
