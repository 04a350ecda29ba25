"""Diff planner: compute the minimal update patch for an edited item.

Given the item as last synced (the *baseline*) and the values read back
from the edit form, the planner produces an :class:`UpdateItemArgs` that
carries only the fields the user actually changed.  Omitted fields are left
alone by the server, so a concurrent server-side change to a field the user
did not touch survives the update.
"""

from __future__ import annotations

from datetime import tzinfo

from tasksync.commands import UpdateItemArgs
from tasksync.errors import TaskSyncValidationError
from tasksync.models import Item, ItemFormValues
from tasksync.observability import get_logger

from .due import resolve_due, same_due
from .labels import equal_label_sets

log = get_logger("tasksync.diff")


class DiffPlanner:
    """Plans update patches for edited items.

    Parameters
    ----------
    tz:
        Zone of naive date-times entered in the form.  The process-local
        zone when ``None``.
    clear_missing_due:
        When ``True``, removing the due date of an item that had one emits
        an explicit clear.  When ``False`` (the default) a missing due date
        is simply not sent.
    """

    def __init__(self, tz: tzinfo | None = None, clear_missing_due: bool = False) -> None:
        self._tz = tz
        self._clear_missing_due = clear_missing_due

    def plan(self, baseline: Item, edited: ItemFormValues) -> UpdateItemArgs:
        """Compute the patch that turns *baseline* into *edited*.

        Field rules:

        - **content / description**: sent when the text differs.  An empty
          string is an explicit clear.
        - **labels**: sent when the multisets differ; selection order is
          ignored.
        - **due**: resolved from the picker state (natural language wins,
          then date-time, then date) and sent unless it denotes the same due
          date as the baseline.
        - **priority**: sent when set and numerically different.

        Returns
        -------
        UpdateItemArgs
            Carries only ``id`` when nothing changed.

        Raises
        ------
        TaskSyncValidationError
            If *baseline* has no ID, or a due date is selected without a
            value.
        """
        if not baseline.id:
            raise TaskSyncValidationError(
                message="Cannot diff an item that has no id",
                context={"field": "id", "command_type": "item_update"},
            )

        content = edited.content if edited.content != baseline.content else None
        description = edited.description if edited.description != baseline.description else None

        labels = None
        if not equal_label_sets(edited.labels, baseline.labels):
            labels = tuple(edited.labels)

        due = resolve_due(edited.due, self._tz)
        if due is not None and same_due(due, baseline.due, self._tz):
            due = None
        clear_due = (
            self._clear_missing_due
            and not edited.due.has_due_date
            and baseline.due is not None
        )

        priority = None
        if edited.priority is not None and int(edited.priority) != int(baseline.priority):
            priority = int(edited.priority)

        patch = UpdateItemArgs(
            id=baseline.id,
            content=content,
            description=description,
            due=due,
            clear_due=clear_due,
            priority=priority,
            labels=labels,
        )
        log.debug(
            "Item diff planned",
            extra={"extra_fields": {
                "op": "diff",
                "item_id": baseline.id,
                "changed": patch.changed_fields(),
            }},
        )
        return patch


def diff_item(
    baseline: Item,
    edited: ItemFormValues,
    *,
    tz: tzinfo | None = None,
    clear_missing_due: bool = False,
) -> UpdateItemArgs:
    """Shorthand for ``DiffPlanner(tz, clear_missing_due).plan(baseline, edited)``."""
    return DiffPlanner(tz=tz, clear_missing_due=clear_missing_due).plan(baseline, edited)
