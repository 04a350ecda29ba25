"""Diff engine: compute minimal update patches from edited form values.

Exports
-------
DiffPlanner
    Plans an :class:`~tasksync.commands.UpdateItemArgs` per edited item.
diff_item
    Functional shorthand for :meth:`DiffPlanner.plan`.
equal_label_sets
    Order-independent (multiset) label comparison.
resolve_due
    Picks the one due-date variant to send from the picker state.
same_due
    Whether a resolved due date leaves the baseline unchanged.
"""

from __future__ import annotations

from .due import resolve_due, same_due
from .labels import equal_label_sets
from .planner import DiffPlanner, diff_item

__all__ = [
    "DiffPlanner",
    "diff_item",
    "equal_label_sets",
    "resolve_due",
    "same_due",
]
