"""tasksync -- Client for a task-management service's sync protocol.

Public re-exports
-----------------

* **Clients:** :class:`TaskSyncClient`, :class:`AsyncTaskSyncClient`
* **Configuration:** :class:`TaskSyncConfig`
* **Commands:** :class:`Command`, :func:`new_command` and every argument type
* **Errors:** Every :class:`TaskSyncError` subclass and :class:`ErrorCode`
* **Models:** Snapshot, entities, due dates and form values
* **Engines:** :func:`merge`, :func:`diff_item`, :func:`equal_label_sets`

Usage::

    from tasksync import AddItemArgs, TaskSyncClient

    client = TaskSyncClient(token="0123456789abcdef")
    client.full_sync()
    item = client.add_task(AddItemArgs(content="Buy milk"))
"""

from __future__ import annotations

# ── Clients ────────────────────────────────────────────────────────────
from tasksync.async_client import AsyncTaskSyncClient
from tasksync.client import TaskSyncClient

# ── Commands ───────────────────────────────────────────────────────────
from tasksync.commands import (
    AddItemArgs,
    AddLabelArgs,
    AddProjectArgs,
    CloseItemArgs,
    Command,
    CommandType,
    DeleteItemArgs,
    UpdateItemArgs,
    new_command,
)

# ── Configuration ───────────────────────────────────────────────────────
from tasksync.config import (
    DEFAULT_RESOURCE_TYPES,
    FULL_SYNC_RESOURCE_TYPES,
    TaskSyncConfig,
    __version__,
)

# ── Engines ─────────────────────────────────────────────────────────────
from tasksync.diff import DiffPlanner, diff_item, equal_label_sets

# ── Errors ──────────────────────────────────────────────────────────────
from tasksync.errors import (
    ErrorCode,
    TaskSyncCommandError,
    TaskSyncDecodeError,
    TaskSyncError,
    TaskSyncHTTPStatusError,
    TaskSyncTempIdUnresolvedError,
    TaskSyncTransportError,
    TaskSyncValidationError,
)

# ── Models ──────────────────────────────────────────────────────────────
from tasksync.models import (
    CommandOutcome,
    DueDate,
    DueDateInput,
    Item,
    ItemFormValues,
    Label,
    Priority,
    Project,
    Section,
    Snapshot,
    SyncState,
)
from tasksync.state import InMemorySnapshotStore, SnapshotStore, merge

__all__ = [
    # Clients
    "AsyncTaskSyncClient",
    "TaskSyncClient",
    # Commands
    "AddItemArgs",
    "AddLabelArgs",
    "AddProjectArgs",
    "CloseItemArgs",
    "Command",
    "CommandType",
    "DeleteItemArgs",
    "UpdateItemArgs",
    "new_command",
    # Configuration
    "DEFAULT_RESOURCE_TYPES",
    "FULL_SYNC_RESOURCE_TYPES",
    "TaskSyncConfig",
    "__version__",
    # Engines
    "DiffPlanner",
    "diff_item",
    "equal_label_sets",
    "merge",
    # Errors
    "ErrorCode",
    "TaskSyncCommandError",
    "TaskSyncDecodeError",
    "TaskSyncError",
    "TaskSyncHTTPStatusError",
    "TaskSyncTempIdUnresolvedError",
    "TaskSyncTransportError",
    "TaskSyncValidationError",
    # Models
    "CommandOutcome",
    "DueDate",
    "DueDateInput",
    "Item",
    "ItemFormValues",
    "Label",
    "Priority",
    "Project",
    "Section",
    "Snapshot",
    "SyncState",
    # State
    "InMemorySnapshotStore",
    "SnapshotStore",
]
