"""Synchronous tasksync client.

:class:`TaskSyncClient` owns the sync token and the merged
:class:`~tasksync.models.Snapshot`.  Every exchange with the server goes
through :meth:`TaskSyncClient.sync` (or :meth:`~TaskSyncClient.full_sync`),
which holds a lock for the duration of the request so that at most one call
is in flight per client.

Usage::

    from tasksync import AddItemArgs, TaskSyncClient

    with TaskSyncClient(token="0123456789abcdef") as client:
        client.full_sync()
        item = client.add_task(AddItemArgs(content="Buy milk"))
        print(item.id)

Failure semantics
-----------------
Validation, transport, HTTP-status, decode and temp-ID failures leave the
token, snapshot and state exactly as they were before the call, so the same
commands can be resent.  A command rejected by the server does not abort
the exchange: the snapshot advances, and the convenience operations raise
:class:`~tasksync.errors.TaskSyncCommandError` afterwards.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from datetime import tzinfo
from typing import Any, TypeVar

from tasksync.commands import (
    AddItemArgs,
    AddLabelArgs,
    AddProjectArgs,
    CloseItemArgs,
    Command,
    CommandArgs,
    DeleteItemArgs,
    UpdateItemArgs,
    new_command,
)
from tasksync.config import FULL_SYNC_RESOURCE_TYPES, TaskSyncConfig
from tasksync.diff import diff_item
from tasksync.errors import TaskSyncCommandError, TaskSyncTempIdUnresolvedError
from tasksync.models import (
    WILDCARD_SYNC_TOKEN,
    Item,
    ItemFormValues,
    Label,
    Project,
    Snapshot,
    SyncState,
)
from tasksync.observability import NoopMetricsHook, get_logger
from tasksync.state import merge
from tasksync.sync_api import SyncTransport, decode_response

log = get_logger("tasksync.client")

_E = TypeVar("_E")


class _ClientCore:
    """State and bookkeeping shared by the sync and async clients.

    Subclasses own the transport and the lock; everything here is free of
    I/O.
    """

    def __init__(self, token: str, config: TaskSyncConfig | None, **kwargs: Any) -> None:
        if config is None:
            config = TaskSyncConfig(token=token, **kwargs)
        elif token or kwargs:
            raise TypeError("Pass either a config or token/keyword options, not both")
        self._config = config
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()
        self._snapshot = Snapshot()
        self._state = SyncState.UNINITIALIZED

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def config(self) -> TaskSyncConfig:
        return self._config

    @property
    def snapshot(self) -> Snapshot:
        """The snapshot installed by the last successful exchange."""
        return self._snapshot

    @property
    def sync_token(self) -> str:
        return self._snapshot.sync_token

    @property
    def state(self) -> SyncState:
        return self._state

    # ------------------------------------------------------------------
    # Exchange bookkeeping
    # ------------------------------------------------------------------

    def _install_loaded(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot
        self._state = (
            SyncState.UNINITIALIZED
            if snapshot.sync_token == WILDCARD_SYNC_TOKEN
            else SyncState.SYNCED
        )

    def _request_for(
        self,
        resource_types: Sequence[str] | None,
    ) -> tuple[str, list[str]]:
        """Token and resource types of the next incremental sync."""
        types = list(resource_types) if resource_types is not None else list(
            self._config.incremental_resource_types
        )
        return self._snapshot.sync_token, types

    def _fold(self, raw: dict[str, Any], full: bool) -> Snapshot:
        """Decode *raw* and merge it into the held snapshot.

        Does not install the result; raising here leaves the client as it
        was.
        """
        delta = decode_response(raw)
        base = Snapshot() if full else self._snapshot
        return merge(base, delta, self._metrics)

    def _after_exchange(
        self,
        snapshot: Snapshot,
        commands: Sequence[Command],
        full: bool,
    ) -> None:
        failed = 0
        for command in commands:
            tags = {"type": command.type.value}
            self._metrics.increment("tasksync.commands_total", tags=tags)
            outcome = snapshot.outcome_for(command.uuid)
            if outcome is not None and not outcome.ok:
                failed += 1
                self._metrics.increment("tasksync.command_failures_total", tags=tags)
        log.info(
            "Full sync complete" if full else "Sync complete",
            extra={"extra_fields": {
                "op": "full_sync" if full else "sync",
                "commands": len(commands),
                "failed_commands": failed,
                "items": len(snapshot.items),
                "projects": len(snapshot.projects),
                "labels": len(snapshot.labels),
                "sections": len(snapshot.sections),
            }},
        )

    @staticmethod
    def _check_outcome(snapshot: Snapshot, command: Command) -> None:
        """Raise :class:`TaskSyncCommandError` unless *command* succeeded."""
        outcome = snapshot.outcome_for(command.uuid)
        if outcome is not None and outcome.ok:
            return
        if outcome is None:
            error, error_code = "the server reported no status for this command", None
        else:
            error, error_code = outcome.error, outcome.error_code
        log.warning(
            "Command rejected",
            extra={"extra_fields": {
                "op": "command",
                "uuid": command.uuid,
                "command_type": command.type.value,
                "error_code": error_code,
                "error": error,
            }},
        )
        raise TaskSyncCommandError(
            message=f"{command.type.value} failed: {error}",
            context={
                "uuid": command.uuid,
                "command_type": command.type.value,
                "error_code": error_code,
                "error": error,
            },
        )

    @staticmethod
    def _created_entity(snapshot: Snapshot, command: Command, collection: dict[str, _E]) -> _E:
        """Entity in *collection* that *command* created.

        Raises
        ------
        TaskSyncTempIdUnresolvedError
            If the response has no mapping for the command's temp ID, or the
            mapped ID names nothing in *collection*.
        """
        permanent_id = snapshot.resolve_id(command.temp_id) if command.temp_id else None
        if permanent_id is None:
            raise TaskSyncTempIdUnresolvedError(
                message=(
                    f"{command.type.value} succeeded but the response has no "
                    f"mapping for temporary id {command.temp_id}"
                ),
                context={"temp_id": command.temp_id, "permanent_id": None},
            )
        entity = collection.get(permanent_id)
        if entity is None:
            raise TaskSyncTempIdUnresolvedError(
                message=(
                    f"{command.type.value} succeeded but temporary id {command.temp_id} "
                    f"maps to {permanent_id}, which is not a created "
                    f"{command.type.value.split('_')[0]}"
                ),
                context={"temp_id": command.temp_id, "permanent_id": permanent_id},
            )
        return entity


class TaskSyncClient(_ClientCore):
    """Synchronous client for the task sync endpoint.

    Parameters
    ----------
    token:
        Bearer token.  Ignored when *config* is given.
    config:
        A ready :class:`TaskSyncConfig`.  Mutually exclusive with *token*
        and keyword options.
    **kwargs:
        All remaining keyword arguments are forwarded to
        :class:`TaskSyncConfig`.
    """

    def __init__(
        self,
        token: str = "",
        *,
        config: TaskSyncConfig | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(token, config, **kwargs)
        self._transport = SyncTransport(self._config)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def full_sync(self) -> Snapshot:
        """Fetch the complete server state and install it wholesale.

        Any previously held token is discarded.
        """
        with self._lock:
            return self._exchange(
                WILDCARD_SYNC_TOKEN, list(FULL_SYNC_RESOURCE_TYPES), (), full=True,
            )

    def sync(
        self,
        *commands: Command,
        resource_types: Sequence[str] | None = None,
    ) -> Snapshot:
        """Run an incremental sync, submitting *commands*.

        Uses the stored token (``"*"`` before the first sync) and the
        configured incremental resource types unless *resource_types* is
        given.  Per-command outcomes are in ``snapshot.command_outcomes``;
        rejected commands do not raise here.

        Raises
        ------
        TaskSyncValidationError, TaskSyncTransportError,
        TaskSyncHTTPStatusError, TaskSyncDecodeError,
        TaskSyncTempIdUnresolvedError
            The exchange failed; token and snapshot are unchanged.
        """
        with self._lock:
            token, types = self._request_for(resource_types)
            return self._exchange(token, types, commands, full=False)

    def _exchange(
        self,
        token: str,
        resource_types: list[str],
        commands: Sequence[Command],
        full: bool,
    ) -> Snapshot:
        previous = self._state
        self._state = SyncState.FULL_SYNC_PENDING if full else SyncState.INCREMENTAL_SYNC_PENDING
        installed = False
        try:
            raw = self._transport.execute(token, resource_types, commands)
            merged = self._fold(raw, full)
            self._snapshot = merged
            installed = True
        finally:
            self._state = SyncState.SYNCED if installed else previous
        self._after_exchange(merged, commands, full)
        return merged

    def load(self, snapshot: Snapshot) -> None:
        """Install a previously persisted *snapshot* as the current state."""
        with self._lock:
            self._install_loaded(snapshot)

    # ------------------------------------------------------------------
    # Convenience operations
    # ------------------------------------------------------------------

    def _submit(self, args: CommandArgs, *, uuid: str | None, temp_id: str | None = None) -> tuple[Command, Snapshot]:
        command = new_command(args, uuid=uuid, temp_id=temp_id)
        snapshot = self.sync(command)
        self._check_outcome(snapshot, command)
        return command, snapshot

    def add_task(
        self,
        args: AddItemArgs,
        *,
        uuid: str | None = None,
        temp_id: str | None = None,
    ) -> Item:
        """Create a task and return it under its permanent ID.

        Raises
        ------
        TaskSyncValidationError
            If ``args.content`` is empty.  Nothing is sent.
        TaskSyncCommandError
            If the server rejected the command.
        """
        command, snapshot = self._submit(args, uuid=uuid, temp_id=temp_id)
        return self._created_entity(snapshot, command, snapshot.items)

    def update_task(self, args: UpdateItemArgs, *, uuid: str | None = None) -> Item | None:
        """Apply a partial update and return the item as now synced.

        Returns ``None`` when the server accepted the command but the item is
        in neither the response nor the held snapshot, i.e. it is unknown to
        this client (typically because no full sync has run yet).

        Raises
        ------
        TaskSyncCommandError
            If the server rejected the update.
        """
        _, snapshot = self._submit(args, uuid=uuid)
        return snapshot.items.get(args.id)

    def delete_task(self, item_id: str, *, uuid: str | None = None) -> None:
        self._submit(DeleteItemArgs(id=item_id), uuid=uuid)

    def complete_task(self, item_id: str, *, uuid: str | None = None) -> Item | None:
        """Mark a task as done and return it as now synced.

        ``None`` means the item is unknown to this client, as for
        :meth:`update_task`.
        """
        _, snapshot = self._submit(CloseItemArgs(id=item_id), uuid=uuid)
        return snapshot.items.get(item_id)

    def add_project(
        self,
        args: AddProjectArgs,
        *,
        uuid: str | None = None,
        temp_id: str | None = None,
    ) -> Project:
        command, snapshot = self._submit(args, uuid=uuid, temp_id=temp_id)
        return self._created_entity(snapshot, command, snapshot.projects)

    def add_label(
        self,
        args: AddLabelArgs,
        *,
        uuid: str | None = None,
        temp_id: str | None = None,
    ) -> Label:
        command, snapshot = self._submit(args, uuid=uuid, temp_id=temp_id)
        return self._created_entity(snapshot, command, snapshot.labels)

    # ------------------------------------------------------------------
    # Diff
    # ------------------------------------------------------------------

    def diff(
        self,
        baseline: Item,
        edited: ItemFormValues,
        *,
        tz: tzinfo | None = None,
        clear_missing_due: bool = False,
    ) -> UpdateItemArgs:
        """Compute the update patch for an edited item without sending it."""
        return diff_item(baseline, edited, tz=tz, clear_missing_due=clear_missing_due)

    def update_task_from_form(
        self,
        baseline: Item,
        edited: ItemFormValues,
        *,
        tz: tzinfo | None = None,
        clear_missing_due: bool = False,
        uuid: str | None = None,
    ) -> Item | None:
        """Diff *edited* against *baseline* and submit the patch.

        When nothing changed no request is made and *baseline* is returned.
        """
        patch = self.diff(baseline, edited, tz=tz, clear_missing_due=clear_missing_due)
        if patch.is_empty:
            return baseline
        return self.update_task(patch, uuid=uuid)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the underlying transport."""
        self._transport.close()

    def __enter__(self) -> TaskSyncClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
