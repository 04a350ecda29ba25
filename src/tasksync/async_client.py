"""Asynchronous tasksync client.

:class:`AsyncTaskSyncClient` mirrors :class:`~tasksync.client.TaskSyncClient`
but every I/O method is an ``async def`` coroutine and single flight is
enforced with an :class:`asyncio.Lock`.

Usage::

    import asyncio
    from tasksync import AddItemArgs, AsyncTaskSyncClient

    async def main():
        async with AsyncTaskSyncClient(token="0123456789abcdef") as client:
            await client.full_sync()
            item = await client.add_task(AddItemArgs(content="Buy milk"))
            print(item.id)

    asyncio.run(main())

Cancelling a pending call abandons the request and leaves the token,
snapshot and state at their pre-call values.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import tzinfo
from typing import Any

from tasksync.client import _ClientCore
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
from tasksync.models import (
    WILDCARD_SYNC_TOKEN,
    Item,
    ItemFormValues,
    Label,
    Project,
    Snapshot,
    SyncState,
)
from tasksync.sync_api import AsyncSyncTransport


class AsyncTaskSyncClient(_ClientCore):
    """Asynchronous client for the task sync endpoint.

    Parameters
    ----------
    token:
        Bearer token.  Ignored when *config* is given.
    config:
        A ready :class:`TaskSyncConfig`.
    **kwargs:
        Forwarded to :class:`TaskSyncConfig`.
    """

    def __init__(
        self,
        token: str = "",
        *,
        config: TaskSyncConfig | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(token, config, **kwargs)
        self._transport = AsyncSyncTransport(self._config)
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def full_sync(self) -> Snapshot:
        """Fetch the complete server state and install it wholesale."""
        async with self._lock:
            return await self._exchange(
                WILDCARD_SYNC_TOKEN, list(FULL_SYNC_RESOURCE_TYPES), (), full=True,
            )

    async def sync(
        self,
        *commands: Command,
        resource_types: Sequence[str] | None = None,
    ) -> Snapshot:
        """Run an incremental sync, submitting *commands*.

        See :meth:`TaskSyncClient.sync`.
        """
        async with self._lock:
            token, types = self._request_for(resource_types)
            return await self._exchange(token, types, commands, full=False)

    async def _exchange(
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
            raw = await self._transport.execute(token, resource_types, commands)
            merged = self._fold(raw, full)
            self._snapshot = merged
            installed = True
        finally:
            self._state = SyncState.SYNCED if installed else previous
        self._after_exchange(merged, commands, full)
        return merged

    async def load(self, snapshot: Snapshot) -> None:
        """Install a previously persisted *snapshot* as the current state."""
        async with self._lock:
            self._install_loaded(snapshot)

    # ------------------------------------------------------------------
    # Convenience operations
    # ------------------------------------------------------------------

    async def _submit(
        self,
        args: CommandArgs,
        *,
        uuid: str | None,
        temp_id: str | None = None,
    ) -> tuple[Command, Snapshot]:
        command = new_command(args, uuid=uuid, temp_id=temp_id)
        snapshot = await self.sync(command)
        self._check_outcome(snapshot, command)
        return command, snapshot

    async def add_task(
        self,
        args: AddItemArgs,
        *,
        uuid: str | None = None,
        temp_id: str | None = None,
    ) -> Item:
        """Create a task and return it under its permanent ID."""
        command, snapshot = await self._submit(args, uuid=uuid, temp_id=temp_id)
        return self._created_entity(snapshot, command, snapshot.items)

    async def update_task(self, args: UpdateItemArgs, *, uuid: str | None = None) -> Item | None:
        """Apply a partial update.  ``None`` means the item is unknown to this
        client; see :meth:`TaskSyncClient.update_task`."""
        _, snapshot = await self._submit(args, uuid=uuid)
        return snapshot.items.get(args.id)

    async def delete_task(self, item_id: str, *, uuid: str | None = None) -> None:
        await self._submit(DeleteItemArgs(id=item_id), uuid=uuid)

    async def complete_task(self, item_id: str, *, uuid: str | None = None) -> Item | None:
        """Mark a task as done.  ``None`` means the item is unknown to this client."""
        _, snapshot = await self._submit(CloseItemArgs(id=item_id), uuid=uuid)
        return snapshot.items.get(item_id)

    async def add_project(
        self,
        args: AddProjectArgs,
        *,
        uuid: str | None = None,
        temp_id: str | None = None,
    ) -> Project:
        command, snapshot = await self._submit(args, uuid=uuid, temp_id=temp_id)
        return self._created_entity(snapshot, command, snapshot.projects)

    async def add_label(
        self,
        args: AddLabelArgs,
        *,
        uuid: str | None = None,
        temp_id: str | None = None,
    ) -> Label:
        command, snapshot = await self._submit(args, uuid=uuid, temp_id=temp_id)
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
        """Compute the update patch for an edited item.  Pure; not awaited."""
        return diff_item(baseline, edited, tz=tz, clear_missing_due=clear_missing_due)

    async def update_task_from_form(
        self,
        baseline: Item,
        edited: ItemFormValues,
        *,
        tz: tzinfo | None = None,
        clear_missing_due: bool = False,
        uuid: str | None = None,
    ) -> Item | None:
        patch = self.diff(baseline, edited, tz=tz, clear_missing_due=clear_missing_due)
        if patch.is_empty:
            return baseline
        return await self.update_task(patch, uuid=uuid)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying transport."""
        await self._transport.close()

    async def __aenter__(self) -> AsyncTaskSyncClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
