"""Persistence collaborator for snapshots.

The client never loads or saves on its own; the host application calls
:meth:`SnapshotStore.load` before the first sync and
:meth:`SnapshotStore.save` after each one.  Only the persistent part of a
snapshot is kept (see :meth:`Snapshot.to_dict`).
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tasksync.models import Snapshot


@runtime_checkable
class SnapshotStore(Protocol):
    """Protocol for snapshot persistence backends."""

    def load(self) -> Snapshot:
        """Return the stored snapshot, or an empty one if nothing is stored."""
        ...

    def save(self, snapshot: Snapshot) -> None:
        """Persist *snapshot*, replacing whatever was stored before."""
        ...


class InMemorySnapshotStore:
    """Process-local store.  Round-trips through the serialised form so it
    drops exactly what a real backend would drop."""

    def __init__(self) -> None:
        self._data: dict | None = None

    def load(self) -> Snapshot:
        if self._data is None:
            return Snapshot()
        return Snapshot.from_dict(self._data)

    def save(self, snapshot: Snapshot) -> None:
        self._data = snapshot.to_dict()
