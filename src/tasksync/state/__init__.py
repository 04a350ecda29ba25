"""Local state: snapshot merging and the persistence collaborator.

Exports
-------
merge
    Fold a decoded sync response into a previously held snapshot.
resolve_temp_ids
    Check that a temp-ID mapping resolves against a snapshot.
SnapshotStore
    Protocol for snapshot persistence backends.
InMemorySnapshotStore
    Process-local :class:`SnapshotStore`.
"""

from .merge import merge, resolve_temp_ids
from .store import InMemorySnapshotStore, SnapshotStore

__all__ = [
    "InMemorySnapshotStore",
    "SnapshotStore",
    "merge",
    "resolve_temp_ids",
]
