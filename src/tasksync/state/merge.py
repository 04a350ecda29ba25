"""Fold sync responses into a previously held snapshot.

The server only returns entities that changed since the token the client
sent, so each entity in a delta replaces the base entity with the same ID
and everything else carries over.  Deleted and archived entities are kept:
lookups by ID (a project reference on an item, say) must keep working, and
hiding them is up to the presentation layer.

Merging is idempotent but order-sensitive.  Deltas must be applied in the
order the server produced them, because a later delta wins per entity.
"""

from __future__ import annotations

from typing import Any

from tasksync.errors import TaskSyncTempIdUnresolvedError
from tasksync.models import Snapshot
from tasksync.observability import NoopMetricsHook

_COLLECTIONS = ("items", "projects", "labels", "sections")


def _merge_collection(base: dict[str, Any], delta: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    merged.update(delta)
    return merged


def resolve_temp_ids(snapshot: Snapshot, temp_id_mapping: dict[str, str]) -> None:
    """Check that every permanent ID in *temp_id_mapping* names an entity.

    Raises
    ------
    TaskSyncTempIdUnresolvedError
        Naming the first temp ID whose entity is missing from *snapshot*.
    """
    for temp_id, permanent_id in temp_id_mapping.items():
        if not any(permanent_id in getattr(snapshot, name) for name in _COLLECTIONS):
            raise TaskSyncTempIdUnresolvedError(
                message=(
                    f"Temporary id {temp_id} maps to {permanent_id}, "
                    "which is not present in the synced state"
                ),
                context={"temp_id": temp_id, "permanent_id": permanent_id},
            )


def merge(base: Snapshot, delta: Snapshot, metrics: Any | None = None) -> Snapshot:
    """Return the snapshot obtained by applying *delta* on top of *base*.

    Neither argument is modified.

    Parameters
    ----------
    base:
        The snapshot held before the exchange.
    delta:
        The decoded response of the exchange.  When ``delta.full_sync`` is
        set the base collections are discarded.
    metrics:
        Optional metrics hook; receives ``tasksync.merge_entities_total``.

    Returns
    -------
    Snapshot
        Collections merged by ID; token, temp-ID mapping, command outcomes
        and full-sync flag taken from *delta*.  An empty delta token leaves
        the base token in place.

    Raises
    ------
    TaskSyncTempIdUnresolvedError
        If a temp ID in *delta* maps to an entity absent from the result.
    """
    hook = metrics if metrics is not None else NoopMetricsHook()
    start = Snapshot() if delta.full_sync else base

    merged = Snapshot(
        sync_token=delta.sync_token or base.sync_token,
        temp_id_mapping=dict(delta.temp_id_mapping),
        command_outcomes=dict(delta.command_outcomes),
        full_sync=delta.full_sync,
    )
    for name in _COLLECTIONS:
        changes = getattr(delta, name)
        setattr(merged, name, _merge_collection(getattr(start, name), changes))
        if changes:
            hook.increment("tasksync.merge_entities_total", len(changes), tags={"collection": name})

    resolve_temp_ids(merged, delta.temp_id_mapping)
    return merged
