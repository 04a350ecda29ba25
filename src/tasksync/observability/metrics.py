"""Metrics hook protocol and its no-op default.

The client reports counters and timings for each sync exchange.  Without a
configured backend a :class:`NoopMetricsHook` swallows them.  Any object
with matching ``increment`` and ``timing`` methods satisfies
:class:`MetricsHook`::

    assert isinstance(my_statsd_adapter, MetricsHook)

Emitted metric names:

* ``tasksync.requests_total``          -- counter, tagged by ``status``
* ``tasksync.request_duration_ms``     -- timing
* ``tasksync.commands_total``          -- counter, tagged by ``type``
* ``tasksync.command_failures_total``  -- counter, tagged by ``type``
* ``tasksync.merge_entities_total``    -- counter, tagged by ``collection``
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Protocol every metrics backend must satisfy.

    *tags* are string key/value pairs that the backend maps onto its own
    tagging scheme.
    """

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Add *value* to the counter *name*."""
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration of *ms* milliseconds under *name*."""
        ...


class NoopMetricsHook:
    """Metrics backend that drops every data point."""

    __slots__ = ()

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass
