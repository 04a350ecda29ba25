"""Single-line JSON logging for tasksync.

Each record becomes one JSON object, so sync exchanges can be followed in a
log file or shipped to an aggregator without a custom parser::

    {"ts": "2026-10-19T08:00:00.000000+00:00", "level": "INFO",
     "logger": "tasksync.client", "message": "Sync complete",
     "op": "sync", "commands": 1, "items": 3}

Structured fields are passed with ``extra={"extra_fields": {...}}``::

    from tasksync.observability import get_logger

    log = get_logger("tasksync.client")
    log.info("Sync complete", extra={"extra_fields": {"op": "sync"}})

Bearer tokens must never be placed in ``extra_fields``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from tasksync.utils.redact import redact

_RESERVED_KEYS = frozenset({"ts", "level", "logger", "message", "exception", "stack_info"})


class StructuredFormatter(logging.Formatter):
    """Render log records as JSON objects.

    Guaranteed keys are ``ts`` (UTC ISO-8601), ``level``, ``logger`` and
    ``message``.  Fields from ``record.extra_fields`` are merged in at the
    top level, and ``exception`` / ``stack_info`` appear when the record
    carries them.

    An extra field named like a guaranteed key is dropped rather than
    overwriting it.  Extra fields pass through
    :func:`~tasksync.utils.redact.redact`, so a credential-like key (but
    not ``sync_token``) is masked even if a caller logs one by mistake.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        fields: dict[str, Any] | None = getattr(record, "extra_fields", None)
        if fields:
            for key, value in redact(fields).items():
                if key not in _RESERVED_KEYS:
                    entry[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str)


# Logger names that already carry our handler; keeps get_logger idempotent.
_configured_loggers: set[str] = set()


def get_logger(
    name: str = "tasksync",
    *,
    level: int | str = logging.DEBUG,
    stream: Any | None = None,
) -> logging.Logger:
    """Return a logger that writes :class:`StructuredFormatter` output.

    Parameters
    ----------
    name:
        Logger name, e.g. ``"tasksync.transport"``.
    level:
        Level set on first configuration, as an ``int`` or a level name.
        Defaults to ``DEBUG``; the host application narrows it afterwards.
    stream:
        Handler stream.  Defaults to ``sys.stderr``.

    Returns
    -------
    logging.Logger
        The configured logger.  Repeated calls with the same *name* do not
        add a second handler.
    """
    logger = logging.getLogger(name)

    if name not in _configured_loggers:
        resolved_level = (
            logging.getLevelName(level.upper())
            if isinstance(level, str)
            else level
        )
        logger.setLevel(resolved_level)

        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.propagate = False

        _configured_loggers.add(name)

    return logger
