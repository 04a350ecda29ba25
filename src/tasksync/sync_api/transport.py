"""Sync and async HTTP transports for the sync endpoint.

Each transport performs exactly one request per :meth:`execute` call:

1. Encode the token, resource types and commands as a form body.
2. ``POST`` it to ``<base_url>sync``; :class:`BearerAuth` adds the
   ``Authorization`` header.
3. On ``2xx`` -- parse and return the JSON object.
4. On any other status -- raise :class:`TaskSyncHTTPStatusError` with the
   body preserved.
5. On timeout / connection failure -- raise :class:`TaskSyncTransportError`.

Nothing is retried here.  Resending the same commands is safe because
each carries its idempotency key, so retry policy is left to the caller.
"""

from __future__ import annotations

import json as _json
import sys
import time
from collections.abc import Callable, Generator, Sequence
from typing import Any

import httpx

from tasksync.commands import Command
from tasksync.config import TaskSyncConfig
from tasksync.errors import TaskSyncHTTPStatusError, TaskSyncTransportError
from tasksync.observability import NoopMetricsHook, get_logger

from .codec import encode_request, parse_json_body

log = get_logger("tasksync.transport")

SYNC_PATH = "sync"


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class BearerAuth(httpx.Auth):
    """Attach ``Authorization: Bearer <token>`` to every outgoing request.

    *token_provider* is called per request, so a token rotated by the host
    application takes effect on the next sync without rebuilding the
    transport.
    """

    def __init__(self, token_provider: Callable[[], str]) -> None:
        self._token_provider = token_provider

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Bearer {self._token_provider()}"
        yield request


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _raise_for_status(response: httpx.Response) -> None:
    """Raise :class:`TaskSyncHTTPStatusError` for any non-2xx response."""
    status = response.status_code
    if 200 <= status < 300:
        return
    body = response.text
    raise TaskSyncHTTPStatusError(
        message=f"Sync request to {response.request.url} returned {status}: {body[:200]}",
        context={"status_code": status, "body": body, "url": str(response.request.url)},
    )


def _dump_payload(
    url: str,
    form: dict[str, str],
    response_status: int | None,
    response_body: Any | None,
    token: str | None = None,
) -> None:
    """Write a redacted debug dump of the request/response to stderr."""
    from tasksync.utils.redact import redact

    dump: dict[str, Any] = {"method": "POST", "url": url, "request_form": form}
    if response_status is not None:
        dump["response_status"] = response_status
    if response_body is not None:
        dump["response_body"] = response_body
    print(_json.dumps(redact(dump, token), indent=2, default=str), file=sys.stderr)


def _emit_debug_dump(config: TaskSyncConfig, response: httpx.Response, form: dict[str, str]) -> None:
    if not config.debug_dump_payload:
        return
    try:
        resp_body: Any = response.json()
    except ValueError:
        resp_body = response.text[:1000]
    _dump_payload(
        str(response.request.url), form,
        response.status_code, resp_body,
        token=config.resolve_token(),
    )


def _network_error(exc: httpx.TransportError, url: str) -> TaskSyncTransportError:
    log.warning(
        "Sync request network error",
        extra={"extra_fields": {"op": "sync_request", "url": url, "error": str(exc)}},
    )
    return TaskSyncTransportError(
        message=f"Network error on POST {url}: {exc}",
        context={"url": url},
        cause=exc,
    )


def _client_kwargs(config: TaskSyncConfig) -> dict[str, Any]:
    return {
        "base_url": config.base_url,
        "headers": {"User-Agent": config.user_agent},
        "auth": BearerAuth(config.resolve_token),
        "timeout": httpx.Timeout(config.timeout_seconds),
        "proxy": config.http_proxy,
    }


class _TransportBase:
    def __init__(self, config: TaskSyncConfig) -> None:
        self._config = config
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()

    def _record(self, response: httpx.Response, elapsed_ms: float, form: dict[str, str]) -> None:
        status = str(response.status_code)
        self._metrics.increment("tasksync.requests_total", tags={"status": status})
        self._metrics.timing("tasksync.request_duration_ms", elapsed_ms, tags={"status": status})
        log.debug(
            "Sync request complete",
            extra={
                "extra_fields": {
                    "op": "sync_request",
                    "status_code": response.status_code,
                    "elapsed_ms": round(elapsed_ms, 1),
                    "resource_types": form["resource_types"],
                    "has_commands": "commands" in form,
                }
            },
        )
        _emit_debug_dump(self._config, response, form)

    def _record_failure(self) -> None:
        self._metrics.increment("tasksync.requests_total", tags={"status": "error"})


# ---------------------------------------------------------------------------
# Sync transport
# ---------------------------------------------------------------------------

class SyncTransport(_TransportBase):
    """Blocking transport for the sync endpoint.

    Parameters
    ----------
    config:
        A :class:`TaskSyncConfig` instance controlling transport behaviour.
    """

    def __init__(self, config: TaskSyncConfig) -> None:
        super().__init__(config)
        self._client = httpx.Client(**_client_kwargs(config))

    def execute(
        self,
        token: str,
        resource_types: Sequence[str],
        commands: Sequence[Command] = (),
    ) -> dict[str, Any]:
        """Issue one sync request and return the parsed response object.

        Parameters
        ----------
        token:
            ``"*"`` for a full sync, otherwise the last token returned.
        resource_types:
            Non-empty list of resource types to return.
        commands:
            Commands to submit with this sync.

        Raises
        ------
        TaskSyncValidationError
            If *token* or *resource_types* is empty.  No request is sent.
        TaskSyncTransportError
            On timeout or connection failure.
        TaskSyncHTTPStatusError
            On a non-2xx response.
        TaskSyncDecodeError
            If the body is not a JSON object.
        """
        form = encode_request(token, resource_types, commands)
        t0 = time.monotonic()
        try:
            response = self._client.post(SYNC_PATH, data=form)
        except httpx.TransportError as exc:
            self._record_failure()
            raise _network_error(exc, SYNC_PATH) from exc
        self._record(response, (time.monotonic() - t0) * 1000, form)
        _raise_for_status(response)
        return parse_json_body(response.text)

    def close(self) -> None:
        """Close the underlying HTTP client and release resources."""
        self._client.close()

    def __enter__(self) -> SyncTransport:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Async transport
# ---------------------------------------------------------------------------

class AsyncSyncTransport(_TransportBase):
    """Non-blocking transport for the sync endpoint.

    Mirrors :class:`SyncTransport` on ``httpx.AsyncClient``.  Cancelling
    the awaiting task abandons the request.
    """

    def __init__(self, config: TaskSyncConfig) -> None:
        super().__init__(config)
        self._client = httpx.AsyncClient(**_client_kwargs(config))

    async def execute(
        self,
        token: str,
        resource_types: Sequence[str],
        commands: Sequence[Command] = (),
    ) -> dict[str, Any]:
        """Issue one sync request (async).

        See :meth:`SyncTransport.execute` for parameters and errors.
        """
        form = encode_request(token, resource_types, commands)
        t0 = time.monotonic()
        try:
            response = await self._client.post(SYNC_PATH, data=form)
        except httpx.TransportError as exc:
            self._record_failure()
            raise _network_error(exc, SYNC_PATH) from exc
        self._record(response, (time.monotonic() - t0) * 1000, form)
        _raise_for_status(response)
        return parse_json_body(response.text)

    async def close(self) -> None:
        """Close the underlying async HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncSyncTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
