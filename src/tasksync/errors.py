"""Error hierarchy for the tasksync client.

Every public error class inherits from :class:`TaskSyncError`.  Each carries
a machine-readable ``code`` (from :class:`ErrorCode`), a human-readable
``message``, an optional structured ``context`` dict, and an optional
``cause`` (chained exception).

Errors fall into two groups:

* **Call-aborting** -- :class:`TaskSyncValidationError`,
  :class:`TaskSyncTransportError`, :class:`TaskSyncHTTPStatusError`,
  :class:`TaskSyncDecodeError` and :class:`TaskSyncTempIdUnresolvedError`.
  The client's token and snapshot are left untouched.
* **Per-command** -- :class:`TaskSyncCommandError`.  The sync exchange
  itself succeeded and the snapshot has already advanced.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error the client can raise."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    HTTP_STATUS_ERROR = "HTTP_STATUS_ERROR"
    DECODE_ERROR = "DECODE_ERROR"
    COMMAND_ERROR = "COMMAND_ERROR"
    TEMP_ID_UNRESOLVED = "TEMP_ID_UNRESOLVED"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class TaskSyncError(Exception):
    """Base exception for all tasksync errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.
    context:
        Arbitrary structured data providing extra diagnostic detail.
        Keys are documented per subclass.
    cause:
        The underlying exception, if this error wraps another.
    """

    is_retryable: bool = False

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


# ---------------------------------------------------------------------------
# Pre-flight errors
# ---------------------------------------------------------------------------

class TaskSyncValidationError(TaskSyncError):
    """Malformed input caught before any network call was attempted.

    Context keys: ``field``, ``command_type``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Transport errors
# ---------------------------------------------------------------------------

class TaskSyncTransportError(TaskSyncError):
    """A network-level failure occurred (timeout, DNS, connection reset).

    Context keys: ``url``.
    """

    is_retryable = True

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.TRANSPORT_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class TaskSyncHTTPStatusError(TaskSyncError):
    """The sync endpoint answered with a non-2xx status.

    The response body is preserved verbatim for diagnostics.

    Context keys: ``status_code``, ``body``, ``url``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.HTTP_STATUS_ERROR,
            message=message,
            context=context,
            cause=cause,
        )

    @property
    def status_code(self) -> int | None:
        return self.context.get("status_code")

    @property
    def body(self) -> str:
        return self.context.get("body", "")

    @property
    def is_retryable(self) -> bool:  # type: ignore[override]
        status = self.status_code
        return status is not None and (status == 429 or status >= 500)


class TaskSyncDecodeError(TaskSyncError):
    """The response body is not valid JSON or does not match the expected
    sync response shape.

    Context keys: ``field``, ``body``.
    """

    is_retryable = True

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.DECODE_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Protocol-level errors
# ---------------------------------------------------------------------------

class TaskSyncCommandError(TaskSyncError):
    """The server rejected a specific command in an otherwise successful sync.

    Context keys: ``uuid``, ``command_type``, ``error_code``, ``error``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.COMMAND_ERROR,
            message=message,
            context=context,
            cause=cause,
        )

    @property
    def server_error(self) -> str | None:
        """The server's error message for the failed command."""
        return self.context.get("error")

    @property
    def server_error_code(self) -> int | None:
        return self.context.get("error_code")


class TaskSyncTempIdUnresolvedError(TaskSyncError):
    """A temporary ID could not be resolved to an entity in the response.

    Indicates a protocol mismatch between client and server; the merged
    snapshot is not installed.

    Context keys: ``temp_id``, ``permanent_id``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.TEMP_ID_UNRESOLVED,
            message=message,
            context=context,
            cause=cause,
        )

    @property
    def temp_id(self) -> str | None:
        return self.context.get("temp_id")
