"""Error types and normalization into the shared error envelope."""

from __future__ import annotations

from dataclasses import dataclass, field

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from aws_account_mcp.utils.time import utc_now_iso

UNKNOWN_ERROR_CODE = "UnknownError"
VALIDATION_ERROR_CODE = "ValidationError"
UNSUPPORTED_OPERATION_CODE = "UnsupportedOperation"

RETRIABLE_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "RequestLimitExceeded",
        "RequestThrottled",
        "TooManyRequestsException",
        "RequestTimeout",
        "RequestTimeoutException",
    }
)

_RETRIABLE_BOTOCORE = (
    ConnectTimeoutError,
    ReadTimeoutError,
    EndpointConnectionError,
    ConnectionClosedError,
)


class AWSServiceError(Exception):
    """Error raised by this server with an explicit error code."""

    default_code = "AWSServiceError"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        service: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.service = service
        self.operation = operation


class ProfileError(AWSServiceError):
    default_code = "ProfileError"

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(message, service="ProfileService", operation=operation)


class ResourceNotFoundError(AWSServiceError):
    default_code = "ResourceNotFound"


class InsightsQueryError(AWSServiceError):
    """Terminal Logs Insights outcome other than Complete."""

    def __init__(self, code: str, message: str, query_id: str | None = None) -> None:
        super().__init__(message, code=code, service="logs", operation="insights-query")
        self.query_id = query_id


class ToolInputError(ValueError):
    """Invalid tool arguments; ``field`` names the offending argument when known."""

    code = VALIDATION_ERROR_CODE

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class UnsupportedOperationError(ToolInputError):
    code = UNSUPPORTED_OPERATION_CODE

    def __init__(self, message: str, supported: list[str] | None = None) -> None:
        super().__init__(message)
        self.supported = supported or []


@dataclass
class ErrorDetails:
    code: str
    message: str
    service: str | None = None
    operation: str | None = None
    timestamp: str = field(default_factory=utc_now_iso)
    retryable: bool = False

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"code": self.code, "message": self.message}
        if self.service:
            payload["service"] = self.service
        if self.operation:
            payload["operation"] = self.operation
        payload["timestamp"] = self.timestamp
        payload["retryable"] = self.retryable
        return payload


def normalize_error(
    exc: object,
    service: str | None = None,
    operation: str | None = None,
) -> ErrorDetails:
    """Collapse any raised value into ``ErrorDetails``.

    Explicit ``service``/``operation`` arguments only fill in what the error
    itself does not carry.
    """
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {}) if isinstance(exc.response, dict) else {}
        return ErrorDetails(
            code=str(error.get("Code") or UNKNOWN_ERROR_CODE),
            message=str(error.get("Message") or exc),
            service=service,
            operation=exc.operation_name or operation,
            retryable=is_retriable(exc),
        )
    if isinstance(exc, ToolInputError):
        return ErrorDetails(
            code=exc.code,
            message=str(exc),
            service=service,
            operation=operation,
        )
    if isinstance(exc, AWSServiceError):
        return ErrorDetails(
            code=exc.code,
            message=exc.message,
            service=exc.service or service,
            operation=exc.operation or operation,
        )
    if isinstance(exc, BotoCoreError):
        return ErrorDetails(
            code=type(exc).__name__,
            message=str(exc),
            service=service,
            operation=operation,
            retryable=is_retriable(exc),
        )
    return ErrorDetails(
        code=UNKNOWN_ERROR_CODE,
        message=str(exc) if not isinstance(exc, BaseException) or str(exc) else type(exc).__name__,
        service=service,
        operation=operation,
    )


def is_retriable(exc: object) -> bool:
    """Classify transient failures; callers decide whether to retry."""
    if isinstance(exc, ClientError):
        code = exc.response.get("Error", {}).get("Code", "") if isinstance(exc.response, dict) else ""
        return code in RETRIABLE_CODES
    return isinstance(exc, _RETRIABLE_BOTOCORE)
