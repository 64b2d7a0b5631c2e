from __future__ import annotations

from typing import Any

import httpx


class ClientError(Exception):
    """Base error for failed API calls."""

    code = "error"

    def __init__(self, message: str, *, reason: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code


class ClientValidationError(ClientError):
    code = "validation"


class ClientUnauthorizedError(ClientError):
    code = "unauthorized"


class ClientForbiddenError(ClientError):
    code = "forbidden"


class ClientNotFoundError(ClientError):
    code = "not_found"


class ClientConflictError(ClientError):
    code = "conflict"


class ClientUnavailableError(ClientError):
    code = "unavailable"


_BY_CODE: dict[str, type[ClientError]] = {
    error_type.code: error_type
    for error_type in (
        ClientValidationError,
        ClientUnauthorizedError,
        ClientForbiddenError,
        ClientNotFoundError,
        ClientConflictError,
        ClientUnavailableError,
    )
}

_BY_STATUS: dict[int, type[ClientError]] = {
    400: ClientValidationError,
    401: ClientUnauthorizedError,
    403: ClientForbiddenError,
    404: ClientNotFoundError,
    409: ClientConflictError,
    422: ClientValidationError,
    503: ClientUnavailableError,
}


def error_from_response(response: httpx.Response) -> ClientError:
    code: str | None = None
    reason: str | None = None
    message = response.reason_phrase or f"HTTP {response.status_code}"

    try:
        detail: Any = response.json().get("detail")
    except (ValueError, AttributeError):
        detail = None

    if isinstance(detail, dict):
        code = detail.get("code")
        reason = detail.get("reason")
        message = detail.get("message") or message
    elif isinstance(detail, str):
        message = detail
    elif isinstance(detail, list) and detail:
        message = "; ".join(str(item.get("msg", item)) if isinstance(item, dict) else str(item) for item in detail)

    error_type = _BY_CODE.get(code or "") or _BY_STATUS.get(response.status_code, ClientError)
    return error_type(message, reason=reason, status_code=response.status_code)
