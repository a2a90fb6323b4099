"""Errors raised by the client. Callers branch on ApiError.kind, never on message text."""

from typing import Any, Optional

import httpx

from schoolops.core.enums import ErrorKind
from schoolops.core.schemas import error_kind_for_status


class ApiError(Exception):
    def __init__(self, kind: ErrorKind, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"ApiError(kind={self.kind.value}, status_code={self.status_code}, message={self.message!r})"


class LocalValidationError(ApiError):
    """Input rejected before any request was sent."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.VALIDATION, message, status_code=None)


def error_from_response(response: httpx.Response) -> ApiError:
    """Build an ApiError from an error envelope, falling back to the HTTP status when the body is not one."""
    body: Any = None
    try:
        body = response.json()
    except ValueError:
        pass

    message = None
    kind = None
    if isinstance(body, dict):
        message = body.get("message") or body.get("detail")
        try:
            kind = ErrorKind(body.get("error_kind"))
        except ValueError:
            kind = None
    if kind is None:
        kind = error_kind_for_status(response.status_code)
    if not isinstance(message, str) or not message:
        message = response.reason_phrase or f"Request failed with status {response.status_code}"
    return ApiError(kind, message, status_code=response.status_code)
