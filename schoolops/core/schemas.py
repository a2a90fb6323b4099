"""Response envelope shared by every route: {data, message} on success, {data: null, message, error_kind} on error."""

from typing import Generic, Optional, TypeVar

from fastapi import status
from pydantic import BaseModel

from schoolops.core.enums import ErrorKind

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    data: Optional[T] = None
    message: Optional[str] = None


class ErrorEnvelope(BaseModel):
    data: None = None
    message: str
    error_kind: ErrorKind


def error_kind_for_status(status_code: int) -> ErrorKind:
    if status_code == status.HTTP_409_CONFLICT:
        return ErrorKind.CONFLICT
    if status_code in (status.HTTP_400_BAD_REQUEST, status.HTTP_422_UNPROCESSABLE_ENTITY):
        return ErrorKind.VALIDATION
    if status_code == status.HTTP_404_NOT_FOUND:
        return ErrorKind.NOT_FOUND
    if status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN):
        return ErrorKind.FORBIDDEN
    return ErrorKind.UNKNOWN
