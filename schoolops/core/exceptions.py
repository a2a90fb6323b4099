from fastapi import status

from schoolops.core.enums import ErrorKind
from schoolops.core.schemas import error_kind_for_status


class ServiceError(Exception):
    """Business-rule failure raised by services; routers turn it into an HTTP error with the same status."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def kind(self) -> ErrorKind:
        return error_kind_for_status(self.status_code)
