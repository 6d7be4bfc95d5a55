"""Failure taxonomy of the data-source engine.

Every failure that reaches the user is one of three kinds:

- `NotFoundError`: the entity the table depends on is gone;
- `ValidationFailure`: a precondition checked before any network call;
- `TransportFailure`: the network, the authentication layer or the server
  failed.

None of them is fatal; the data source that raised them stays usable.
"""

from enum import StrEnum
from typing import Any, Optional

HTTP_UNAUTHORIZED = 401
HTTP_NOT_FOUND = 404


class FailureStatus(StrEnum):
    NOT_FOUND = "not-found"
    VALIDATION = "validation"
    GENERIC = "generic"


class TableError(Exception):
    """Base class for the failures of the engine.

    Attributes:
        status: Machine readable status of the failure.
        key: The translation key of the message to show to the user.
        message: The default (untranslated) message.
        details: Anything the producer wants to attach (usually the raw
            backend response).
    """

    status: FailureStatus = FailureStatus.GENERIC
    key: str
    message: str
    details: Any

    def __init__(
        self,
        message: str,
        key: str = "general.error_backend",
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.key = key
        self.details = details

    def as_dict(self) -> dict:
        return {
            "status": str(self.status),
            "key": self.key,
            "message": self.message,
        }


class NotFoundError(TableError):
    """The referenced parent entity vanished."""

    status = FailureStatus.NOT_FOUND

    def __init__(
        self,
        message: str = "The requested item was not found",
        key: str = "general.not_found",
        details: Any = None,
    ):
        super().__init__(message, key, details)


class ValidationFailure(TableError):
    """A caller-side precondition failed; no network call was made."""

    status = FailureStatus.VALIDATION

    def __init__(
        self,
        message: str,
        key: str = "general.invalid_value",
        details: Any = None,
    ):
        super().__init__(message, key, details)


class TransportFailure(TableError):
    """Network, authentication or server error.

    Attributes:
        http_status: The HTTP status code, if the failure came from an HTTP
            response.
    """

    status = FailureStatus.GENERIC
    http_status: Optional[int]

    def __init__(
        self,
        message: str,
        key: str = "general.error_backend",
        details: Any = None,
        http_status: Optional[int] = None,
    ):
        super().__init__(message, key, details)
        self.http_status = http_status

    @property
    def is_auth_expired(self) -> bool:
        """True if the session of the user is no longer valid."""
        return self.http_status == HTTP_UNAUTHORIZED

    def as_dict(self) -> dict:
        result = super().as_dict()
        result["http_status"] = self.http_status
        return result


def as_failure(
    error: BaseException, key: str = "general.error_backend"
) -> TableError:
    """Convert an arbitrary exception into a failure of the engine.

    Failures are returned unchanged. Other exceptions become a
    `TransportFailure`; if they carry a `status_code` or `status` integer
    attribute (as HTTP client exceptions usually do) it is preserved, and a
    404 becomes a `NotFoundError`.
    """
    if isinstance(error, TableError):
        return error

    http_status = getattr(error, "status_code", None)
    if not isinstance(http_status, int):
        http_status = getattr(error, "status", None)
    if not isinstance(http_status, int):
        http_status = None

    if http_status == HTTP_NOT_FOUND:
        return NotFoundError(str(error), details=error)
    return TransportFailure(
        str(error) or error.__class__.__name__,
        key=key,
        details=error,
        http_status=http_status,
    )
