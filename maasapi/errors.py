"""Errors raised when talking to a MAAS controller."""

from __future__ import annotations

from collections.abc import Mapping
from http import HTTPStatus


class MaasError(Exception):
    """Base class for all errors raised by this package."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class DeserializationError(MaasError):
    """A response did not have the shape expected of it."""


class UnsupportedVersionError(MaasError):
    """No reader exists for the controller's API version."""


class NotValidError(MaasError, ValueError):
    """Arguments given to an operation are not valid."""


class NoMatchError(MaasError):
    """The requested resource does not exist."""


class BadRequestError(MaasError):
    """The controller rejected the request as malformed or inapplicable."""


class PermissionDeniedError(MaasError):
    """The user may not perform the requested operation."""


class CannotCompleteError(MaasError):
    """The controller could not complete the request, e.g. no addresses left."""


class UnexpectedError(MaasError):
    """An error the caller was not prepared for."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"unexpected: {cause}")
        self.cause = cause


class ServerError(MaasError):
    """The controller answered with a non-success HTTP status."""

    def __init__(self, status_code: int, body_message: str) -> None:
        try:
            phrase = HTTPStatus(status_code).phrase
        except ValueError:
            phrase = ""
        status = f"{status_code} {phrase}".rstrip()
        super().__init__(f"ServerError: {status} ({body_message})")
        self.status_code = status_code
        self.body_message = body_message


def translate_server_error(
    error: BaseException, mapping: Mapping[int, type[MaasError]]
) -> MaasError:
    """Map a failed request to the error the caller should see.

    If ``error`` is, or was caused by, a :class:`ServerError` whose status
    appears in ``mapping``, the mapped class is built from the server's
    message. Anything else becomes an :class:`UnexpectedError`.
    """
    current: BaseException | None = error
    while current is not None:
        if isinstance(current, ServerError):
            kind = mapping.get(current.status_code)
            if kind is not None:
                result = kind(current.body_message)
                result.__cause__ = error
                return result
            break
        current = current.__cause__
    unexpected = UnexpectedError(error)
    unexpected.__cause__ = error
    return unexpected