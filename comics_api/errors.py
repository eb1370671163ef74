"""Exception types raised by the comics service."""

from __future__ import annotations

from fastapi import status


class ComicsError(Exception):
    """Base class for errors that map onto an HTTP error envelope."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ComicsError):
    """Input failed the comic field rules."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidIdError(ComicsError):
    """The identifier is not in the format the store expects."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Invalid comic ID format") -> None:
        super().__init__(message)


class NotFoundError(ComicsError):
    """No comic exists with the requested identifier."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Comic not found") -> None:
        super().__init__(message)


class StoreError(ComicsError):
    """The backing store failed to complete an operation.

    Read paths report this as a server error. Writes report it as a client
    error since a rejected write usually means the payload slipped past
    validation but broke a schema constraint.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    write_status_code = status.HTTP_400_BAD_REQUEST


class ConfigurationError(Exception):
    """Environment settings could not be parsed."""


__all__ = [
    "ComicsError",
    "ConfigurationError",
    "InvalidIdError",
    "NotFoundError",
    "StoreError",
    "ValidationError",
]
