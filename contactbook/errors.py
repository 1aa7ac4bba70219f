"""Error taxonomy shared by the services and the API layer.

Every error carries the HTTP status code and the client-facing message it
maps to, so route handlers never translate errors by hand.
"""

from fastapi import status


class ContactsError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Unexpected error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ContactsError):
    """Field-level input errors.

    Attributes:
        errors: Mapping of field name to the list of its error messages.
    """

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "The given data was invalid"

    def __init__(self, errors: dict[str, list[str]], message: str | None = None):
        self.errors = errors
        super().__init__(message)


class AuthenticationError(ContactsError):
    """Bad credentials or an invalid bearer token."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class NotFoundError(ContactsError):
    """Missing resource, or one owned by another user."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class UnexpectedError(ContactsError):
    """Any other failure. The message is generic; details go to the log."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
