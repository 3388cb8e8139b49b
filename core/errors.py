"""Error taxonomy shared by the services and the HTTP layer.

Every failure a caller can act on is a ``FriendGraphError`` subclass carrying the
HTTP status it maps to. ``StorageUnavailable`` is the only retryable kind.
"""

from fastapi import HTTPException, status


class FriendGraphError(Exception):
    """Base exception for all FriendGraph errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    retryable: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgument(FriendGraphError):
    """Malformed or self-referential ids and other bad input."""


class NotFound(FriendGraphError):
    status_code = status.HTTP_404_NOT_FOUND


class AlreadyExists(FriendGraphError):
    """Username collision on registration."""


class AlreadyFriends(FriendGraphError):
    pass


class DuplicateRequest(FriendGraphError):
    pass


class NoSuchRequest(FriendGraphError):
    pass


class NotFriends(FriendGraphError):
    pass


class InvalidCredentials(FriendGraphError):
    pass


class AuthError(FriendGraphError):
    """Missing, invalid or expired identity token."""

    status_code = status.HTTP_401_UNAUTHORIZED


class StorageUnavailable(FriendGraphError):
    """Transient backend failure."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True


class ConcurrentModification(FriendGraphError):
    """A competing transaction changed one of the records first.

    Raised inside the workflow engine and consumed by its retry loop.
    """

    status_code = status.HTTP_409_CONFLICT
    retryable = True


def to_http_exception(error: FriendGraphError) -> HTTPException:
    """Translate a service error into the response the API returns."""
    return HTTPException(status_code=error.status_code, detail=error.message)
