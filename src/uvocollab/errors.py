"""Error taxonomy for rejected collaboration operations."""

from __future__ import annotations

from fastapi import status


class CollaborationError(Exception):
    """Base class for a rejected operation; carries a human-readable message."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthorized(CollaborationError):
    """Caller is not a party to the collaboration and holds no override role."""

    status_code = status.HTTP_403_FORBIDDEN


class InvalidState(CollaborationError):
    """Requested transition is not legal from the current status."""

    status_code = status.HTTP_409_CONFLICT


class PreconditionFailed(CollaborationError):
    """A transition guard or input check failed."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(CollaborationError):
    status_code = status.HTTP_404_NOT_FOUND


class UpstreamFailure(CollaborationError):
    """The contract or payment collaborator reported an error."""

    status_code = status.HTTP_502_BAD_GATEWAY


class Conflict(CollaborationError):
    """The document changed between read and write."""

    status_code = status.HTTP_409_CONFLICT
