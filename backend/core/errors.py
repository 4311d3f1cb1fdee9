# backend/core/errors.py

from __future__ import annotations


# ============================================================================
# ERROR TAXONOMY
# ============================================================================

class ChatError(Exception):
    """
    Base class for every failure the room engine reports to its callers.

    Each subclass carries a stable ``kind`` and HTTP ``status_code`` so the
    API layer can map it without knowing which service raised it.
    """

    kind: str = "internal"
    status_code: int = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.message}


class Unauthorized(ChatError):
    """Missing or invalid credential."""

    kind = "unauthorized"
    status_code = 401


class Forbidden(ChatError):
    """Authenticated, but not permitted (e.g. a non-creator deleting a room)."""

    kind = "forbidden"
    status_code = 403


class NotFound(ChatError):
    kind = "not_found"
    status_code = 404


class AlreadyExists(ChatError):
    kind = "already_exists"
    status_code = 409


class InvalidArgument(ChatError):
    kind = "invalid_argument"
    status_code = 400


class Unavailable(ChatError):
    """Assistant failure or timeout. Recovered locally, never reaches a poster."""

    kind = "unavailable"
    status_code = 503
