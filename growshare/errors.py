"""Domain error taxonomy shared by the data access layer and the HTTP surface."""

from __future__ import annotations


class GrowShareError(Exception):
    """Base class for failures reported to API callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class NotFound(GrowShareError):
    """Resource, account, or reservation is absent."""

    status_code = 404


class Forbidden(GrowShareError):
    """Actor lacks the role or ownership needed for the action."""

    status_code = 403


class ValidationError(GrowShareError):
    """Malformed or out-of-range input."""

    status_code = 400


class ConflictError(GrowShareError):
    """Overlapping reservation or duplicate follow/vote/username."""

    status_code = 400


class UpstreamError(GrowShareError):
    """Identity, payment, or media provider failure."""

    status_code = 502
