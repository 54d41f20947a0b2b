"""Error taxonomy shared by the loader field services and the HTTP layer.

Services raise these; ``labrinth.main`` maps them onto HTTP responses so
route handlers never build error bodies themselves.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FieldIssue:
    """One invalid submitted attribute, reported back to the client."""

    field: str
    reason: str


class LabrinthError(Exception):
    status_code = 500
    error = "internal_error"

    def __init__(self, description: str) -> None:
        self.description = description
        super().__init__(description)


class InvalidFieldValue(Exception):
    """Raised by the field type system for a single field; never leaves the store."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class FieldValidationError(LabrinthError):
    status_code = 400
    error = "invalid_input"

    def __init__(self, issues: list[FieldIssue]) -> None:
        self.issues = issues
        names = ", ".join(issue.field for issue in issues)
        super().__init__(f"Invalid loader fields: {names}")


class NotFoundError(LabrinthError):
    status_code = 404
    error = "not_found"


class ConflictError(LabrinthError):
    status_code = 409
    error = "conflict"


class StorageError(LabrinthError):
    status_code = 503
    error = "storage_error"


class SchemaError(StorageError):
    """Stored rows disagree with their field definition."""


class ProjectionError(LabrinthError):
    status_code = 502
    error = "projection_error"
