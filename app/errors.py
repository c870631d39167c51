"""Domain errors raised by services and mapped to HTTP responses in app.main."""
from __future__ import annotations


class SchoolError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchoolError):
    """Malformed or inconsistent request data."""

    status_code = 400

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []


class DuplicateNameError(SchoolError):
    status_code = 400


class NotFoundError(SchoolError):
    status_code = 404


class AuthorizationError(SchoolError):
    status_code = 403


class StoreError(SchoolError):
    """A storage read/write failed."""


class ArchiveError(SchoolError):
    """Bulk history write rejected; nothing was archived."""


class PartialPromotionFailure(SchoolError):
    """A student could not be moved while the transition runs in a transaction."""

    def __init__(self, message: str, student_id: str):
        super().__init__(message)
        self.student_id = student_id
