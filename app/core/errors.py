"""
Domain error kinds shared by every feature.

Each error carries a human-readable message, a machine-readable ``kind`` and
optional field-level messages. ``app.main`` maps them to JSON responses.
"""
from typing import Any


class DomainError(Exception):
    """Base class for errors surfaced to callers."""
    kind: str = "domain_error"
    status_code: int = 400

    def __init__(self, message: str, *, fields: dict[str, str] | None = None):
        super().__init__(message)
        self.message = message
        self.fields = fields or {}

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "fields": self.fields}

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(kind={self.kind}, message={self.message!r})>"


class ValidationError(DomainError):
    """Bad or missing input."""
    kind = "validation_error"
    status_code = 400


class PermissionDeniedError(DomainError):
    """The access resolver denied the operation."""
    kind = "permission_error"
    status_code = 403


class NotFoundError(DomainError):
    """A referenced entity does not exist."""
    kind = "not_found"
    status_code = 404


class ConflictError(DomainError):
    """Duplicate code, territory already assigned or unique-field collision."""
    kind = "conflict_error"
    status_code = 409


class DependencyError(DomainError):
    """A required related entity is missing when it is expected to exist."""
    kind = "dependency_error"
    status_code = 422


class InternalError(DomainError):
    """Unexpected failure. The underlying cause is logged, never exposed."""
    kind = "internal_error"
    status_code = 500
