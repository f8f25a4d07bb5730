"""
Error taxonomy shared by the stores, the AI gateway and the HTTP layer.

Every error carries the HTTP status it maps to.
"""

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for all health hub errors."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"message": self.message}


class ValidationError(DomainError):
    """Raised when input is missing or malformed, before anything is written."""

    status_code = 400

    def __init__(self, message: str, errors: Optional[list[dict[str, str]]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def from_violations(cls, violations: list[dict[str, str]]) -> "ValidationError":
        message = violations[0]["message"] if violations else "Invalid input"
        return cls(message, errors=violations)

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.errors:
            payload["errors"] = self.errors
        return payload


class NotFound(DomainError):
    """Raised when no record matches, including records owned by someone else."""

    status_code = 404


class Conflict(DomainError):
    status_code = 409


class ServiceUnavailable(DomainError):
    """Raised when the text-generation service is unconfigured or unreachable."""

    status_code = 503


class InternalError(DomainError):
    status_code = 500
