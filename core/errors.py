"""
core/errors.py — Registry Error Taxonomy
=========================================
Every core operation either returns its result or raises one of these.
main.py maps them onto HTTP responses; nothing here knows about HTTP.

    ValidationError            malformed / missing field, illegal enum value
    NotFoundError              referenced id does not resolve
    ReferentialIntegrityError  foreign key violation, or delete blocked by dependents
    TransactionFailure         database error during a multi-step write (rolled back)

None of them are retried automatically.
"""

from typing import List, Optional


class RegistryError(Exception):
    """Base class. `errors` holds the individual problems when there are several."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = list(errors or [])

    def with_context(self, prefix: str) -> "RegistryError":
        """Same error type, message prefixed with what was being attempted."""
        return type(self)(f"{prefix}: {self.message}", self.errors)

    def __str__(self) -> str:
        return self.message


class ValidationError(RegistryError):
    pass


class NotFoundError(RegistryError):
    pass


class ReferentialIntegrityError(RegistryError):
    pass


class TransactionFailure(RegistryError):
    pass
