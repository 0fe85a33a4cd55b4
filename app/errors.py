"""
errors.py — Error taxonomy shared by services and routers

Services raise these; main.py maps them to structured ErrorResponse bodies.

Business Rules:
- ValidationFailure → 422, carries the offending field when known
- NotFound → 404 for missing parties, quotations, follow-ups, catalog rows
- Conflict → 409 for uniqueness violations that survive retries and for
  guarded deletions
- DependencyUnavailable → 503, database unreachable (never retried in core)
- InvariantAnomaly is logged and resolved by a documented fallback; it is
  never raised out of a request

Called by: services/*, routers/*, main.py
Depends on: nothing
"""

from typing import Any


class QuoteDeskError(Exception):
    """Base class for domain errors."""

    status_code = 500

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(message)


class ValidationFailure(QuoteDeskError):
    status_code = 422

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, "VALIDATION_FAILURE")
        self.field = field


class NotFound(QuoteDeskError):
    status_code = 404

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(f"{entity_type} {entity_id} not found", "NOT_FOUND")
        self.entity_type = entity_type
        self.entity_id = entity_id


class Conflict(QuoteDeskError):
    status_code = 409

    def __init__(self, message: str):
        super().__init__(message, "CONFLICT")


class DependencyUnavailable(QuoteDeskError):
    status_code = 503

    def __init__(self, message: str = "Database unavailable — retry shortly"):
        super().__init__(message, "DEPENDENCY_UNAVAILABLE")


class InvariantAnomaly(QuoteDeskError):
    """Stored data broke an invariant; logged and handled by fallback."""

    def __init__(self, message: str, code: str = "INVARIANT_ANOMALY"):
        super().__init__(message, code)
