"""
Exception hierarchy for FieldScope.

Data gaps (no catalog match, no quantity, no price) are never raised;
they surface as warnings or manual-quantity entries.
"""

from typing import Any


class FieldScopeError(Exception):
    """Base exception for all FieldScope errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class RecordNotFoundError(FieldScopeError):
    """A required record (session, claim) does not exist."""

    def __init__(self, record_type: str, record_id: Any):
        super().__init__(f"{record_type} not found", {"id": record_id})
        self.record_type = record_type
        self.record_id = record_id


class DuplicateActiveScopeItemError(FieldScopeError):
    """A second active scope item for the same room and catalog code."""

    def __init__(self, room_id: int, catalog_code: str):
        super().__init__(
            "Active scope item already exists for room",
            {"room_id": room_id, "catalog_code": catalog_code},
        )
        self.room_id = room_id
        self.catalog_code = catalog_code


class ExportError(FieldScopeError):
    """The interchange archive could not be built or read."""
