"""
Structured Error Response Utilities

Provides standardized error bodies for every profile engine failure so the UI
can tell validation problems, full collections, missing records and conflicts
apart from connectivity issues.

Error Response Format:
{
    "error": "validation_error" | "limit_reached" | "not_found" | "conflict" | "storage_error",
    "message": "Limit of 3 active specialty records reached",
    "details": {"kind": "specialty", "current_count": 3, "ceiling": 3}
}
"""

from typing import Any, Dict, List, Optional

from fastapi import status

from profiles.errors import (
    ProfileError, ValidationError, CardinalityExceeded, NotFound,
    ConflictError, StorageError
)


STATUS_BY_ERROR = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    CardinalityExceeded: status.HTTP_409_CONFLICT,
    NotFound: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ErrorResponse:
    """Structured error response builder."""

    @staticmethod
    def build(error: str, message: str, details: Optional[Dict[str, Any]] = None) -> dict:
        return {
            "error": error,
            "message": message,
            "details": details or {},
        }

    @staticmethod
    def from_profile_error(exc: ProfileError) -> dict:
        """
        Build the body for an engine error.

        Storage failures only ever expose the generic message; the cause is
        in the logs and in Sentry.
        """
        if isinstance(exc, StorageError):
            return ErrorResponse.build(exc.code, exc.message)
        return ErrorResponse.build(exc.code, exc.message, exc.details)

    @staticmethod
    def from_request_validation(errors: List[Dict[str, Any]]) -> dict:
        """Build the body for a request that failed schema validation."""
        fields = []
        for error in errors:
            fields.append({
                "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
                "message": error.get("msg", "Invalid value"),
            })
        return ErrorResponse.build(
            ValidationError.code,
            "Request validation failed",
            {"fields": fields},
        )


def status_for(exc: ProfileError) -> int:
    """HTTP status for an engine error (500 for anything unmapped)."""
    for error_type, status_code in STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR
