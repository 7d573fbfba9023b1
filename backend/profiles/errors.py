"""
Profile engine error taxonomy.

Every engine failure is one of these kinds. The HTTP layer translates them
into transport status codes; nothing here knows about HTTP.
"""

from typing import Any, Dict, Optional


class ProfileError(Exception):
    """Base class for all profile engine errors"""
    code = "profile_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ProfileError):
    """Malformed or missing input; the caller must correct it"""
    code = "validation_error"


class CardinalityExceeded(ProfileError):
    """A ceiling-bound collection is full"""
    code = "limit_reached"

    def __init__(self, kind: str, current_count: int, ceiling: int):
        super().__init__(
            f"Limit of {ceiling} active {kind} records reached",
            {"kind": kind, "current_count": current_count, "ceiling": ceiling},
        )
        self.kind = kind
        self.current_count = current_count
        self.ceiling = ceiling


class NotFound(ProfileError):
    """Target does not exist or does not belong to the acting professional"""
    code = "not_found"

    def __init__(self, resource: str, resource_id: Any = None):
        super().__init__(f"{resource} not found", {"resource": resource, "id": resource_id})
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(ProfileError):
    """A uniqueness rule would be violated"""
    code = "conflict"


class StorageError(ProfileError):
    """Transaction or commit failure; always fully rolled back"""
    code = "storage_error"

    def __init__(self, operation: str):
        super().__init__("The operation could not be completed", {"operation": operation})
        self.operation = operation
