"""
Strict Base Model for API Request/Response Validation

This module provides base classes with strict validation settings to harden
the API contract between backend and frontend.

Usage:
    # For request bodies (strictest validation)
    class RateItemRequest(StrictRequest):
        item_id: str
        rating: Rating

    # For response bodies (allows extra fields from DB)
    class ScheduleEntryResponse(StrictResponse):
        item_id: str
        next_due_at: datetime

Architecture:
    API Request → StrictRequest (extra="forbid") → Route Handler
    DB Model → StrictResponse (extra="ignore") → API Response
"""

from pydantic import BaseModel, ConfigDict


class StrictRequest(BaseModel):
    """
    Base model for API request bodies with strict validation.

    Rejects any fields not explicitly declared in the model, catching
    frontend typos and mismatches at request time rather than runtime.

    Features:
        - extra="forbid": Unknown fields raise 422 Unprocessable Entity
        - validate_default=True: Validates default values
        - from_attributes=True: Allows ORM model conversion

    Example:
        >>> class RateItemRequest(StrictRequest):
        ...     item_id: str
        ...     rating: int
        >>>
        >>> RateItemRequest(item_id="two-sum", rating=3)  # OK
        >>> RateItemRequest(item_id="two-sum", stars=3)  # Raises ValidationError
    """

    model_config = ConfigDict(
        extra="forbid",  # Reject unknown fields
        validate_default=True,  # Validate defaults
        from_attributes=True,  # Enable ORM conversion
    )


class StrictResponse(BaseModel):
    """
    Base model for API response bodies.

    More lenient than StrictRequest to allow flexibility in response data.
    Still enforces type validation but allows extra fields.
    """

    model_config = ConfigDict(
        extra="ignore",  # Allow extra fields in responses
        validate_default=True,  # Validate defaults
        from_attributes=True,  # Enable ORM conversion
    )
