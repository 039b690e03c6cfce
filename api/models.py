"""
Pydantic request/response models for the API.

Field names of UpdateCategoryResponse follow the JSON contract expected by
the browser script and client.category_update (``isOk`` / ``errorName``).
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class UpdateCategoryResponse(BaseModel):
    """Response body for POST /account/update_cat.json."""
    isOk: bool = Field(..., description="True when the category was saved")
    errorName: str | None = Field(
        None,
        description="Human-readable reason when isOk is false",
        examples=["Opération [42] inexistante."],
    )


class ErrorResponse(BaseModel):
    """Standard error response body."""
    error: str = Field(..., description="Short error category", examples=["Bad request"])
    detail: str | None = Field(None, description="Extended error detail")
    status_code: int = Field(..., ge=400, le=599, description="HTTP status code", examples=[400])
