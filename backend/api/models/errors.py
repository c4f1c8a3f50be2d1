"""
Error response models.

Standardized error responses for the API. ``error`` is a stable machine
code clients can branch on; ``message`` is for humans.
"""

from pydantic import BaseModel, Field
from typing import Any


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)

