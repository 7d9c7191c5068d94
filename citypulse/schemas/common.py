"""
Common schemas shared across endpoints.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Schema for detailed error information."""

    error_code: str = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")
    suggestions: Optional[List[str]] = Field(None, description="Helpful suggestions for resolving the error")


class ErrorResponse(BaseModel):
    """Schema for API error responses."""

    error: ErrorDetail
    error_id: str
    timestamp: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "error": {
                        "error_code": "CAPACITY_EXCEEDED",
                        "message": "Only 2 seats available",
                        "details": {"requested": 3, "available": 2},
                        "suggestions": ["Try booking fewer tickets"]
                    },
                    "error_id": "3f0c9a5e-8d9b-4a51-9a61-8f5cb0e1d3a2",
                    "timestamp": "2026-01-01T00:00:00+00:00"
                }
            ]
        }
    }


class MessageResponse(BaseModel):
    """Schema for simple acknowledgement responses."""

    message: str = Field(..., description="Success message")


class PaginationInfo(BaseModel):
    """Schema for pagination information."""

    total: int = Field(..., description="Total number of items")
    page: int = Field(..., description="Current page number")
    limit: int = Field(..., description="Number of items per page")
    pages: int = Field(..., description="Total number of pages")
