"""Pydantic models for document listings."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DocumentListResponse(BaseModel):
    """Response model for a page of documents."""

    results: List[Dict[str, Any]] = Field(description="Documents of this page")
    previous: Optional[str] = Field(default=None, description="Cursor for the previous page")
    has_previous: bool = Field(description="Whether documents exist before this page")
    next: Optional[str] = Field(default=None, description="Cursor for the next page")
    has_next: bool = Field(description="Whether documents exist after this page")
    total_count: Optional[int] = Field(default=None, description="Total matching documents, if requested")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "results": [
                    {"_id": "550e8400-e29b-41d4-a716-446655440000", "title": "Note 1", "counter": 8},
                    {"_id": "660e8400-e29b-41d4-a716-446655440001", "title": "Note 2", "counter": 7}
                ],
                "previous": "WyI1NTBlODQwMCJd",
                "has_previous": False,
                "next": "WyI2NjBlODQwMCJd",
                "has_next": True
            }
        }
    )
