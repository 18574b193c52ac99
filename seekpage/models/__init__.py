"""Pydantic models for the seekpage API."""

from .documents import DocumentListResponse

__all__ = [
    "DocumentListResponse",
]
