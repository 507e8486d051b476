"""
Common schema types used across the API.

Every JSON response is wrapped in the same envelope so clients only ever
branch on `success`.
"""

from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel

from greyn.engines.listing import Pagination

T = TypeVar("T")


class SuccessResponse(BaseModel):
    """Success envelope."""

    success: bool = True
    data: Optional[Any] = None
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error envelope."""

    success: bool = False
    message: str
    detail: Optional[Any] = None
    errors: Optional[List[Dict[str, Any]]] = None
    request_id: Optional[str] = None


class ListPayload(BaseModel, Generic[T]):
    """Data part of a list response: one page plus stats over the filtered set."""

    items: List[T]
    stats: Dict[str, Any] = {}
    pagination: Pagination


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str
    environment: str
    database: str = "connected"


def ok(data: Any = None, message: Optional[str] = None) -> SuccessResponse:
    return SuccessResponse(data=data, message=message)
