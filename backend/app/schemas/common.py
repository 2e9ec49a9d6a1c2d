"""
Shared response and pagination schemas
"""
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ErrorResponse(BaseModel):
    """
    Body of every error the API returns.

    error is the machine-readable code of the raised ShopFloorException
    (NOT_FOUND, NO_BOM_FOUND, ALREADY_COMPLETED, INSUFFICIENT_STOCK, ...),
    or VALIDATION_ERROR / DATABASE_ERROR / INTERNAL_ERROR from the app-level
    handlers.

    Example:
        {
            "error": "ALREADY_COMPLETED",
            "message": "Work order 40 is already completed",
            "details": {"current_state": "completed", "allowed_states": [], "work_order_id": "40"},
            "timestamp": "2026-01-12T09:14:03Z"
        }
    """
    error: str
    message: str
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime


class PaginationParams(BaseModel):
    """Offset/limit window for list endpoints"""
    offset: int = Field(0, ge=0)
    limit: int = Field(50, ge=1, le=500)


class PaginationMeta(BaseModel):
    total: int = Field(..., description="Rows matching the filters, ignoring the window")
    offset: int
    limit: int
    returned: int = Field(..., description="Rows in this page")


class ListResponse(BaseModel, Generic[T]):
    """A page of items plus its pagination metadata"""
    items: List[T]
    pagination: PaginationMeta


class MessageResponse(BaseModel):
    """Confirmation for operations that return no resource, such as deletes"""
    message: str


class StatusResponse(BaseModel):
    """Health check result"""
    status: str = Field(..., description="healthy, or degraded when the database is unreachable")
    version: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
