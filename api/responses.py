"""
Standardized API response models shared by the routers.
"""

from typing import Optional, Any
from pydantic import BaseModel, Field
from datetime import datetime


class ErrorDetail(BaseModel):
    code: str = Field(..., description="Machine-readable error code")
    message: Any = Field(..., description="Human-readable message")
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Envelope returned by every error handler"""

    success: bool = False
    error: ErrorDetail
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    environment: str


class CountResponse(BaseModel):
    """Result of a bulk update such as mark-as-read"""

    updated: int
