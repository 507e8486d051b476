"""
Rate limit policy schemas.
"""

from typing import Optional

from pydantic import BaseModel, Field


class RateLimitCreate(BaseModel):
    endpoint: str = Field(..., min_length=1, max_length=255)
    method: str
    limit: int = Field(..., ge=1)
    window: str
    current: int = Field(0, ge=0)
    description: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = None
    enabled: bool = True


class RateLimitUpdate(BaseModel):
    endpoint: Optional[str] = Field(None, min_length=1, max_length=255)
    method: Optional[str] = None
    limit: Optional[int] = Field(None, ge=1)
    window: Optional[str] = None
    current: Optional[int] = Field(None, ge=0)
    description: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = None
    enabled: Optional[bool] = None
    blocked_requests: Optional[int] = Field(None, ge=0)
    average_response_time: Optional[float] = Field(None, ge=0)
