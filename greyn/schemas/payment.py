"""
Payment schemas.
"""

from typing import Optional

from pydantic import BaseModel, Field


class CreateIntentRequest(BaseModel):
    amount: float = Field(..., gt=0)
    project_id: Optional[str] = Field(None, max_length=64)
    project_title: Optional[str] = Field(None, max_length=255)


class CreateIntentResponse(BaseModel):
    client_secret: str
    payment_intent_id: str
    amount: float
    carbon_units: float
    carbon_credits: float
