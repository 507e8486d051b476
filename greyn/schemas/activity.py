"""
Activity schemas.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ActivityReview(BaseModel):
    status: str
    admin_notes: Optional[str] = Field(None, max_length=1000)
