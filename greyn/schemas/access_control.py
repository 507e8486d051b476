"""
Access control console schemas.

Enum membership is checked by the service so the console gets the same
400 messages for create and update.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class AccessRuleCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    type: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[int] = None
    conditions: List[str] = Field(default_factory=list)
    affected_users: Optional[int] = Field(None, ge=0)
    affected_ips: Optional[List[str]] = None


class AccessRuleUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    type: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[int] = None
    conditions: Optional[List[str]] = None
    affected_users: Optional[int] = Field(None, ge=0)
    affected_ips: Optional[List[str]] = None


class IPRuleCreate(BaseModel):
    ip_address: Optional[str] = Field(None, max_length=64)
    cidr: Optional[str] = None
    type: Optional[str] = None
    reason: Optional[str] = None
    status: Optional[str] = None
    expires_at: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=255)


class IPRuleUpdate(BaseModel):
    ip_address: Optional[str] = Field(None, max_length=64)
    cidr: Optional[str] = None
    type: Optional[str] = None
    reason: Optional[str] = None
    status: Optional[str] = None
    expires_at: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=255)


class RoleAccessUpdate(BaseModel):
    permissions: Optional[List[str]] = None
    resources: Optional[List[str]] = None
    restrictions: Optional[List[str]] = None
