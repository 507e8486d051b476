"""
Admin user directory schemas.
"""

from typing import List, Optional

from pydantic import BaseModel


class DirectoryUser(BaseModel):
    id: str
    name: str
    email: str
    role: str
    portal_access: List[str]
    status: str
    join_date: Optional[str] = None
    last_active: str


class UserStatusUpdate(BaseModel):
    status: str


class UserRoleUpdate(BaseModel):
    role: str
