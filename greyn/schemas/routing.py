"""
Role routing schemas.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel


class NavLink(BaseModel):
    name: str
    label: str
    href: str


class GuardResult(BaseModel):
    path: str
    outcome: str
    redirect_to: Optional[str] = None
    replace: bool = False
    reason: Optional[str] = None


class NavResponse(BaseModel):
    role: Optional[str] = None
    routes: Dict[str, str]
    links: List[NavLink]
