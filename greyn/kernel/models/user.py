"""
User model for identity management.

Every portal role lives in one table; organization fields are optional and
only populated for the roles that need them.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, func, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from greyn.kernel.models.base import Base, TimestampMixin, enum_value, generate_uuid


class UserRole(str, Enum):
    """Portal roles."""
    SIMPLE_USER = "simple-user"
    NGO = "ngo"
    CORPORATE = "corporate"
    CARBON = "carbon"
    ADMIN = "admin"


class UserStatus(str, Enum):
    """Account lifecycle status."""
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"


# Organizations keep portal access while their registration is reviewed
PENDING_SIGN_IN_ROLES = frozenset({UserRole.NGO.value, UserRole.CORPORATE.value})


def status_allows_sign_in(role, status) -> bool:
    """Active accounts, plus NGO and corporate accounts still pending verification."""
    status = enum_value(status)
    if status == UserStatus.ACTIVE.value:
        return True
    return status == UserStatus.PENDING.value and enum_value(role) in PENDING_SIGN_IN_ROLES


class User(Base, TimestampMixin):
    """User account model."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    role: Mapped[UserRole] = mapped_column(
        String(50),
        default=UserRole.SIMPLE_USER,
        nullable=False,
        index=True,
    )
    status: Mapped[UserStatus] = mapped_column(
        String(20),
        default=UserStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # NGO
    organization_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    registration_number: Mapped[Optional[str]] = mapped_column(String(100), unique=True, nullable=True)
    # Corporate
    company_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    tax_id: Mapped[Optional[str]] = mapped_column(String(100), unique=True, nullable=True)
    # Shared by NGO and corporate
    contact_person: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    @property
    def can_sign_in(self) -> bool:
        return status_allows_sign_in(self.role, self.status)

    @property
    def display_name(self) -> str:
        """Organization or company name for org roles, else personal name, else email local part."""
        return (
            self.organization_name
            or self.company_name
            or self.name
            or self.email.split("@")[0]
        )

    def __repr__(self) -> str:
        return f"<User {self.email} ({enum_value(self.role)})>"


class RefreshToken(Base):
    """Refresh token for JWT authentication."""

    __tablename__ = "refresh_tokens"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        nullable=False,
        index=True,
    )
    token_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    revoked: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
