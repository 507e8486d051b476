"""
FastAPI dependencies for authentication, authorization, and database sessions.
"""

import uuid
from typing import Annotated, AsyncGenerator, Optional, Sequence

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from greyn.config import get_settings
from greyn.database import async_session_maker
from greyn.kernel.audit.audit_store import AuditContext, AuditStore
from greyn.kernel.identity.identity_service import IdentityService
from greyn.kernel.identity.jwt import verify_access_token
from greyn.kernel.models.base import enum_value
from greyn.kernel.models.user import User, UserRole
from greyn.logging_config import actor_id_var

# Security scheme
security = HTTPBearer(auto_error=False)

Credentials = Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)]


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that yields database sessions."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user_optional(credentials: Credentials, db: DbSession) -> Optional[User]:
    """Get current user if authenticated, None otherwise."""
    if not credentials:
        return None
    payload = verify_access_token(credentials.credentials)
    if not payload:
        return None
    user = await IdentityService(db).get_user_by_id(uuid.UUID(payload.sub))
    if not user or not user.can_sign_in:
        return None
    actor_id_var.set(str(user.id))
    return user


async def get_current_user(credentials: Credentials, db: DbSession) -> User:
    """Get current authenticated user or raise 401 / 403."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await IdentityService(db).get_user_by_id(uuid.UUID(payload.sub))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.can_sign_in:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    actor_id_var.set(str(user.id))
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[Optional[User], Depends(get_current_user_optional)]


def get_client_ip(request: Request, trusted_proxies: Optional[Sequence[str]] = None) -> Optional[str]:
    """
    Extract client IP from request.

    X-Forwarded-For is honoured only when the direct peer is one of the
    configured trusted proxies; anyone else could set it to anything.
    """
    if trusted_proxies is None:
        trusted_proxies = get_settings().trusted_proxies
    peer = request.client.host if request.client else None
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded and peer in trusted_proxies:
        return forwarded.split(",")[0].strip()
    return peer


def get_user_agent(request: Request) -> Optional[str]:
    return request.headers.get("User-Agent")


def get_audit_context(request: Request, credentials: Credentials) -> AuditContext:
    """Request metadata for audit entries. The access token's jti doubles as session id."""
    session_id = None
    if credentials:
        payload = verify_access_token(credentials.credentials)
        session_id = payload.jti if payload else None
    return AuditContext(
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        session_id=session_id,
    )


AuditCtx = Annotated[AuditContext, Depends(get_audit_context)]


def get_audit_store(db: DbSession, context: AuditCtx) -> AuditStore:
    return AuditStore(db, context)


Audit = Annotated[AuditStore, Depends(get_audit_store)]


async def require_admin(user: CurrentUser) -> User:
    """Require the current user to be an admin."""
    if enum_value(user.role) != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


AdminUser = Annotated[User, Depends(require_admin)]
