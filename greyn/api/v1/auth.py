"""
Authentication endpoints.

Signup and login are per portal: /auth/signup/{role} and /auth/login/{role}.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, status

from greyn.api.deps import AuditCtx, CurrentUser, DbSession
from greyn.kernel.identity.identity_service import IdentityService
from greyn.kernel.identity.jwt import TokenPair
from greyn.kernel.models.base import enum_value
from greyn.kernel.models.user import User, UserRole
from greyn.schemas.auth import (
    ChangePasswordRequest,
    DeleteAccountRequest,
    LoginRequest,
    LogoutRequest,
    ProfileUpdate,
    RefreshTokenRequest,
    SignupRequest,
    TokenResponse,
    UserResponse,
)
from greyn.schemas.common import SuccessResponse, ok

router = APIRouter()

INVALID_CREDENTIALS = "Invalid email or password"


def user_response(user: User) -> UserResponse:
    return UserResponse(
        id=str(user.id),
        email=user.email,
        name=user.name,
        role=enum_value(user.role),
        status=enum_value(user.status),
        organization_name=user.organization_name,
        registration_number=user.registration_number,
        company_name=user.company_name,
        tax_id=user.tax_id,
        contact_person=user.contact_person,
        location=user.location,
        last_login=user.last_login,
        created_at=user.created_at,
    )


def token_response(user: User, pair: TokenPair) -> TokenResponse:
    return TokenResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        token_type=pair.token_type,
        expires_in=pair.expires_in,
        user=user_response(user),
    )


@router.post("/signup/{role}", response_model=SuccessResponse, status_code=status.HTTP_201_CREATED)
async def signup(role: UserRole, data: SignupRequest, db: DbSession, context: AuditCtx):
    """
    Create an account for one portal and sign it in.

    NGO needs organization name and registration number, corporate needs
    company name and tax ID, admin needs the configured admin code.
    """
    identity = IdentityService(db, context)
    try:
        await identity.signup(role, **data.model_dump())
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    result = await identity.authenticate(role, data.email, data.password)
    if not result:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to authenticate after signup",
        )
    user, pair = result
    return ok(token_response(user, pair), "Account created successfully")


@router.post("/login/{role}", response_model=SuccessResponse)
async def login(role: UserRole, data: LoginRequest, db: DbSession, context: AuditCtx):
    identity = IdentityService(db, context)
    try:
        result = await identity.authenticate(role, data.email, data.password)
    except PermissionError as e:
        await db.commit()
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    if not result:
        # Keep the failed-attempt audit entry
        await db.commit()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    user, pair = result
    return ok(token_response(user, pair), "Login successful")


@router.post("/refresh", response_model=SuccessResponse)
async def refresh_token(data: RefreshTokenRequest, db: DbSession):
    """Exchange a refresh token for a new pair. The old refresh token is revoked."""
    result = await IdentityService(db).refresh_tokens(data.refresh_token)
    if not result:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )
    user, pair = result
    return ok(token_response(user, pair))


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    user: CurrentUser,
    db: DbSession,
    context: AuditCtx,
    data: Optional[LogoutRequest] = None,
):
    """Revoke the given refresh token, or every token when none is given."""
    data = data or LogoutRequest()
    await IdentityService(db, context).logout(
        user,
        refresh_token=data.refresh_token,
        revoke_all=data.revoke_all or not data.refresh_token,
    )
    return ok(message="Logged out successfully")


@router.get("/me", response_model=SuccessResponse)
async def get_me(user: CurrentUser):
    return ok(user_response(user))


@router.patch("/me", response_model=SuccessResponse)
async def update_me(data: ProfileUpdate, user: CurrentUser, db: DbSession, context: AuditCtx):
    try:
        updated = await IdentityService(db, context).update_profile(user, **data.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return ok(user_response(updated), "Profile updated")


@router.post("/change-password", response_model=SuccessResponse)
async def change_password(data: ChangePasswordRequest, user: CurrentUser, db: DbSession, context: AuditCtx):
    """Change password and sign out every other session."""
    changed = await IdentityService(db, context).change_password(
        user, data.current_password, data.new_password
    )
    if not changed:
        await db.commit()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
    return ok(message="Password changed successfully")


@router.delete("/account", response_model=SuccessResponse)
async def delete_account(data: DeleteAccountRequest, user: CurrentUser, db: DbSession, context: AuditCtx):
    deleted = await IdentityService(db, context).delete_account(user, data.password)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password is incorrect")
    return ok(message="Account deleted")
