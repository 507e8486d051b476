"""
Identity service for user management operations.
"""

import uuid
from typing import Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from greyn.config import get_settings
from greyn.kernel.audit.audit_store import AuditContext, AuditStore
from greyn.kernel.identity.jwt import JWTManager, TokenPair
from greyn.kernel.identity.password import MIN_PASSWORD_LENGTH, hash_password, verify_password
from greyn.kernel.models.audit_log import AuditAction, AuditSeverity, AuditStatus
from greyn.kernel.models.base import enum_value, utcnow
from greyn.kernel.models.user import RefreshToken, User, UserRole, UserStatus
from greyn.logging_config import get_logger

logger = get_logger(__name__)


class IdentityService:
    """
    Service for user identity operations.

    Handles per-role signup, authentication, token rotation and account
    self-service. Security-relevant outcomes are written to the audit log.
    """

    def __init__(self, session: AsyncSession, context: Optional[AuditContext] = None):
        self.session = session
        self.jwt_manager = JWTManager()
        self.audit = AuditStore(session, context)

    async def signup(
        self,
        role: UserRole,
        *,
        email: str,
        password: str,
        name: Optional[str] = None,
        organization_name: Optional[str] = None,
        registration_number: Optional[str] = None,
        company_name: Optional[str] = None,
        tax_id: Optional[str] = None,
        contact_person: Optional[str] = None,
        location: Optional[str] = None,
        admin_code: Optional[str] = None,
    ) -> User:
        """
        Register a new account for a portal role.

        Raises:
            ValueError: missing role fields, short password, or duplicate identifiers
            PermissionError: admin signup with a wrong or unconfigured admin code
        """
        role = UserRole(role)
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        if role == UserRole.NGO and not (organization_name and registration_number):
            raise ValueError("Organization name and registration number are required")
        if role == UserRole.CORPORATE and not (company_name and tax_id):
            raise ValueError("Company name and tax ID are required")
        if role == UserRole.ADMIN:
            expected = get_settings().admin_code
            if not expected or admin_code != expected:
                raise PermissionError("Invalid admin code")
        if role in (UserRole.SIMPLE_USER, UserRole.CARBON, UserRole.ADMIN) and not name:
            raise ValueError("Name is required")

        if await self.get_user_by_email(email):
            raise ValueError("Email already registered")
        if registration_number and await self._exists(User.registration_number == registration_number):
            raise ValueError("Registration number already registered")
        if tax_id and await self._exists(User.tax_id == tax_id):
            raise ValueError("Tax ID already registered")

        user = User(
            email=email.lower().strip(),
            password_hash=hash_password(password),
            name=name.strip() if name else None,
            role=role.value,
            status=UserStatus.ACTIVE.value,
            organization_name=organization_name,
            registration_number=registration_number,
            company_name=company_name,
            tax_id=tax_id,
            contact_person=contact_person,
            location=location,
        )
        self.session.add(user)
        await self.session.flush()

        await self.audit.log_for_user(
            user,
            action=AuditAction.CREATE,
            resource=f"user:{user.id}",
            details=f"Account created for {role.value} portal",
            severity=AuditSeverity.MEDIUM if role == UserRole.ADMIN else AuditSeverity.LOW,
        )
        logger.info("User signed up", extra={"user_id": str(user.id), "role": role.value})
        return user

    async def authenticate(
        self,
        role: UserRole,
        email: str,
        password: str,
    ) -> Optional[tuple[User, TokenPair]]:
        """
        Authenticate against a specific portal.

        Returns (User, TokenPair) on success, None for bad credentials or a
        role mismatch. Raises PermissionError for non-active accounts.
        """
        role = UserRole(role)
        user = await self.get_user_by_email(email)
        if (
            not user
            or enum_value(user.role) != role.value
            or not verify_password(password, user.password_hash)
        ):
            await self.audit.log(
                action=AuditAction.LOGIN,
                resource=f"auth:{role.value}",
                actor=email.lower().strip(),
                actor_role=role.value,
                details="Invalid credentials",
                severity=AuditSeverity.MEDIUM,
                status=AuditStatus.FAILED,
            )
            return None

        if not user.can_sign_in:
            await self.audit.log_for_user(
                user,
                action=AuditAction.LOGIN,
                resource=f"auth:{role.value}",
                details=f"Login blocked for {enum_value(user.status)} account",
                severity=AuditSeverity.HIGH,
                status=AuditStatus.WARNING,
            )
            raise PermissionError("User account is disabled")

        user.last_login = utcnow()
        token_pair = await self._issue_tokens(user)

        await self.audit.log_for_user(
            user,
            action=AuditAction.LOGIN,
            resource=f"auth:{role.value}",
            details="Password login",
        )
        return user, token_pair

    async def refresh_tokens(self, refresh_token: str) -> Optional[tuple[User, TokenPair]]:
        """
        Exchange a refresh token for a new pair.

        Implements refresh token rotation: the presented token is revoked.
        """
        payload = self.jwt_manager.verify_refresh_token(refresh_token)
        if not payload:
            return None

        query = select(RefreshToken).where(
            and_(
                RefreshToken.token_hash == JWTManager.hash_token(refresh_token),
                RefreshToken.revoked.is_(False),
                RefreshToken.expires_at > utcnow(),
            )
        )
        result = await self.session.execute(query)
        token_record = result.scalar_one_or_none()
        if not token_record:
            return None

        user = await self.get_user_by_id(uuid.UUID(payload.sub))
        if not user or not user.can_sign_in:
            return None

        token_record.revoked = True
        return user, await self._issue_tokens(user)

    async def logout(
        self,
        user: User,
        refresh_token: Optional[str] = None,
        revoke_all: bool = False,
    ) -> None:
        """Revoke one refresh token, or all of the user's tokens."""
        if revoke_all:
            await self._revoke_all(user.id)
        elif refresh_token:
            result = await self.session.execute(
                select(RefreshToken).where(
                    RefreshToken.token_hash == JWTManager.hash_token(refresh_token)
                )
            )
            token_record = result.scalar_one_or_none()
            if token_record:
                token_record.revoked = True

        await self.audit.log_for_user(
            user,
            action=AuditAction.LOGOUT,
            resource=f"user:{user.id}",
            details="All sessions revoked" if revoke_all else "Session ended",
        )

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get a user by ID."""
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email."""
        result = await self.session.execute(
            select(User).where(User.email == email.lower().strip())
        )
        return result.scalar_one_or_none()

    async def update_profile(
        self,
        user: User,
        *,
        name: Optional[str] = None,
        email: Optional[str] = None,
        contact_person: Optional[str] = None,
        location: Optional[str] = None,
    ) -> User:
        """
        Update profile fields that the user may change themselves.

        Raises:
            ValueError: If the new email belongs to another account
        """
        changes = {}
        if name is not None:
            user.name = name.strip()
            changes["name"] = user.name
        if email is not None:
            new_email = email.lower().strip()
            existing = await self.get_user_by_email(new_email)
            if existing and existing.id != user.id:
                raise ValueError("Email already in use")
            user.email = new_email
            changes["email"] = new_email
        if contact_person is not None:
            user.contact_person = contact_person
            changes["contact_person"] = contact_person
        if location is not None:
            user.location = location
            changes["location"] = location

        if changes:
            await self.audit.log_for_user(
                user,
                action=AuditAction.UPDATE,
                resource=f"user:{user.id}",
                details="Profile updated: " + ", ".join(sorted(changes)),
                metadata=changes,
            )
        return user

    async def change_password(
        self,
        user: User,
        current_password: str,
        new_password: str,
    ) -> bool:
        """
        Change the user's password and revoke every refresh token.

        Returns False if the current password is wrong.
        """
        if not verify_password(current_password, user.password_hash):
            await self.audit.log_for_user(
                user,
                action=AuditAction.PASSWORD_CHANGE,
                resource=f"user:{user.id}",
                details="Current password did not match",
                severity=AuditSeverity.MEDIUM,
                status=AuditStatus.FAILED,
            )
            return False

        user.password_hash = hash_password(new_password)
        await self._revoke_all(user.id)
        await self.audit.log_for_user(
            user,
            action=AuditAction.PASSWORD_CHANGE,
            resource=f"user:{user.id}",
            details="Password changed",
            severity=AuditSeverity.MEDIUM,
        )
        return True

    async def delete_account(self, user: User, password: str) -> bool:
        """Delete the user's own account after re-checking the password."""
        if not verify_password(password, user.password_hash):
            return False

        await self._revoke_all(user.id)
        await self.audit.log_for_user(
            user,
            action=AuditAction.DELETE,
            resource=f"user:{user.id}",
            details="Account deleted by owner",
            severity=AuditSeverity.HIGH,
        )
        await self.session.delete(user)
        return True

    async def _issue_tokens(self, user: User) -> TokenPair:
        token_pair, refresh_exp = self.jwt_manager.create_token_pair(
            user_id=user.id,
            email=user.email,
            role=enum_value(user.role),
        )
        self.session.add(RefreshToken(
            user_id=user.id,
            token_hash=JWTManager.hash_token(token_pair.refresh_token),
            expires_at=refresh_exp,
        ))
        return token_pair

    async def _revoke_all(self, user_id: uuid.UUID) -> None:
        result = await self.session.execute(
            select(RefreshToken).where(
                and_(
                    RefreshToken.user_id == user_id,
                    RefreshToken.revoked.is_(False),
                )
            )
        )
        for token in result.scalars().all():
            token.revoked = True

    async def _exists(self, clause) -> bool:
        result = await self.session.execute(select(User.id).where(clause).limit(1))
        return result.first() is not None
