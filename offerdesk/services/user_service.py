"""
services/user_service.py
------------------------
Identity-provider adapter: account registration and authentication.

Registration order matters:
  1. the allowlist is checked before anything is written;
  2. the role is assigned by the allowlist service, never by the caller;
  3. the account is created in the configured default organisation;
  4. only then is the allowlist entry marked as used.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from offerdesk.core.errors import (
    ConfigurationError,
    EmailAlreadyRegistered,
    EmailNotAllowed,
)
from offerdesk.core.identity import Role
from offerdesk.core.logging import get_logger
from offerdesk.core.security import hash_password, verify_password
from offerdesk.models.user import User
from offerdesk.schemas.user import UserRegister
from offerdesk.services.allowlist_service import AllowlistService

logger = get_logger(__name__)


class UserService:

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @classmethod
    async def register_user(
        cls,
        db: AsyncSession,
        data: UserRegister,
        default_org_id: Optional[str],
    ) -> User:
        """
        Raises:
            ConfigurationError: no default organisation is configured.
            EmailNotAllowed: the email is not on the organisation's allowlist.
            EmailAlreadyRegistered: an account already uses this email.
        """
        if not default_org_id:
            logger.error("Registration refused: DEFAULT_ORG_ID is not configured")
            raise ConfigurationError("Server configuration error: DEFAULT_ORG_ID is not configured")

        email = data.email
        if not await AllowlistService.is_email_allowed_for_admin(db, email, default_org_id):
            logger.warning("Registration refused: email not allowed", org_id=default_org_id)
            raise EmailNotAllowed()

        if await cls.get_by_email(db, email) is not None:
            raise EmailAlreadyRegistered(f"Email '{email}' is already registered")

        role = await AllowlistService.assign_initial_role_for_new_user(db, email, default_org_id)
        user = User(
            email=email,
            display_name=data.display_name or email.split("@")[0],
            hashed_password=hash_password(data.password),
            role=role.value,
            org_id=default_org_id,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            raise EmailAlreadyRegistered(f"Email '{email}' is already registered")
        await db.refresh(user)

        if role is Role.ADMIN:
            await AllowlistService.mark_email_as_used_if_admin(db, email, default_org_id)

        logger.info("User registered", user_id=user.id, org_id=user.org_id, role=user.role)
        return user

    @classmethod
    async def authenticate(
        cls, db: AsyncSession, email: str, password: str
    ) -> User | None:
        """
        Verify credentials and return the User if valid, else None.
        Email lookup is case-insensitive.
        """
        user = await cls.get_by_email(db, email or "")
        if user is None or not verify_password(password, user.hashed_password):
            return None
        return user
