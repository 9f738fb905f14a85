"""User domain service: register, login, refresh, plus the user lookups the
order orchestrator needs (guest provisioning, address book, riders).

All DB operations use the injected AsyncSession. Transactions are managed
by the caller.
"""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.sf_common.enums import Role
from src.sf_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
)
from src.sf_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.sf_gateway.auth.password import hash_password, random_password, verify_password
from src.sf_gateway.user.db_models import AddressModel, UserModel

logger = logging.getLogger(__name__)


class UserService:
    """Stateless service: instantiate once, reuse across requests."""

    async def register(
        self,
        email: str,
        name: str,
        phone: str | None,
        password: str,
        db: AsyncSession,
    ) -> UserModel:
        if await self.get_by_email(email, db) is not None:
            raise EmailExistsError()

        user = UserModel(
            email=email.lower(),
            name=name,
            phone=phone,
            password_hash=hash_password(password),
            role=Role.USER.value,
            is_active=True,
        )
        db.add(user)
        await db.flush()  # Get user.id without committing
        return user

    async def login(
        self,
        email: str,
        password: str,
        db: AsyncSession,
    ) -> tuple[UserModel, str, str]:
        """Authenticate and return (user, access_token, refresh_token).

        Unknown email and wrong password both raise InvalidCredentialsError to
        prevent account enumeration.
        """
        user = await self.get_by_email(email, db)
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        if not user.is_active:
            raise AccountDisabledError()

        return (
            user,
            create_access_token(str(user.id), user.role),
            create_refresh_token(str(user.id)),
        )

    async def refresh(self, refresh_token: str, db: AsyncSession) -> str:
        payload = decode_token(refresh_token, expected_type="refresh")
        user = await self.get_by_id(str(payload["sub"]), db)
        if user is None or not user.is_active:
            raise InvalidRefreshTokenError()
        return create_access_token(str(user.id), user.role)

    async def get_by_email(self, email: str, db: AsyncSession) -> UserModel | None:
        result = await db.execute(
            select(UserModel).where(func.lower(UserModel.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: str, db: AsyncSession) -> UserModel | None:
        try:
            uid = uuid.UUID(user_id)
        except ValueError:
            return None
        result = await db.execute(select(UserModel).where(UserModel.id == uid))
        return result.scalar_one_or_none()

    async def get_or_provision_customer(
        self,
        email: str,
        name: str,
        phone: str | None,
        db: AsyncSession,
    ) -> UserModel:
        """Return the account for ``email``, creating a USER account for a guest.

        Runs inside the checkout transaction; the row is flushed, not committed.
        """
        existing = await self.get_by_email(email, db)
        if existing is not None:
            return existing

        user = UserModel(
            email=email.lower(),
            name=name,
            phone=phone,
            password_hash=hash_password(random_password()),
            role=Role.USER.value,
            is_active=True,
        )
        db.add(user)
        await db.flush()
        logger.info("Provisioned guest account %s for checkout", user.id)
        return user

    async def save_default_address_if_missing(
        self,
        user_id: uuid.UUID,
        full_name: str,
        phone: str,
        province: str,
        city: str,
        street: str,
        db: AsyncSession,
    ) -> bool:
        """Persist the checkout address as default when the user has none."""
        result = await db.execute(
            select(func.count()).select_from(AddressModel).where(AddressModel.user_id == user_id)
        )
        if result.scalar_one() > 0:
            return False
        db.add(
            AddressModel(
                user_id=user_id,
                full_name=full_name,
                phone=phone,
                province=province,
                city=city,
                street=street,
                is_default=True,
            )
        )
        await db.flush()
        return True

    async def list_riders(self, db: AsyncSession) -> list[UserModel]:
        result = await db.execute(
            select(UserModel)
            .where(UserModel.role == Role.RIDER.value, UserModel.is_active.is_(True))
            .order_by(UserModel.name)
        )
        return list(result.scalars().all())

    async def get_rider(self, rider_id: str, db: AsyncSession) -> UserModel | None:
        user = await self.get_by_id(rider_id, db)
        if user is None or user.role != Role.RIDER.value:
            return None
        return user
