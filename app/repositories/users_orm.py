"""User account repository using SQLAlchemy ORM.

Usage:
    from app.repositories import users_orm as users_repo

    user = await users_repo.get_user_by_email("jane@example.com")
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import func, select

from app.core.logging import get_logger
from app.database.connection import get_session
from app.database.orm import User as UserORM


logger = get_logger("repositories.users_orm")


@dataclass
class Account:
    """Customer account. Exchange credentials stay encrypted."""

    id: int
    email: str
    password_hash: str
    first_name: str
    last_name: str
    is_admin: bool = False
    exchange_api_key: str | None = None
    exchange_api_secret: str | None = None
    initial_funds: Decimal | None = None
    investment_active: bool = True
    stripe_customer_id: str | None = None
    stripe_subscription_id: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_orm(cls, user: UserORM) -> Account:
        """Create from ORM model."""
        return cls(
            id=user.id,
            email=user.email,
            password_hash=user.password_hash,
            first_name=user.first_name,
            last_name=user.last_name,
            is_admin=user.is_admin or False,
            exchange_api_key=user.exchange_api_key,
            exchange_api_secret=user.exchange_api_secret,
            initial_funds=user.initial_funds,
            investment_active=True if user.investment_active is None else user.investment_active,
            stripe_customer_id=user.stripe_customer_id,
            stripe_subscription_id=user.stripe_subscription_id,
            created_at=user.created_at,
        )


async def get_user_by_email(email: str) -> Account | None:
    """Get a user by email (case-insensitive)."""
    async with get_session() as session:
        result = await session.execute(
            select(UserORM).where(UserORM.email == email.lower())
        )
        user = result.scalar_one_or_none()

        if user:
            return Account.from_orm(user)
        return None


async def email_exists(email: str) -> bool:
    """Check whether an account already uses this email."""
    async with get_session() as session:
        result = await session.execute(
            select(UserORM.id).where(UserORM.email == email.lower()).limit(1)
        )
        return result.scalar_one_or_none() is not None


async def create_user(
    email: str,
    password_hash: str,
    first_name: str,
    last_name: str,
    exchange_api_key: str,
    exchange_api_secret: str,
    initial_funds: Decimal,
) -> Account:
    """Persist a new account. Credentials must already be encrypted."""
    user = UserORM(
        email=email.lower(),
        password_hash=password_hash,
        first_name=first_name,
        last_name=last_name,
        exchange_api_key=exchange_api_key,
        exchange_api_secret=exchange_api_secret,
        initial_funds=initial_funds,
        investment_active=True,
    )

    async with get_session() as session:
        session.add(user)
        await session.commit()
        await session.refresh(user)
        logger.info("Created user account", extra={"user_id": user.id})
        return Account.from_orm(user)


async def _update_user(email: str, **values) -> bool:
    async with get_session() as session:
        result = await session.execute(
            select(UserORM).where(UserORM.email == email.lower())
        )
        user = result.scalar_one_or_none()

        if user is None:
            return False

        for key, value in values.items():
            setattr(user, key, value)
        user.updated_at = datetime.now(UTC)
        await session.commit()
        return True


async def update_password(email: str, password_hash: str) -> bool:
    """Update a user's password."""
    return await _update_user(email, password_hash=password_hash)


async def update_initial_funds(email: str, initial_funds: Decimal) -> bool:
    """Update a user's invested funds."""
    return await _update_user(email, initial_funds=initial_funds)


async def set_investment_active(email: str, active: bool) -> bool:
    """Record whether automated trading is switched on."""
    return await _update_user(email, investment_active=active)


async def list_billed_users() -> list[Account]:
    """Users with a recognized (non-empty) billing subscription id."""
    async with get_session() as session:
        result = await session.execute(
            select(UserORM)
            .where(UserORM.stripe_subscription_id.is_not(None))
            .where(func.trim(UserORM.stripe_subscription_id) != "")
            .order_by(UserORM.id)
        )
        return [Account.from_orm(user) for user in result.scalars().all()]
