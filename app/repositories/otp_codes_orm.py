"""Verification code repository using SQLAlchemy ORM.

``consume_code`` is the only write that touches an issued row. It is a single
conditional UPDATE, so two concurrent verifications of the same code cannot
both succeed: the database serializes them and only the first one still sees
``consumed = false``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, select, update

from app.core.logging import get_logger
from app.database.connection import get_session
from app.database.orm import OtpCode as OtpCodeORM


logger = get_logger("repositories.otp_codes_orm")


@dataclass
class OtpRecord:
    """Stored verification code."""

    id: int
    email: str
    code: str
    purpose: str
    expires_at: datetime
    consumed: bool = False
    created_at: datetime | None = None

    @classmethod
    def from_orm(cls, row: OtpCodeORM) -> OtpRecord:
        """Create from ORM model."""
        return cls(
            id=row.id,
            email=row.email,
            code=row.code,
            purpose=row.purpose,
            expires_at=row.expires_at,
            consumed=row.consumed,
            created_at=row.created_at,
        )


async def create_code(email: str, code: str, purpose: str, expires_at: datetime) -> int:
    """Store a freshly issued code and return its id."""
    row = OtpCodeORM(
        email=email.lower(),
        code=code,
        purpose=purpose,
        expires_at=expires_at,
        consumed=False,
    )
    async with get_session() as session:
        session.add(row)
        await session.commit()
        return row.id


async def consume_code(email: str, code: str, purpose: str, now: datetime) -> bool:
    """
    Atomically mark a matching, unexpired, unconsumed code as consumed.

    Returns True only for the call that performed the flip.
    """
    async with get_session() as session:
        result = await session.execute(
            update(OtpCodeORM)
            .where(
                OtpCodeORM.email == email.lower(),
                OtpCodeORM.code == code,
                OtpCodeORM.purpose == purpose,
                OtpCodeORM.consumed.is_(False),
                OtpCodeORM.expires_at > now,
            )
            .values(consumed=True)
            .returning(OtpCodeORM.id)
            .execution_options(synchronize_session=False)
        )
        # Several outstanding rows can carry the same code; consuming all of
        # them keeps the (email, code, purpose) tuple single-use.
        consumed_ids = result.scalars().all()
        await session.commit()
        return len(consumed_ids) > 0


async def find_latest_code(email: str, code: str, purpose: str) -> OtpRecord | None:
    """Most recently issued row for a code, used to classify failed attempts."""
    async with get_session() as session:
        result = await session.execute(
            select(OtpCodeORM)
            .where(
                OtpCodeORM.email == email.lower(),
                OtpCodeORM.code == code,
                OtpCodeORM.purpose == purpose,
            )
            .order_by(OtpCodeORM.created_at.desc(), OtpCodeORM.id.desc())
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return OtpRecord.from_orm(row) if row else None


async def delete_expired_codes(now: datetime) -> int:
    """Purge codes whose expiry has passed. Returns the number of rows removed."""
    async with get_session() as session:
        result = await session.execute(
            delete(OtpCodeORM).where(OtpCodeORM.expires_at <= now)
        )
        await session.commit()
        deleted = result.rowcount or 0

    logger.info(f"Deleted {deleted} expired verification codes")
    return deleted
