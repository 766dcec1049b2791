"""Pytest configuration and fixtures."""

from __future__ import annotations

import os

# Settings are read once at import; tests never talk to Valkey or a mail server
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("EMAIL_DEV_MODE", "false")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("CRYPTOBOT_API_URL", "http://cryptobot.test")

from collections.abc import Callable, Generator
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.core.security import TokenData
from app.repositories.otp_codes_orm import OtpRecord
from app.repositories.users_orm import Account


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app."""
    from app.api.app import create_api_app

    app = create_api_app()
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_token_data(email: str = "jane@example.com", is_admin: bool = False) -> TokenData:
    now = datetime.now(UTC)
    return TokenData(
        sub=email,
        exp=now + timedelta(hours=1),
        iat=now,
        iss="cryptoinvest",
        aud="cryptoinvest-api",
        jti="test-jti",
        is_admin=is_admin,
    )


def make_account(
    email: str = "jane@example.com",
    subscription_id: str | None = "sub_123",
    customer_id: str | None = "cus_123",
    **overrides,
) -> Account:
    values = dict(
        id=1,
        email=email,
        password_hash="$2b$12$placeholderplaceholderplaceholderplaceholderpla",
        first_name="Jane",
        last_name="Doe",
        is_admin=False,
        exchange_api_key=None,
        exchange_api_secret=None,
        initial_funds=Decimal("1000.00"),
        investment_active=True,
        stripe_customer_id=customer_id,
        stripe_subscription_id=subscription_id,
    )
    values.update(overrides)
    return Account(**values)


@pytest.fixture
def as_user(client: TestClient) -> Callable[..., Account]:
    """Authenticate requests as the returned account, bypassing JWT and DB lookups."""
    from app.api.dependencies import get_current_account, require_user

    def _login(account: Account | None = None, is_admin: bool = False) -> Account:
        account = account or make_account(is_admin=is_admin)

        async def override_require_user() -> TokenData:
            return make_token_data(account.email, is_admin=account.is_admin)

        async def override_current_account() -> Account:
            return account

        client.app.dependency_overrides[require_user] = override_require_user
        client.app.dependency_overrides[get_current_account] = override_current_account
        return account

    return _login


class FakeOtpStore:
    """In-memory stand-in for ``otp_codes_orm`` with the same consume semantics."""

    def __init__(self) -> None:
        self.rows: list[OtpRecord] = []

    async def create_code(self, email: str, code: str, purpose: str, expires_at: datetime) -> int:
        row = OtpRecord(
            id=len(self.rows) + 1,
            email=email.lower(),
            code=code,
            purpose=purpose,
            expires_at=expires_at,
            consumed=False,
            created_at=datetime.now(UTC),
        )
        self.rows.append(row)
        return row.id

    async def consume_code(self, email: str, code: str, purpose: str, now: datetime) -> bool:
        flipped = False
        for row in self.rows:
            if (
                row.email == email.lower()
                and row.code == code
                and row.purpose == purpose
                and not row.consumed
                and row.expires_at > now
            ):
                row.consumed = True
                flipped = True
        return flipped

    async def find_latest_code(self, email: str, code: str, purpose: str) -> OtpRecord | None:
        matches = [
            r for r in self.rows
            if r.email == email.lower() and r.code == code and r.purpose == purpose
        ]
        return matches[-1] if matches else None

    async def delete_expired_codes(self, now: datetime) -> int:
        before = len(self.rows)
        self.rows = [r for r in self.rows if r.expires_at > now]
        return before - len(self.rows)


@pytest.fixture
def otp_store(monkeypatch) -> FakeOtpStore:
    """Replace the verification code repository with an in-memory store."""
    from app.repositories import otp_codes_orm

    store = FakeOtpStore()
    for name in ("create_code", "consume_code", "find_latest_code", "delete_expired_codes"):
        monkeypatch.setattr(otp_codes_orm, name, getattr(store, name))
    return store


@pytest.fixture
def sent_emails(monkeypatch) -> list[tuple[str, str, str]]:
    """Capture verification emails instead of sending them."""
    from app.services import email_service

    sent: list[tuple[str, str, str]] = []

    async def fake_send_otp_email(email, code, purpose):
        sent.append((email, code, purpose.value))

    monkeypatch.setattr(email_service, "send_otp_email", fake_send_otp_email)
    return sent


@pytest.fixture
def profit_payload() -> Callable[..., dict]:
    """Build a ``/profit`` wire payload from (date, profit) pairs."""

    def _payload(*points: tuple[date, object]) -> dict:
        return {"profit": [{"DATE": d.isoformat(), "PROFIT": p} for d, p in points]}

    return _payload


@pytest.fixture
def account_factory() -> Callable[..., Account]:
    """Build ``Account`` values for tests."""
    return make_account


class FakeUserStore:
    """In-memory stand-in for the account lookups used by routes and services."""

    def __init__(self) -> None:
        self.accounts: dict[str, Account] = {}

    def add(self, account: Account) -> Account:
        self.accounts[account.email.lower()] = account
        return account

    async def get_user_by_email(self, email: str) -> Account | None:
        return self.accounts.get(email.lower())

    async def email_exists(self, email: str) -> bool:
        return email.lower() in self.accounts

    async def create_user(self, email: str, password_hash: str, **fields) -> Account:
        return self.add(
            make_account(
                email=email.lower(),
                subscription_id=None,
                customer_id=None,
                id=len(self.accounts) + 1,
                password_hash=password_hash,
                **fields,
            )
        )

    async def update_password(self, email: str, password_hash: str) -> bool:
        account = self.accounts.get(email.lower())
        if account is None:
            return False
        account.password_hash = password_hash
        return True

    async def update_initial_funds(self, email: str, initial_funds: Decimal) -> bool:
        account = self.accounts.get(email.lower())
        if account is None:
            return False
        account.initial_funds = initial_funds
        return True

    async def set_investment_active(self, email: str, active: bool) -> bool:
        account = self.accounts.get(email.lower())
        if account is None:
            return False
        account.investment_active = active
        return True


@pytest.fixture
def user_store(monkeypatch) -> FakeUserStore:
    """Replace the user repository with an in-memory store."""
    from app.repositories import users_orm

    store = FakeUserStore()
    for name in (
        "get_user_by_email",
        "email_exists",
        "create_user",
        "update_password",
        "update_initial_funds",
        "set_investment_active",
    ):
        monkeypatch.setattr(users_orm, name, getattr(store, name))
    return store
