from __future__ import annotations

import time
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from threading import Lock
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from wallet_identity.allocator import InMemoryAccountNumberAllocator
from wallet_identity.api import routes
from wallet_identity.domain.auth import Authenticator
from wallet_identity.domain.customer import Customer, Role
from wallet_identity.domain.errors import DuplicateAccountNumber, DuplicateEmail
from wallet_identity.domain.service import CustomerService
from wallet_identity.security.passwords import PasswordHasher
from wallet_identity.security.tokens import TokenIssuer

TEST_SECRET = "test-signing-secret-with-enough-entropy-0123456789"


class FakeRepository:
    """In-memory repository mimicking the Postgres unique constraints."""

    def __init__(self) -> None:
        self._customers: dict[str, Customer] = {}
        self._lock = Lock()
        self.insert_attempts = 0

    def insert_customer(
        self,
        *,
        account_number: int,
        email: str,
        password_digest: str,
        name: str | None,
        role: Role,
        balance: Decimal = Decimal("0"),
    ) -> Customer:
        now = datetime.now(timezone.utc)
        with self._lock:
            self.insert_attempts += 1
            for existing in self._customers.values():
                if existing.email == email:
                    raise DuplicateEmail()
                if existing.account_number == account_number:
                    raise DuplicateAccountNumber()
            customer = Customer(
                customer_id=str(uuid.uuid4()),
                account_number=account_number,
                email=email,
                password_digest=password_digest,
                created_at=now,
                updated_at=now,
                name=name,
                role=role,
                balance=balance,
            )
            self._customers[customer.customer_id] = customer
        return customer

    def _snapshot(self) -> list[Customer]:
        with self._lock:
            return list(self._customers.values())

    def get_customer(self, customer_id: str) -> Customer | None:
        return self._customers.get(customer_id)

    def get_by_email(self, email: str) -> Customer | None:
        return next((c for c in self._snapshot() if c.email == email), None)

    def get_by_account_number(self, account_number: int) -> Customer | None:
        return next((c for c in self._snapshot() if c.account_number == account_number), None)

    def update_customer(self, customer_id: str, changes: dict[str, Any]) -> Customer | None:
        with self._lock:
            current = self._customers.get(customer_id)
            if current is None:
                return None
            if "email" in changes and any(
                c.email == changes["email"] and c.customer_id != customer_id
                for c in self._customers.values()
            ):
                raise DuplicateEmail()
            updated = replace(current, **changes, updated_at=datetime.now(timezone.utc))
            self._customers[customer_id] = updated
        return updated

    def list_customers(
        self,
        *,
        name: str | None = None,
        email: str | None = None,
        role: Role | None = None,
        limit: int = 30,
        offset: int = 0,
    ) -> list[Customer]:
        results = sorted(self._snapshot(), key=lambda c: c.account_number)
        if name is not None:
            results = [c for c in results if c.name == name]
        if email is not None:
            results = [c for c in results if c.email == email]
        if role is not None:
            results = [c for c in results if c.role is role]
        return results[offset : offset + limit]


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float | None = None) -> None:
        self.now = time.time() if start is None else start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def issuer(clock: FakeClock) -> TokenIssuer:
    return TokenIssuer(TEST_SECRET, ttl_minutes=15, issuer="wallet.identity.test", clock=clock)


@pytest.fixture
def service(repository, hasher) -> CustomerService:
    allocator = InMemoryAccountNumberAllocator(floor=1001, step=1)
    return CustomerService(repository, allocator, hasher)


@pytest.fixture
def authenticator(repository, hasher, issuer) -> Authenticator:
    return Authenticator(repository, hasher, issuer)


@pytest.fixture
def api_client(service, authenticator, issuer):
    """Provide a FastAPI test client with isolated state."""
    app = FastAPI()
    app.include_router(routes.router)
    routes.install_error_handlers(app)
    app.state.customer_service = service
    app.state.authenticator = authenticator
    app.state.token_issuer = issuer

    with TestClient(app) as client:
        yield client
