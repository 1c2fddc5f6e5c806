"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .customer import Role


@dataclass(slots=True)
class CreateCustomerInput:
    """Inputs required to create a customer; ``password`` is still plaintext here."""

    email: str
    password: str
    name: str | None = None
    role: Role | str = Role.customer
    # Only the master bootstrap pins a number; everyone else draws from the allocator.
    account_number: int | None = None


@dataclass(slots=True)
class UpdateCustomerInput:
    """Sparse profile/balance update.

    ``None`` means "leave unchanged". The stored digest is recomputed only
    when ``password`` carries a new plaintext secret.
    """

    name: str | None = None
    email: str | None = None
    role: Role | str | None = None
    balance: Decimal | int | str | None = None
    password: str | None = None

    @property
    def secret_changed(self) -> bool:
        return self.password is not None


@dataclass(slots=True)
class CustomerFilter:
    """Equality predicates and pagination for listing customers."""

    name: str | None = None
    email: str | None = None
    role: Role | str | None = None
    page: int = 1
    per_page: int = 30
