"""Customer service orchestrating allocation, credential hashing, and persistence."""

from __future__ import annotations

import logging
from typing import Any

from .contracts import CreateCustomerInput, CustomerFilter, UpdateCustomerInput
from .customer import Customer, normalize_email, normalize_name, parse_role, validate_balance
from .errors import NotFound, ValidationError
from ..allocator import AccountNumberAllocator
from ..repository import CustomerRepository
from ..security.passwords import PasswordHasher

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100


class CustomerService:
    """Identity store operations over the customer repository."""

    def __init__(
        self,
        repository: CustomerRepository,
        allocator: AccountNumberAllocator,
        hasher: PasswordHasher,
    ) -> None:
        """Store dependencies used to create, look up, and update customers."""
        self._repository = repository
        self._allocator = allocator
        self._hasher = hasher

    def create_customer(self, payload: CreateCustomerInput) -> Customer:
        """Validate, number, hash, and persist a new customer.

        Field validation and hashing happen before an account number is
        drawn, so malformed input never consumes a number. A uniqueness
        failure at insert time does leave a gap in the sequence.
        """
        email = normalize_email(payload.email)
        name = normalize_name(payload.name)
        role = parse_role(payload.role)
        digest = self._hasher.hash(payload.password)

        account_number = payload.account_number
        if account_number is None:
            account_number = self._allocator.next()

        customer = self._repository.insert_customer(
            account_number=account_number,
            email=email,
            password_digest=digest,
            name=name,
            role=role,
        )
        logger.info(
            "customer created id=%s account_number=%s role=%s",
            customer.customer_id,
            customer.account_number,
            customer.role.value,
        )
        return customer

    def get_customer(self, customer_id: str) -> Customer:
        customer = self._repository.get_customer(customer_id)
        if customer is None:
            raise NotFound()
        return customer

    def get_by_email(self, email: str) -> Customer:
        customer = self._repository.get_by_email(normalize_email(email))
        if customer is None:
            raise NotFound()
        return customer

    def get_by_account_number(self, account_number: int) -> Customer:
        customer = self._repository.get_by_account_number(account_number)
        if customer is None:
            raise NotFound()
        return customer

    def update_customer(self, customer_id: str, changes: UpdateCustomerInput) -> Customer:
        """Apply a sparse update; the digest is recomputed only for a new password."""
        fields: dict[str, Any] = {}
        if changes.name is not None:
            fields["name"] = normalize_name(changes.name)
        if changes.email is not None:
            fields["email"] = normalize_email(changes.email)
        if changes.role is not None:
            fields["role"] = parse_role(changes.role)
        if changes.balance is not None:
            fields["balance"] = validate_balance(changes.balance)
        if changes.secret_changed:
            fields["password_digest"] = self._hasher.hash(changes.password)

        customer = self._repository.update_customer(customer_id, fields)
        if customer is None:
            raise NotFound()
        return customer

    def list_customers(self, query: CustomerFilter) -> list[Customer]:
        """Return one page of customers matching the sparse equality filter.

        Results are ordered by ascending account number.
        """
        if query.page < 1:
            raise ValidationError("page must be at least 1")
        if not 1 <= query.per_page <= MAX_PER_PAGE:
            raise ValidationError(f"per_page must be between 1 and {MAX_PER_PAGE}")

        return self._repository.list_customers(
            name=normalize_name(query.name) if query.name is not None else None,
            email=normalize_email(query.email) if query.email is not None else None,
            role=parse_role(query.role) if query.role is not None else None,
            limit=query.per_page,
            offset=(query.page - 1) * query.per_page,
        )
