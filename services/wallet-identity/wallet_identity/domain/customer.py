from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum

from email_validator import EmailNotValidError, validate_email

from .errors import ValidationError

NAME_MAX_LENGTH = 128
EMAIL_MAX_LENGTH = 254


class Role(str, Enum):
    customer = "customer"
    admin = "admin"


def parse_role(value: Role | str | None) -> Role:
    """Coerce ``value`` into a :class:`Role`, defaulting to ``customer``."""
    if value is None:
        return Role.customer
    try:
        return Role(value)
    except ValueError as exc:
        raise ValidationError(f"role must be one of: {', '.join(r.value for r in Role)}") from exc


def normalize_email(email: str | None) -> str:
    """Trim and lower-case an email address, rejecting blank or malformed values."""
    if email is None:
        raise ValidationError("email is required")
    normalized = email.strip().lower()
    if not normalized:
        raise ValidationError("email is required")
    if len(normalized) > EMAIL_MAX_LENGTH:
        raise ValidationError("email is invalid")
    # Same rule pydantic's EmailStr applies to the outgoing profile views.
    try:
        validated = validate_email(normalized, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationError("email is invalid") from exc
    return validated.normalized.lower()


def normalize_name(name: str | None) -> str | None:
    if name is None:
        return None
    trimmed = name.strip()
    if len(trimmed) > NAME_MAX_LENGTH:
        raise ValidationError(f"name must be at most {NAME_MAX_LENGTH} characters")
    return trimmed


def validate_balance(balance: Decimal | int | str) -> Decimal:
    try:
        value = Decimal(str(balance))
    except InvalidOperation as exc:
        raise ValidationError("balance must be numeric") from exc
    if not value.is_finite() or value < 0:
        raise ValidationError("balance must not be negative")
    return value


@dataclass(slots=True)
class Customer:
    """Aggregate root for a wallet customer identity."""

    customer_id: str
    account_number: int
    email: str
    password_digest: str = field(repr=False)
    created_at: datetime
    updated_at: datetime
    name: str | None = None
    role: Role = Role.customer
    balance: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        self.role = parse_role(self.role)
        self.balance = validate_balance(self.balance)

    @property
    def is_admin(self) -> bool:
        return self.role is Role.admin
