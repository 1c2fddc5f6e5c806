"""Customer projections shared across services."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, EmailStr, Field


class CustomerRole(str, Enum):
    customer = "customer"
    admin = "admin"


class CustomerProfile(BaseModel):
    """Public profile view of a customer; never carries credential material."""

    id: str
    account_number: int
    name: str | None = None
    email: EmailStr
    role: CustomerRole
    created_at: datetime

    class Config:
        use_enum_values = True


class CustomerBalance(CustomerProfile):
    """Profile view plus the wallet balance, for authorised callers only."""

    balance: Decimal = Field(..., ge=0)
