"""Shared schema exports."""

from .customer import CustomerBalance, CustomerProfile, CustomerRole

__all__ = [
    "CustomerBalance",
    "CustomerProfile",
    "CustomerRole",
]
