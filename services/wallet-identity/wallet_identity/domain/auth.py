"""Email/password authentication producing session tokens."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .customer import Customer, normalize_email
from .errors import AuthFailed, MissingEmail, ValidationError
from ..repository import CustomerRepository
from ..security.passwords import PasswordHasher
from ..security.tokens import AccessToken, TokenIssuer

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AuthResult:
    customer: Customer
    token: AccessToken


class Authenticator:
    """Answers whether an email/password pair identifies a customer, minting a token if so."""

    def __init__(
        self,
        repository: CustomerRepository,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
    ) -> None:
        self._repository = repository
        self._hasher = hasher
        self._issuer = issuer

    def authenticate(self, email: str | None, password: str | None) -> AuthResult:
        """Return the customer and a fresh token, or raise :class:`AuthFailed`.

        Unknown emails, wrong passwords and missing passwords all raise the
        same error with the same message.
        """
        if email is None or not email.strip():
            raise MissingEmail()

        try:
            customer = self._repository.get_by_email(normalize_email(email))
        except ValidationError:
            customer = None

        if customer is not None and password:
            if self._hasher.verify(password, customer.password_digest):
                return AuthResult(customer=customer, token=self._issuer.issue(customer))
        else:
            # Same bcrypt cost whether or not the email is registered.
            self._hasher.verify(password or "", self._hasher.dummy_digest)

        logger.info("authentication failed")
        raise AuthFailed()
