"""Issuing and validating customer session JWTs."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

import jwt

from ..domain.customer import Customer
from ..domain.errors import TokenExpired, TokenInvalid

ALGORITHM = "HS256"


@dataclass(slots=True)
class AccessToken:
    """Encoded bearer token plus its lifetime in seconds."""

    token: str
    expires_in: int


class TokenIssuer:
    """Mints and verifies stateless HS256 tokens bound to a single customer."""

    def __init__(
        self,
        secret: str,
        *,
        ttl_minutes: int,
        issuer: str = "wallet.identity",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Store the signing secret, TTL and clock used for ``iat``/``exp`` claims."""
        if not secret:
            raise ValueError("a signing secret is required")
        if ttl_minutes <= 0:
            raise ValueError("token TTL must be positive")
        self._secret = secret
        self._ttl_seconds = ttl_minutes * 60
        self._issuer = issuer
        self._clock = clock

    def issue(self, customer: Customer) -> AccessToken:
        """Create a signed JWT for ``customer``.

        Parameters
        ----------
        customer:
            Identity whose ``customer_id`` becomes the ``sub`` claim.

        Returns
        -------
        AccessToken
            The encoded JWT string and its TTL (in seconds).
        """
        now = int(self._clock())
        payload: dict[str, Any] = {
            "iss": self._issuer,
            "sub": customer.customer_id,
            "iat": now,
            "exp": now + self._ttl_seconds,
        }
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        return AccessToken(token=token, expires_in=self._ttl_seconds)

    def validate(self, token: str) -> str:
        """Verify ``token`` and return the customer id it was issued for.

        Raises
        ------
        TokenExpired
            When the token's ``exp`` is not in the future.
        TokenInvalid
            For a bad signature, foreign issuer, or malformed claims.
        """
        try:
            # Expiry is checked below against the issuer's own clock.
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                options={"require": ["exp", "iat", "sub"], "verify_exp": False},
            )
        except jwt.PyJWTError as exc:
            raise TokenInvalid() from exc

        subject = claims.get("sub")
        expires_at = claims.get("exp")
        if not isinstance(subject, str) or not subject or not isinstance(expires_at, int):
            raise TokenInvalid()
        if expires_at <= int(self._clock()):
            raise TokenExpired()
        return subject
