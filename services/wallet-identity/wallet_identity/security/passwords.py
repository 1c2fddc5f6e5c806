"""bcrypt-backed hashing and verification of customer passwords."""

from __future__ import annotations

import base64
import hashlib
import secrets

import bcrypt

from ..domain.errors import InvalidSecret

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128


def _prehash(plaintext: str) -> bytes:
    # bcrypt only reads the first 72 bytes; fold the full secret into a fixed-size input.
    return base64.b64encode(hashlib.sha256(plaintext.encode("utf-8")).digest())


class PasswordHasher:
    """Salted, cost-configurable one-way hashing of plaintext secrets."""

    def __init__(self, rounds: int = 10) -> None:
        """Store the bcrypt cost factor (valid range 4-31)."""
        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")
        self._rounds = rounds
        self._dummy_digest = self.hash(secrets.token_urlsafe(32))

    @property
    def rounds(self) -> int:
        return self._rounds

    @property
    def dummy_digest(self) -> str:
        """Digest of a random secret at this hasher's cost, for verifying against nothing."""
        return self._dummy_digest

    def hash(self, plaintext: str) -> str:
        """Return a bcrypt digest for ``plaintext``.

        Raises
        ------
        InvalidSecret
            When ``plaintext`` is not a string of 6 to 128 characters.
        """
        if not isinstance(plaintext, str) or not (
            PASSWORD_MIN_LENGTH <= len(plaintext) <= PASSWORD_MAX_LENGTH
        ):
            raise InvalidSecret()
        digest = bcrypt.hashpw(_prehash(plaintext), bcrypt.gensalt(rounds=self._rounds))
        return digest.decode("ascii")

    def verify(self, plaintext: str | None, digest: str | None) -> bool:
        """Return ``True`` when ``plaintext`` matches ``digest``; never raises on bad input."""
        if not isinstance(plaintext, str) or not isinstance(digest, str) or not digest:
            return False
        try:
            return bcrypt.checkpw(_prehash(plaintext), digest.encode("ascii"))
        except ValueError:
            return False
