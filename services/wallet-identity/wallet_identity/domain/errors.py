"""Error taxonomy shared by the identity domain and the HTTP layer."""

from __future__ import annotations


class WalletError(Exception):
    """Base error carrying an HTTP-like status and a display-safe message."""

    status_code: int = 500
    default_message: str = "internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(WalletError, ValueError):
    status_code = 400
    default_message = "validation failed"


class InvalidSecret(ValidationError):
    default_message = "password must be between 6 and 128 characters"


class MissingEmail(ValidationError):
    default_message = "an email is required to generate a token"


class NotFound(WalletError):
    status_code = 404
    default_message = "customer does not exist"


class DuplicateEmail(WalletError):
    status_code = 409
    default_message = "email already exists"


class DuplicateAccountNumber(WalletError):
    status_code = 409
    default_message = "account number already exists"


class AuthFailed(WalletError):
    """Credential mismatch; intentionally identical for unknown emails and wrong passwords."""

    status_code = 401
    default_message = "incorrect email or password"


class TokenInvalid(WalletError):
    status_code = 401
    default_message = "invalid token"


class TokenExpired(WalletError):
    status_code = 401
    default_message = "token expired"


class Forbidden(WalletError):
    status_code = 403
    default_message = "forbidden"


class AllocationFailure(WalletError):
    status_code = 503
    default_message = "account number allocation unavailable"
