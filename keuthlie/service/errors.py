from __future__ import annotations

from typing import Optional


class ServiceError(Exception):
    """Base class for service-layer failures mapped to API responses.

    Each subclass carries the HTTP ``status_code`` and the stable negative
    ``code`` returned in the response envelope:

    - ``-1`` invalid credentials (and any rejected token)
    - ``-2`` password too short
    - ``-3`` username taken
    - ``-4`` email taken
    - ``-5`` malformed input
    - ``-6`` service not allowed
    - ``-7`` internal failure
    """

    status_code: int = 400
    code: int = -5
    public_message: str = "Invalid data provided!"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        detail: Optional[dict] = None,
    ) -> None:
        message = message or self.public_message
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail or {}


class MalformedInput(ServiceError):
    status_code = 400
    code = -5
    public_message = "Invalid data provided!"


class InvalidCredentials(ServiceError):
    status_code = 403
    code = -1
    public_message = "Invalid e-mail or password!"


class PasswordTooShort(ServiceError):
    status_code = 403
    code = -2
    public_message = "Password too short!"


class UsernameTaken(ServiceError):
    status_code = 403
    code = -3
    public_message = "Username already in use!"


class EmailInUse(ServiceError):
    status_code = 403
    code = -4
    public_message = "E-mail already in use!"


class ServiceNotAllowed(ServiceError):
    status_code = 403
    code = -6
    public_message = "Disallowed service selected!"


class ServerError(ServiceError):
    """Unexpected failure; the message never leaves the process."""

    status_code = 500
    code = -7
    public_message = "Internal error, please report this with details."


class IdentityNotFound(ServerError):
    """No identity record (or revocation secret) for an id that should exist."""


class SigningError(ServerError):
    """Private key unavailable or the signing primitive failed."""


class TokenEncodingError(ServerError):
    """A token field contained the reserved delimiter."""


class TokenRejected(ServiceError):
    """Base for bearer-token verification failures.

    ``reason`` keeps the precise cause for logs; callers outside the process
    only ever see the collapsed ``public_message``.
    """

    status_code = 401
    code = -1
    public_message = "Invalid token!"
    reason = "invalid"


class MalformedToken(TokenRejected):
    reason = "malformed"


class UnsupportedVersion(TokenRejected):
    reason = "unsupported_version"


class InvalidSignature(TokenRejected):
    reason = "invalid_signature"


class UnknownIdentity(TokenRejected):
    reason = "unknown_identity"


class RevokedToken(TokenRejected):
    reason = "revoked"


__all__ = [
    "ServiceError",
    "MalformedInput",
    "InvalidCredentials",
    "PasswordTooShort",
    "UsernameTaken",
    "EmailInUse",
    "ServiceNotAllowed",
    "ServerError",
    "IdentityNotFound",
    "SigningError",
    "TokenEncodingError",
    "TokenRejected",
    "MalformedToken",
    "UnsupportedVersion",
    "InvalidSignature",
    "UnknownIdentity",
    "RevokedToken",
]
