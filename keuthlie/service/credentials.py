from __future__ import annotations

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from keuthlie.logging import get_logger

logger = get_logger(__name__)


class CredentialVerifier:
    """One-way password hashing with argon2id.

    Hashes are PHC strings that carry their own parameters and salt, so
    stored credentials keep verifying after the hasher's parameters change.
    """

    algorithm = "argon2id"

    def __init__(self, hasher: PasswordHasher | None = None) -> None:
        self._pwd_hasher = hasher or PasswordHasher(type=Type.ID)
        self._dummy_hash: str | None = None

    def hash(self, password: str) -> str:
        return self._pwd_hasher.hash(password)

    def verify(self, credential: str, password: str) -> bool:
        try:
            return self._pwd_hasher.verify(credential, password)
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError) as exc:
            logger.warning("credential_verification_error", error_type=type(exc).__name__)
            return False

    def verify_dummy(self, password: str) -> None:
        """Spend one verification on a throwaway hash.

        Used when no identity matches, so the caller cannot tell a missing
        account from a wrong password by response time.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self._pwd_hasher.hash("keuthlie-dummy-credential")
        self.verify(self._dummy_hash, password)
