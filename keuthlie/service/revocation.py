from __future__ import annotations

import hashlib
import secrets

from keuthlie.logging import get_logger
from keuthlie.service.errors import IdentityNotFound
from keuthlie.storage.models import IdentityConnection

logger = get_logger(__name__)

SECRET_BYTES = 64


class RevocationSecretManager:
    """Per-identity random secret whose digest is embedded in every token.

    Overwriting the secret revokes all tokens issued for the identity at once;
    verification cost stays one field read and one hash.
    """

    secret_bytes = SECRET_BYTES

    def generate(self) -> bytes:
        return secrets.token_bytes(self.secret_bytes)

    @staticmethod
    def digest_of(secret: bytes) -> str:
        """SHA3-512 hex digest embedded in and compared against tokens."""
        return hashlib.sha3_512(secret).hexdigest()

    def initialize(self, conn: IdentityConnection, identity_id: str) -> bytes:
        """Store a fresh secret for an existing identity record."""
        secret = self.generate()
        if not conn.set_revocation_secret(identity_id, secret):
            raise IdentityNotFound(f"no identity {identity_id} to initialize")
        return secret

    def rotate(self, conn: IdentityConnection, identity_id: str) -> bytes:
        """Replace the stored secret, invalidating every outstanding token."""
        secret = self.initialize(conn, identity_id)
        logger.info("revocation_secret_rotated", identity_id=identity_id)
        return secret
