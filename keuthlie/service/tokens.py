"""Bearer token protocol.

Wire form, six fields joined by ``$``::

    version $ issuer_id $ identity_id $ secret_digest_hex $ nonce_hex $ signature_hex

The signature covers the first five fields joined by ``$``: the payload is
hashed with SHA-512 and the digest is signed with RSASSA-PKCS1-v1_5 using the
process private key. A token is valid only while its embedded secret digest
matches the digest of the identity's current revocation secret.
"""

from __future__ import annotations

import hashlib
import hmac
import re
import secrets
from dataclasses import dataclass
from typing import Sequence

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, utils

from keuthlie.config import TOKEN_DELIMITER
from keuthlie.logging import get_logger
from keuthlie.service.errors import (
    IdentityNotFound,
    InvalidSignature,
    MalformedToken,
    RevokedToken,
    SigningError,
    TokenEncodingError,
    TokenRejected,
    UnknownIdentity,
    UnsupportedVersion,
)
from keuthlie.service.keys import KeyMaterial
from keuthlie.service.revocation import RevocationSecretManager
from keuthlie.storage.models import IdentityConnection, IdentityStore

logger = get_logger(__name__)

TOKEN_VERSION = "00"
TOKEN_FIELD_COUNT = 6
NONCE_BYTES = 32

# Canonical form produced by the issuer: lowercase hex, whole bytes, no padding
_SIGNATURE_HEX = re.compile(r"(?:[0-9a-f]{2})+")


def encode_fields(fields: Sequence[str]) -> str:
    """Join token fields, refusing any value that contains the delimiter."""
    for index, value in enumerate(fields):
        if TOKEN_DELIMITER in value:
            raise TokenEncodingError(
                f"token field {index} contains reserved delimiter {TOKEN_DELIMITER!r}"
            )
    return TOKEN_DELIMITER.join(fields)


def _payload_digest(payload: str) -> bytes:
    return hashlib.sha512(payload.encode("utf-8")).digest()


def _sign_digest(keys: KeyMaterial, payload: str) -> bytes:
    if keys.private_key is None:
        raise SigningError("no private key loaded; this process cannot issue tokens")
    return keys.private_key.sign(
        _payload_digest(payload),
        padding.PKCS1v15(),
        utils.Prehashed(hashes.SHA512()),
    )


def _verify_digest(keys: KeyMaterial, payload: str, signature: bytes) -> None:
    keys.public_key.verify(
        signature,
        _payload_digest(payload),
        padding.PKCS1v15(),
        utils.Prehashed(hashes.SHA512()),
    )


class TokenIssuer:
    def __init__(
        self,
        keys: KeyMaterial,
        revocation: RevocationSecretManager,
        *,
        issuer_id: str,
    ) -> None:
        self.keys = keys
        self.revocation = revocation
        self.issuer_id = issuer_id

    def issue(self, conn: IdentityConnection, identity_id: str) -> str:
        """Build and sign a token for ``identity_id`` using its current secret."""
        secret = conn.get_revocation_secret(identity_id)
        if secret is None:
            raise IdentityNotFound(f"no revocation secret on record for {identity_id}")

        fields = [
            TOKEN_VERSION,
            self.issuer_id,
            identity_id,
            self.revocation.digest_of(secret),
            secrets.token_hex(NONCE_BYTES),
        ]
        payload = encode_fields(fields)
        try:
            signature = _sign_digest(self.keys, payload)
        except SigningError:
            raise
        except Exception as exc:
            raise SigningError(f"signing failed: {type(exc).__name__}") from exc
        return encode_fields([*fields, signature.hex()])


@dataclass(frozen=True)
class VerifiedToken:
    identity_id: str
    issuer_id: str


class TokenVerifier:
    """Authenticates bearer tokens with the public key and the identity store.

    Needs no private key, so any service holding the public key can run it.
    """

    def __init__(
        self,
        keys: KeyMaterial,
        store: IdentityStore,
        revocation: RevocationSecretManager,
    ) -> None:
        self.keys = keys
        self.store = store
        self.revocation = revocation

    def verify(self, token: str) -> VerifiedToken:
        try:
            return self._verify(token)
        except TokenRejected as exc:
            logger.info("token_rejected", reason=exc.reason)
            raise

    def _verify(self, token: str) -> VerifiedToken:
        fields = token.split(TOKEN_DELIMITER)
        if len(fields) != TOKEN_FIELD_COUNT:
            raise MalformedToken(f"expected {TOKEN_FIELD_COUNT} fields, got {len(fields)}")

        version, issuer_id, identity_id, secret_digest, _nonce, signature_hex = fields
        if version != TOKEN_VERSION:
            raise UnsupportedVersion(f"unsupported token version {version!r}")

        if not _SIGNATURE_HEX.fullmatch(signature_hex):
            raise InvalidSignature("signature field is not canonical hex")

        payload = TOKEN_DELIMITER.join(fields[:5])
        try:
            _verify_digest(self.keys, payload, bytes.fromhex(signature_hex))
        except Exception as exc:
            # bad hex, bad signature and backend errors all fail closed here
            raise InvalidSignature(f"signature rejected: {type(exc).__name__}") from exc

        # Store lookup only after the signature holds, so unauthenticated
        # callers cannot probe which identity ids exist.
        with self.store.connection() as conn:
            stored_secret = conn.get_revocation_secret(identity_id)
        if stored_secret is None:
            raise UnknownIdentity("token subject no longer exists")

        expected = self.revocation.digest_of(stored_secret)
        if not hmac.compare_digest(expected.encode(), secret_digest.encode("utf-8")):
            raise RevokedToken("revocation secret has been rotated")

        return VerifiedToken(identity_id=identity_id, issuer_id=issuer_id)
