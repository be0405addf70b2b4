from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from keuthlie.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class KeyMaterial:
    """The process-wide signing keypair, loaded once at startup.

    ``private_key`` is absent on deployments that only verify tokens.
    """

    public_key: rsa.RSAPublicKey
    private_key: Optional[rsa.RSAPrivateKey] = None

    @classmethod
    def from_pem(
        cls, public_pem: bytes, private_pem: Optional[bytes] = None
    ) -> "KeyMaterial":
        public_key = serialization.load_pem_public_key(public_pem)
        if not isinstance(public_key, rsa.RSAPublicKey):
            raise ValueError("public key must be an RSA key")
        private_key = None
        if private_pem is not None:
            private_key = serialization.load_pem_private_key(private_pem, password=None)
            if not isinstance(private_key, rsa.RSAPrivateKey):
                raise ValueError("private key must be an RSA key")
            if private_key.public_key().public_numbers() != public_key.public_numbers():
                raise ValueError("private key does not match public key")
        return cls(public_key=public_key, private_key=private_key)

    @classmethod
    def load(
        cls, *, public_key_path: str, private_key_path: Optional[str] = None
    ) -> "KeyMaterial":
        public_pem = Path(public_key_path).read_bytes()
        private_pem = Path(private_key_path).read_bytes() if private_key_path else None
        keys = cls.from_pem(public_pem, private_pem)
        logger.info(
            "key_material_loaded",
            public_key_path=public_key_path,
            can_sign=keys.private_key is not None,
            key_size=keys.public_key.key_size,
        )
        return keys


def generate_rsa_keypair(key_size: int = 4096) -> tuple[bytes, bytes]:
    """Generate an RSA keypair and return ``(private_pem, public_pem)``."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem, public_pem
