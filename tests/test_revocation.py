import hashlib

import pytest

from keuthlie.service.errors import IdentityNotFound
from keuthlie.service.revocation import SECRET_BYTES, RevocationSecretManager
from keuthlie.storage.memory import MemoryStore
from keuthlie.storage.models import Identity


def _identity(identity_id="id-1", secret=b"\x00" * SECRET_BYTES):
    return Identity(
        id=identity_id,
        username="alice",
        email="alice@example.com",
        passhash="$argon2id$stub",
        revocation_secret=secret,
    )


def test_generate_returns_fresh_64_byte_secrets():
    manager = RevocationSecretManager()
    first, second = manager.generate(), manager.generate()
    assert len(first) == SECRET_BYTES == 64
    assert first != second


def test_digest_is_sha3_512_hex():
    secret = b"\x01" * 64
    digest = RevocationSecretManager.digest_of(secret)
    assert digest == hashlib.sha3_512(secret).hexdigest()
    assert len(digest) == 128


def test_rotate_replaces_stored_secret():
    store = MemoryStore()
    manager = RevocationSecretManager()
    with store.transaction() as conn:
        conn.insert_identity(_identity())
        new_secret = manager.rotate(conn, "id-1")
        assert conn.get_revocation_secret("id-1") == new_secret
    assert new_secret != b"\x00" * SECRET_BYTES


def test_initialize_unknown_identity_raises():
    store = MemoryStore()
    manager = RevocationSecretManager()
    with pytest.raises(IdentityNotFound):
        with store.transaction() as conn:
            manager.initialize(conn, "missing")
