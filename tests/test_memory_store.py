import pytest

from keuthlie.storage.errors import ConstraintViolation
from keuthlie.storage.memory import MemoryStore
from keuthlie.storage.models import Identity


def _identity(identity_id, username, email):
    return Identity(
        id=identity_id,
        username=username,
        email=email,
        passhash="$argon2id$stub",
        revocation_secret=b"\x07" * 64,
    )


def test_insert_and_lookup():
    store = MemoryStore()
    with store.transaction() as conn:
        conn.insert_identity(_identity("a", "alice", "alice@example.com"))
    with store.connection() as conn:
        assert conn.get_identity("a").username == "alice"
        assert conn.get_identity_by_email("alice@example.com").id == "a"
        assert conn.username_exists("alice")
        assert conn.email_exists("alice@example.com")
        assert not conn.username_exists("bob")
        assert conn.get_identity_by_email("bob@example.com") is None


@pytest.mark.parametrize(
    "duplicate,field",
    [
        (("a", "other", "other@example.com"), "id"),
        (("b", "alice", "other@example.com"), "username"),
        (("b", "other", "alice@example.com"), "email"),
    ],
)
def test_insert_constraint_violations_name_the_field(duplicate, field):
    store = MemoryStore()
    with store.transaction() as conn:
        conn.insert_identity(_identity("a", "alice", "alice@example.com"))
    with pytest.raises(ConstraintViolation) as excinfo:
        with store.transaction() as conn:
            conn.insert_identity(_identity(*duplicate))
    assert excinfo.value.field == field


def test_failed_transaction_leaves_no_row():
    store = MemoryStore()
    with pytest.raises(RuntimeError):
        with store.transaction() as conn:
            conn.insert_identity(_identity("a", "alice", "alice@example.com"))
            raise RuntimeError("boom")
    with store.connection() as conn:
        assert conn.get_identity("a") is None
    assert store.identities == {}


def test_failed_transaction_restores_updated_secret():
    store = MemoryStore()
    with store.transaction() as conn:
        conn.insert_identity(_identity("a", "alice", "alice@example.com"))
    with pytest.raises(RuntimeError):
        with store.transaction() as conn:
            assert conn.set_revocation_secret("a", b"\x09" * 64)
            raise RuntimeError("boom")
    with store.connection() as conn:
        assert conn.get_revocation_secret("a") == b"\x07" * 64


def test_update_credentials_writes_both_fields():
    store = MemoryStore()
    with store.transaction() as conn:
        conn.insert_identity(_identity("a", "alice", "alice@example.com"))
        assert conn.update_credentials("a", "$argon2id$new", b"\x08" * 64)
        assert not conn.update_credentials("missing", "$argon2id$new", b"\x08" * 64)
    with store.connection() as conn:
        identity = conn.get_identity("a")
    assert identity.passhash == "$argon2id$new"
    assert identity.revocation_secret == b"\x08" * 64


def test_identity_repr_hides_secret():
    identity = _identity("a", "alice", "alice@example.com")
    assert "revocation_secret" not in repr(identity)
