import re
import uuid

from keuthlie.storage.ids import new_identity_id

_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-7[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


def test_identity_id_is_canonical_uuid7():
    identity_id = new_identity_id()
    assert _UUID_RE.match(identity_id)
    parsed = uuid.UUID(identity_id)
    assert parsed.version == 7
    assert parsed.variant == uuid.RFC_4122


def test_identity_ids_are_unique_and_ordered():
    ids = [new_identity_id() for _ in range(2000)]
    assert len(set(ids)) == len(ids)
    assert ids == sorted(ids)


def test_identity_id_never_contains_token_delimiter():
    assert all("$" not in new_identity_id() for _ in range(100))
