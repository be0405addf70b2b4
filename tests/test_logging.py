from keuthlie.logging import REDACTED, _redact_pii, get_correlation_id, set_correlation_id


def _redact(**fields):
    return _redact_pii(None, "info", {"event": "sample_event", **fields})


def test_secret_material_is_dropped_whole():
    entry = _redact(
        password="hunter2hunter2",
        revocation_secret=b"\x01" * 64,
        signature="ab" * 256,
        token="00$issuer$id$digest$nonce$sig",
    )
    assert entry["password"] == REDACTED
    assert entry["revocation_secret"] == REDACTED
    assert entry["signature"] == REDACTED
    assert entry["token"] == REDACTED


def test_counts_and_flags_survive():
    entry = _redact(token_count=3, can_sign=True, secret_len=None)
    assert entry["token_count"] == 3
    assert entry["secret_len"] is None


def test_contact_details_are_masked():
    entry = _redact(email="alice@example.com", username="alice")
    assert entry["email"] == "a***@example.com"
    assert entry["username"] == "a***"


def test_unrelated_fields_untouched():
    entry = _redact(identity_id="0190f5c4", reason="revoked")
    assert entry == {"event": "sample_event", "identity_id": "0190f5c4", "reason": "revoked"}


def test_correlation_id_generated_when_missing():
    cid = set_correlation_id(None)
    assert cid
    assert get_correlation_id() == cid
    assert set_correlation_id("req-9") == "req-9"
