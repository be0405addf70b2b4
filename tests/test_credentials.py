from keuthlie.service.credentials import CredentialVerifier


def test_hash_is_argon2id_and_salted():
    verifier = CredentialVerifier()
    first = verifier.hash("correct horse battery")
    second = verifier.hash("correct horse battery")
    assert first.startswith("$argon2id$")
    assert first != second
    assert "correct horse battery" not in first


def test_verify_accepts_matching_password():
    verifier = CredentialVerifier()
    stored = verifier.hash("correct horse battery")
    assert verifier.verify(stored, "correct horse battery") is True


def test_verify_rejects_wrong_password():
    verifier = CredentialVerifier()
    stored = verifier.hash("correct horse battery")
    assert verifier.verify(stored, "wrong horse battery") is False


def test_verify_returns_false_for_corrupt_hash():
    verifier = CredentialVerifier()
    assert verifier.verify("not-a-phc-string", "whatever-password") is False


def test_verify_dummy_does_not_raise():
    verifier = CredentialVerifier()
    verifier.verify_dummy("some-password")
    verifier.verify_dummy("another-password")
