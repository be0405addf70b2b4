import pytest
from pydantic import ValidationError

from keuthlie.config import Settings


def test_from_env_reads_declared_names(monkeypatch):
    monkeypatch.setenv("ALLOWED_SERVICES", "alpha, beta ,,gamma")
    monkeypatch.setenv("ISSUER_ID", "issuer-a")
    monkeypatch.setenv("MIN_PASSWORD_LENGTH", "12")
    monkeypatch.setenv("USE_MEMORY_STORE", "true")
    monkeypatch.setenv("PRIVATE_KEY_PATH", "")
    settings = Settings.from_env()
    assert settings.allowed_services == ["alpha", "beta", "gamma"]
    assert settings.issuer_id == "issuer-a"
    assert settings.min_password_length == 12
    assert settings.use_memory_store is True
    assert settings.private_key_path is None


def test_defaults():
    settings = Settings()
    assert settings.min_password_length == 8
    assert settings.public_key_path == "./certs/cert.pem"
    assert settings.db_pool_max_size >= settings.db_pool_min_size


def test_issuer_id_may_not_contain_delimiter():
    with pytest.raises(ValidationError):
        Settings(issuer_id="bad$issuer")


def test_pool_bounds_are_checked():
    with pytest.raises(ValidationError):
        Settings(db_pool_min_size=5, db_pool_max_size=2)


def test_unknown_fields_are_ignored():
    assert not hasattr(Settings(not_a_setting=True), "not_a_setting")
