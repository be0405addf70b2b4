import os
import sys
from pathlib import Path

# Seed settings before any keuthlie module reads the environment
os.environ.setdefault("USE_MEMORY_STORE", "true")
os.environ.setdefault("ALLOWED_SERVICES", "test-service,other-service")
os.environ.setdefault("ISSUER_ID", "test-issuer")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from keuthlie.app import create_app  # noqa: E402
from keuthlie.config import Settings  # noqa: E402
from keuthlie.service.keys import KeyMaterial, generate_rsa_keypair  # noqa: E402
from keuthlie.service.runtime import Runtime  # noqa: E402
from keuthlie.storage.memory import MemoryStore  # noqa: E402


@pytest.fixture(scope="session")
def rsa_pems():
    """(private_pem, public_pem); 2048 bits keeps the session setup quick."""
    return generate_rsa_keypair(key_size=2048)


@pytest.fixture(scope="session")
def key_material(rsa_pems):
    private_pem, public_pem = rsa_pems
    return KeyMaterial.from_pem(public_pem, private_pem)


@pytest.fixture
def settings():
    return Settings(
        use_memory_store=True,
        issuer_id="test-issuer",
        allowed_services=["test-service", "other-service"],
        min_password_length=8,
    )


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def runtime(settings, key_material, store):
    rt = Runtime.from_settings(settings, keys=key_material, store=store)
    yield rt
    rt.close()


@pytest.fixture
def auth(runtime):
    return runtime.auth


@pytest.fixture
def client(runtime):
    with TestClient(create_app(runtime)) as test_client:
        yield test_client
