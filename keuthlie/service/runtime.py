from __future__ import annotations

from typing import Optional, Union
from urllib.parse import urlparse, urlunparse

from keuthlie.config import Settings
from keuthlie.logging import get_logger
from keuthlie.service.auth import AuthService
from keuthlie.service.credentials import CredentialVerifier
from keuthlie.service.keys import KeyMaterial
from keuthlie.service.revocation import RevocationSecretManager
from keuthlie.service.tokens import TokenIssuer, TokenVerifier
from keuthlie.storage.memory import MemoryStore
from keuthlie.storage.postgres import PostgresStore

logger = get_logger(__name__)


def _mask_url_password(url: Optional[str]) -> Optional[str]:
    """Replace the password component of a URL with ``***`` for logging."""
    if not url:
        return url
    try:
        parsed = urlparse(url)
    except ValueError:
        return "***url_parse_error***"
    if not parsed.password:
        return url
    netloc = parsed.hostname or ""
    if parsed.port:
        netloc = f"{netloc}:{parsed.port}"
    netloc = f"{parsed.username or ''}:***@{netloc}"
    return urlunparse(parsed._replace(netloc=netloc))


class Runtime:
    """Holds the service instances one process shares across requests.

    Built once at startup and handed to the app explicitly; nothing here is
    reachable through module globals.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        keys: KeyMaterial,
        store: Union[MemoryStore, PostgresStore],
    ) -> None:
        self.settings = settings
        self.keys = keys
        self.store = store
        self.credentials = CredentialVerifier()
        self.revocation = RevocationSecretManager()
        self.issuer = TokenIssuer(keys, self.revocation, issuer_id=settings.issuer_id)
        self.verifier = TokenVerifier(keys, store, self.revocation)
        self.auth = AuthService(
            store,
            credentials=self.credentials,
            revocation=self.revocation,
            issuer=self.issuer,
            verifier=self.verifier,
            allowed_services=settings.allowed_services,
            min_password_length=settings.min_password_length,
        )
        logger.info(
            "runtime_initialized",
            store_type=type(store).__name__,
            issuer_id=settings.issuer_id,
            can_sign=keys.private_key is not None,
            allowed_services=len(settings.allowed_services),
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        keys: Optional[KeyMaterial] = None,
        store: Union[MemoryStore, PostgresStore, None] = None,
    ) -> "Runtime":
        if keys is None:
            keys = KeyMaterial.load(
                public_key_path=settings.public_key_path,
                private_key_path=settings.private_key_path,
            )
        if store is None:
            store = cls._build_store(settings)
        return cls(settings, keys=keys, store=store)

    @staticmethod
    def _build_store(settings: Settings) -> Union[MemoryStore, PostgresStore]:
        store_type = "memory" if settings.use_memory_store else "postgres"
        try:
            if settings.use_memory_store:
                store = MemoryStore()
            else:
                store = PostgresStore(
                    settings.database_url,
                    min_size=settings.db_pool_min_size,
                    max_size=settings.db_pool_max_size,
                    timeout=settings.db_pool_timeout_seconds,
                )
        except Exception as exc:
            logger.error(
                "runtime_store_init_failed",
                store_type=store_type,
                database_url=_mask_url_password(settings.database_url),
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise
        logger.info("runtime_store_initialized", store_type=store_type)
        return store

    def close(self) -> None:
        self.store.close()
        logger.info("runtime_closed")
