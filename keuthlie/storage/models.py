from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import ContextManager, Optional, Protocol


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Identity:
    id: str
    username: str
    email: str
    passhash: str
    revocation_secret: bytes = field(repr=False)
    created_at: datetime = field(default_factory=_utcnow)


class IdentityConnection(Protocol):
    """Store access bound to one pooled connection (and its transaction)."""

    def get_identity(self, identity_id: str) -> Optional[Identity]: ...

    def get_identity_by_email(self, email: str) -> Optional[Identity]: ...

    def username_exists(self, username: str) -> bool: ...

    def email_exists(self, email: str) -> bool: ...

    def insert_identity(self, identity: Identity) -> None: ...

    def get_revocation_secret(self, identity_id: str) -> Optional[bytes]: ...

    def set_revocation_secret(self, identity_id: str, secret: bytes) -> bool: ...

    def update_credentials(
        self, identity_id: str, passhash: str, revocation_secret: bytes
    ) -> bool: ...


class IdentityStore(Protocol):
    def connection(self) -> ContextManager[IdentityConnection]: ...

    def transaction(self) -> ContextManager[IdentityConnection]: ...

    def close(self) -> None: ...
