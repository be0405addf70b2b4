from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Dict, Iterator, Optional

from keuthlie.logging import get_logger
from keuthlie.storage.errors import ConstraintViolation
from keuthlie.storage.models import Identity


class MemoryConnection:
    """Identity access against a :class:`MemoryStore` table.

    Only handed out while the owning store's lock is held.
    """

    def __init__(self, store: "MemoryStore") -> None:
        self._store = store

    @property
    def _identities(self) -> Dict[str, Identity]:
        return self._store.identities

    def get_identity(self, identity_id: str) -> Optional[Identity]:
        return self._identities.get(identity_id)

    def get_identity_by_email(self, email: str) -> Optional[Identity]:
        return next((i for i in self._identities.values() if i.email == email), None)

    def username_exists(self, username: str) -> bool:
        return any(i.username == username for i in self._identities.values())

    def email_exists(self, email: str) -> bool:
        return any(i.email == email for i in self._identities.values())

    def insert_identity(self, identity: Identity) -> None:
        # Same constraint set as the postgres table
        if identity.id in self._identities:
            raise ConstraintViolation("identity id already exists", {"field": "id"})
        if self.username_exists(identity.username):
            raise ConstraintViolation("username already exists", {"field": "username"})
        if self.email_exists(identity.email):
            raise ConstraintViolation("email already exists", {"field": "email"})
        self._identities[identity.id] = identity

    def get_revocation_secret(self, identity_id: str) -> Optional[bytes]:
        identity = self._identities.get(identity_id)
        return identity.revocation_secret if identity else None

    def set_revocation_secret(self, identity_id: str, secret: bytes) -> bool:
        identity = self._identities.get(identity_id)
        if identity is None:
            return False
        self._identities[identity_id] = replace(identity, revocation_secret=secret)
        return True

    def update_credentials(
        self, identity_id: str, passhash: str, revocation_secret: bytes
    ) -> bool:
        identity = self._identities.get(identity_id)
        if identity is None:
            return False
        self._identities[identity_id] = replace(
            identity, passhash=passhash, revocation_secret=revocation_secret
        )
        return True


class MemoryStore:
    """In-process identity store for tests and local development.

    A single re-entrant lock serialises every connection, so a transaction
    observes and writes a consistent table. Records are immutable and replaced
    on update, so a shallow copy of the table is a complete rollback snapshot.

    The lock is held for the whole flow, including the argon2 hashing and
    verification inside register and login, so those flows run strictly one
    at a time. Use the Postgres store for concurrent traffic.
    """

    def __init__(self) -> None:
        self.logger = get_logger(__name__)
        self.identities: Dict[str, Identity] = {}
        self._data_lock = threading.RLock()

    @contextmanager
    def connection(self) -> Iterator[MemoryConnection]:
        with self._data_lock:
            yield MemoryConnection(self)

    @contextmanager
    def transaction(self) -> Iterator[MemoryConnection]:
        with self._data_lock:
            snapshot = dict(self.identities)
            try:
                yield MemoryConnection(self)
            except BaseException:
                self.identities = snapshot
                self.logger.debug("memory_transaction_rolled_back")
                raise

    def close(self) -> None:
        return None
