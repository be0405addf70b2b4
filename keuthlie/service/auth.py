from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from keuthlie.logging import get_logger
from keuthlie.service.credentials import CredentialVerifier
from keuthlie.service.errors import (
    EmailInUse,
    InvalidCredentials,
    PasswordTooShort,
    ServiceNotAllowed,
    UsernameTaken,
)
from keuthlie.service.revocation import RevocationSecretManager
from keuthlie.service.tokens import TokenIssuer, TokenVerifier
from keuthlie.storage.errors import ConstraintViolation
from keuthlie.storage.ids import new_identity_id
from keuthlie.storage.models import Identity, IdentityConnection, IdentityStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class LoginResult:
    identity_id: str
    token: str


class AuthService:
    """Registration, login and credential maintenance flows.

    Every flow borrows exactly one store connection for its duration; writers
    run inside a store transaction, so a failure at any step leaves no trace.
    """

    def __init__(
        self,
        store: IdentityStore,
        *,
        credentials: CredentialVerifier,
        revocation: RevocationSecretManager,
        issuer: TokenIssuer,
        verifier: TokenVerifier,
        allowed_services: Iterable[str],
        min_password_length: int = 8,
    ) -> None:
        self.store = store
        self.credentials = credentials
        self.revocation = revocation
        self.issuer = issuer
        self.verifier = verifier
        self.allowed_services = frozenset(allowed_services)
        self.min_password_length = min_password_length
        self.logger = logger

    def _check_password_length(self, password: str) -> None:
        if len(password) <= self.min_password_length:
            raise PasswordTooShort()

    def _authenticate(
        self, conn: IdentityConnection, email: str, password: str
    ) -> Identity:
        identity = conn.get_identity_by_email(email)
        if identity is None:
            # unknown e-mail must cost and look the same as a wrong password
            self.credentials.verify_dummy(password)
            raise InvalidCredentials()
        if not self.credentials.verify(identity.passhash, password):
            raise InvalidCredentials()
        return identity

    def register(self, username: str, email: str, password: str) -> str:
        """Create an identity and return its id."""
        self._check_password_length(password)
        try:
            with self.store.transaction() as conn:
                if conn.username_exists(username):
                    raise UsernameTaken()
                if conn.email_exists(email):
                    raise EmailInUse()
                identity = Identity(
                    id=new_identity_id(),
                    username=username,
                    email=email,
                    passhash=self.credentials.hash(password),
                    revocation_secret=self.revocation.generate(),
                )
                conn.insert_identity(identity)
        except ConstraintViolation as exc:
            # a concurrent registration won the race past the pre-checks
            self.logger.warning("register_constraint_violation", field=exc.field)
            if exc.field == "username":
                raise UsernameTaken() from exc
            if exc.field == "email":
                raise EmailInUse() from exc
            raise
        self.logger.info("identity_registered", identity_id=identity.id)
        return identity.id

    def login(self, email: str, password: str, service: str) -> LoginResult:
        """Check credentials and issue a token for ``service``."""
        self._check_password_length(password)
        with self.store.transaction() as conn:
            identity = self._authenticate(conn, email, password)
            if service not in self.allowed_services:
                raise ServiceNotAllowed()
            token = self.issuer.issue(conn, identity.id)
        self.logger.info("login_succeeded", identity_id=identity.id, service=service)
        return LoginResult(identity_id=identity.id, token=token)

    def verify_token(self, token: str) -> str:
        return self.verifier.verify(token).identity_id

    def change_password(self, email: str, password: str, new_password: str) -> str:
        """Replace the credential and revoke every outstanding token.

        Hash and revocation secret are written in one update.
        """
        self._check_password_length(password)
        self._check_password_length(new_password)
        with self.store.transaction() as conn:
            identity = self._authenticate(conn, email, password)
            updated = conn.update_credentials(
                identity.id,
                self.credentials.hash(new_password),
                self.revocation.generate(),
            )
            if not updated:
                raise InvalidCredentials()
        self.logger.info("password_changed", identity_id=identity.id)
        return identity.id

    def revoke_all(self, email: str, password: str) -> str:
        """Rotate the revocation secret, invalidating all tokens of the identity."""
        self._check_password_length(password)
        with self.store.transaction() as conn:
            identity = self._authenticate(conn, email, password)
            self.revocation.rotate(conn, identity.id)
        return identity.id

    def rotate(self, identity_id: str) -> None:
        """Administrative whole-identity revocation by id."""
        with self.store.transaction() as conn:
            self.revocation.rotate(conn, identity_id)
