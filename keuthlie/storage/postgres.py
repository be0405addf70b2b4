from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from psycopg import Connection, errors
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from keuthlie.logging import get_logger
from keuthlie.storage.errors import ConstraintViolation
from keuthlie.storage.models import Identity

IDENTITY_TABLE = "keuthlie_auth"

# Constraint name -> logical field, used to translate unique violations.
_UNIQUE_CONSTRAINTS = {
    "keuthlie_auth_pkey": "id",
    "keuthlie_auth_username_key": "username",
    "keuthlie_auth_email_key": "email",
}

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS keuthlie_auth (
    id TEXT NOT NULL,
    username TEXT NOT NULL,
    email TEXT NOT NULL,
    passhash TEXT NOT NULL,
    revocation_secret BYTEA NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    CONSTRAINT keuthlie_auth_pkey PRIMARY KEY (id),
    CONSTRAINT keuthlie_auth_username_key UNIQUE (username),
    CONSTRAINT keuthlie_auth_email_key UNIQUE (email),
    CONSTRAINT keuthlie_auth_secret_len CHECK (octet_length(revocation_secret) = 64)
)
"""


def _identity_from_row(row: dict[str, Any]) -> Identity:
    return Identity(
        id=str(row["id"]),
        username=row["username"],
        email=row["email"],
        passhash=row["passhash"],
        revocation_secret=bytes(row["revocation_secret"]),
        created_at=row.get("created_at") or datetime.now(timezone.utc),
    )


class PostgresConnection:
    """Identity queries issued on one pooled psycopg connection."""

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def get_identity(self, identity_id: str) -> Optional[Identity]:
        row = self.conn.execute(
            "SELECT * FROM keuthlie_auth WHERE id = %s", (identity_id,)
        ).fetchone()
        return _identity_from_row(row) if row else None

    def get_identity_by_email(self, email: str) -> Optional[Identity]:
        row = self.conn.execute(
            "SELECT * FROM keuthlie_auth WHERE email = %s", (email,)
        ).fetchone()
        return _identity_from_row(row) if row else None

    def username_exists(self, username: str) -> bool:
        row = self.conn.execute(
            "SELECT 1 AS found FROM keuthlie_auth WHERE username = %s", (username,)
        ).fetchone()
        return row is not None

    def email_exists(self, email: str) -> bool:
        row = self.conn.execute(
            "SELECT 1 AS found FROM keuthlie_auth WHERE email = %s", (email,)
        ).fetchone()
        return row is not None

    def insert_identity(self, identity: Identity) -> None:
        try:
            self.conn.execute(
                """
                INSERT INTO keuthlie_auth (id, username, email, passhash, revocation_secret, created_at)
                VALUES (%s, %s, %s, %s, %s, %s)
                """,
                (
                    identity.id,
                    identity.username,
                    identity.email,
                    identity.passhash,
                    identity.revocation_secret,
                    identity.created_at,
                ),
            )
        except errors.UniqueViolation as exc:
            constraint = getattr(exc.diag, "constraint_name", None)
            field = _UNIQUE_CONSTRAINTS.get(constraint or "")
            raise ConstraintViolation(
                f"{field or 'identity'} already exists",
                {"field": field, "constraint": constraint},
            ) from exc

    def get_revocation_secret(self, identity_id: str) -> Optional[bytes]:
        row = self.conn.execute(
            "SELECT revocation_secret FROM keuthlie_auth WHERE id = %s",
            (identity_id,),
        ).fetchone()
        return bytes(row["revocation_secret"]) if row else None

    def set_revocation_secret(self, identity_id: str, secret: bytes) -> bool:
        cur = self.conn.execute(
            "UPDATE keuthlie_auth SET revocation_secret = %s WHERE id = %s",
            (secret, identity_id),
        )
        return cur.rowcount == 1

    def update_credentials(
        self, identity_id: str, passhash: str, revocation_secret: bytes
    ) -> bool:
        # Both columns in one statement so readers never see them out of sync
        cur = self.conn.execute(
            """
            UPDATE keuthlie_auth
            SET passhash = %s, revocation_secret = %s
            WHERE id = %s
            """,
            (passhash, revocation_secret, identity_id),
        )
        return cur.rowcount == 1


class PostgresStore:
    """Postgres-backed identity store over a process-wide connection pool."""

    def __init__(
        self,
        dsn: str,
        *,
        min_size: int = 2,
        max_size: int = 10,
        timeout: float = 5.0,
        verify_schema: bool = True,
    ) -> None:
        self.dsn = dsn
        self.timeout = timeout
        self.logger = get_logger(__name__)
        self.pool = ConnectionPool(
            self.dsn,
            min_size=min_size,
            max_size=max_size,
            timeout=timeout,
            kwargs={"row_factory": dict_row, "autocommit": False},
            open=True,
        )
        if verify_schema:
            self._verify_required_schema()

    def _connect(self):
        return self.pool.connection(timeout=self.timeout)

    @contextmanager
    def connection(self) -> Iterator[PostgresConnection]:
        """Borrow a connection for reads; returned to the pool on every exit path."""
        with self._connect() as conn:
            yield PostgresConnection(conn)

    @contextmanager
    def transaction(self) -> Iterator[PostgresConnection]:
        """Borrow a connection and run the block in one transaction.

        Commits when the block completes, rolls back if it raises.
        """
        with self._connect() as conn, conn.transaction():
            yield PostgresConnection(conn)

    def _verify_required_schema(self) -> None:
        """Ensure the identity table exists before serving requests."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT to_regclass(%s) AS oid", (f"public.{IDENTITY_TABLE}",)
            ).fetchone()
            if not row or not row.get("oid"):
                raise RuntimeError(
                    f"Missing required Postgres table: {IDENTITY_TABLE}. "
                    "Run scripts/init_db.py to install the schema."
                )

    def create_schema(self, *, drop_existing: bool = False) -> None:
        with self._connect() as conn, conn.transaction():
            if drop_existing:
                conn.execute(f"DROP TABLE IF EXISTS {IDENTITY_TABLE}")
                self.logger.warning("identity_table_dropped", table=IDENTITY_TABLE)
            conn.execute(SCHEMA_SQL)
        self.logger.info("identity_schema_ready", table=IDENTITY_TABLE)

    def close(self) -> None:
        self.pool.close()
