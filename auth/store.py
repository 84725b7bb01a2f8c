"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user / _row_to_link are the mappers.
Service and dependency code never touches SQL directly.

Schema:
  users           (id, name, email UNIQUE, password_hash NULL, role, created_at)
  auth_providers  (id, user_id -> users.id, provider, provider_user_id, created_at,
                   UNIQUE(provider, provider_user_id))

  Both unique constraints are the backstop for read-then-write races in the
  service layer: a concurrent duplicate insert raises IntegrityError, which the
  caller turns into a 409 (email) or a re-read of the winning row (link).

Security:
  All queries use bound parameters. No f-strings in SQL.

Default DB: auth/authservice.db. Set DATABASE_URL for PostgreSQL.

Layer rule: no imports from api/, core/, or cache/.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    select,
)
from sqlalchemy.engine import Engine

from auth.models import ProviderLink, User

DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'authservice.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text),  # NULL for provider-only users
    Column("role", String(20), nullable=False, server_default="user"),
    Column("created_at", String(32), nullable=False),
)

_auth_providers = Table(
    "auth_providers",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("provider", String(30), nullable=False),
    Column("provider_user_id", String(255), nullable=False),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("provider", "provider_user_id", name="uq_auth_providers_identity"),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and ProviderLink entities.

    Usage:
        store = UserStore()
        user = store.create_user(User(name="Ada", email="ada@example.com", password_hash=hash_password("secret123")))
        store.get_by_email("ada@example.com")
        store.close()
    """

    def __init__(self, db_url: str = DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> User:
        """Insert a new user and return the stored record with its generated id.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        user_id = str(uuid.uuid4())
        created_at = _now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                _users.insert().values(
                    id=user_id,
                    name=user.name,
                    email=user.email,
                    password_hash=user.password_hash,
                    role=user.role,
                    created_at=created_at,
                )
            )
            conn.commit()
        return User(
            id=user_id,
            name=user.name,
            email=user.email,
            password_hash=user.password_hash,
            role=user.role,
            created_at=created_at,
        )

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: str) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def update_name(self, user_id: str, name: str) -> User | None:
        """Rename a user. Returns the updated record, or None if user_id is unknown."""
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(name=name))
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_by_id(user_id)

    def list_users(self) -> list[User]:
        """Return all users ordered by creation time. Admin-only operation."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.created_at, _users.c.email)).fetchall()
        return [_row_to_user(r) for r in rows]

    # ------------------------------------------------------------------
    # Provider links
    # ------------------------------------------------------------------

    def get_by_provider(self, provider: str, provider_user_id: str) -> User | None:
        """Resolve an external identity to its linked local user, or None."""
        query = (
            select(_users)
            .join(_auth_providers, _auth_providers.c.user_id == _users.c.id)
            .where(
                (_auth_providers.c.provider == provider) & (_auth_providers.c.provider_user_id == provider_user_id)
            )
        )
        with self.engine.connect() as conn:
            row = conn.execute(query).fetchone()
        return _row_to_user(row) if row is not None else None

    def create_provider_link(self, user_id: str, provider: str, provider_user_id: str) -> ProviderLink:
        """Link an external identity to user_id.

        Raises sqlalchemy.exc.IntegrityError if (provider, provider_user_id) is
        already linked.
        """
        created_at = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _auth_providers.insert().values(
                    user_id=user_id,
                    provider=provider,
                    provider_user_id=provider_user_id,
                    created_at=created_at,
                )
            )
            conn.commit()
        return ProviderLink(
            id=result.inserted_primary_key[0],
            user_id=user_id,
            provider=provider,
            provider_user_id=provider_user_id,
            created_at=created_at,
        )

    def get_provider_links(self, user_id: str) -> list[ProviderLink]:
        """Return every provider link owned by user_id, oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _auth_providers.select().where(_auth_providers.c.user_id == user_id).order_by(_auth_providers.c.id)
            ).fetchall()
        return [_row_to_link(r) for r in rows]

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(select(1))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        password_hash=row.password_hash,
        role=row.role,
        created_at=row.created_at,
    )


def _row_to_link(row) -> ProviderLink:
    return ProviderLink(
        id=row.id,
        user_id=row.user_id,
        provider=row.provider,
        provider_user_id=row.provider_user_id,
        created_at=row.created_at,
    )
