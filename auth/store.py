"""
auth/store.py -- SQLAlchemy Core persistence layer for user credentials.

Pattern: Repository + Data Mapper (same as cities/store.py).
UserStore is the repository; _row_to_user is the mapper. Services never
touch SQL directly.

Case-insensitive identity:
  Username and email lookups compare lower(column) to the lowered input.
  Unique expression indexes on lower(username) and lower(email) are the
  real enforcement -- is_username_unique() / is_email_unique() only exist so
  the service can return a friendly validation message. A concurrent
  registration that slips past them still hits IntegrityError on insert.

Refresh token rotation:
  rotate_refresh_token() is a single conditional UPDATE keyed on the token
  value the caller saw. Two refresh requests racing with the same token both
  issue the UPDATE, but only the first matches the WHERE clause; the second
  sees rowcount 0 and is rejected.

Every mutating method commits before returning.

Layer rule: no imports from api/, cities/, or cache/.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, Index, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from auth.models import User
from core.config import get_settings

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(50), nullable=False),
    Column("email", String(100), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("first_name", String(100), nullable=False, server_default=""),
    Column("last_name", String(100), nullable=False, server_default=""),
    Column("role", String(20), nullable=False, server_default="User"),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
    Column("last_login", String(32)),
    Column("refresh_token", String(255)),
    Column("refresh_token_expires_at", String(32)),
)

Index("uq_users_username_lower", func.lower(_users.c.username), unique=True)
Index("uq_users_email_lower", func.lower(_users.c.email), unique=True)
Index("ix_users_refresh_token", _users.c.refresh_token)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _ensure_sqlite_dir(db_url: str) -> None:
    if db_url.startswith("sqlite:///") and ":memory:" not in db_url and "mode=memory" not in db_url:
        Path(db_url[len("sqlite:///") :]).parent.mkdir(parents=True, exist_ok=True)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore()
        user_id = store.create_user(User(username="ada", email="ada@example.com", hashed_password=h))
        user = store.get_by_username("ADA")   # case-insensitive
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().auth_db_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            _ensure_sqlite_dir(db_url)
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by username, ignoring case. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where(func.lower(_users.c.username) == username.lower())
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email, ignoring case. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(func.lower(_users.c.email) == email.lower())).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_refresh_token(self, refresh_token: str) -> User | None:
        """Return the user holding this refresh token, or None if absent or expired."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.refresh_token == refresh_token)).fetchone()
        if row is None:
            return None
        user = _row_to_user(row)
        if not refresh_token_is_live(user):
            return None
        return user

    def is_username_unique(self, username: str, exclude_id: int | None = None) -> bool:
        return self._is_unique(_users.c.username, username, exclude_id)

    def is_email_unique(self, email: str, exclude_id: int | None = None) -> bool:
        return self._is_unique(_users.c.email, email, exclude_id)

    def _is_unique(self, column, value: str, exclude_id: int | None) -> bool:
        query = select(func.count()).select_from(_users).where(func.lower(column) == value.lower())
        if exclude_id is not None:
            query = query.where(_users.c.id != exclude_id)
        with self.engine.connect() as conn:
            count = conn.execute(query).scalar()
        return (count or 0) == 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the username or email is
        already taken (case-insensitive). Callers treat that as a conflict.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    username=user.username,
                    email=user.email,
                    hashed_password=user.hashed_password,
                    first_name=user.first_name,
                    last_name=user.last_name,
                    role=user.role,
                    is_active=1 if user.is_active else 0,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update_user(self, user_id: int, **fields) -> bool:
        """Update mutable fields on an existing user.

        is_active must be passed as bool; this method converts to int.
        Returns True if a row was updated, False if user_id was not found.
        """
        if "is_active" in fields:
            fields["is_active"] = 1 if fields["is_active"] else 0
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def update_last_login(self, user_id: int) -> None:
        """Stamp the current UTC timestamp as last_login."""
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(last_login=_now_iso()))
            conn.commit()

    def set_refresh_token(self, user_id: int, refresh_token: str, expires_at: datetime) -> None:
        """Store a refresh token unconditionally, replacing any previous one."""
        with self.engine.connect() as conn:
            conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(refresh_token=refresh_token, refresh_token_expires_at=expires_at.isoformat())
            )
            conn.commit()

    def rotate_refresh_token(self, user_id: int, expected: str, new_token: str, expires_at: datetime) -> bool:
        """Replace expected with new_token only if expected is still the stored value.

        Returns True if this call performed the rotation, False if another
        rotation, logout, or password change got there first.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where((_users.c.id == user_id) & (_users.c.refresh_token == expected))
                .values(refresh_token=new_token, refresh_token_expires_at=expires_at.isoformat())
            )
            conn.commit()
        return result.rowcount == 1

    def revoke_refresh_token(self, user_id: int) -> None:
        """Clear the refresh token and its expiry. No-op for unknown users."""
        with self.engine.connect() as conn:
            conn.execute(
                _users.update().where(_users.c.id == user_id).values(refresh_token=None, refresh_token_expires_at=None)
            )
            conn.commit()

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Helpers shared with the service layer
# ---------------------------------------------------------------------------


def refresh_token_is_live(user: User, now: datetime | None = None) -> bool:
    """True if the user holds a refresh token whose expiry is still in the future."""
    if not user.refresh_token or not user.refresh_token_expires_at:
        return False
    try:
        expires_at = datetime.fromisoformat(user.refresh_token_expires_at)
    except ValueError:
        return False
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at > (now or datetime.now(timezone.utc))


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        hashed_password=row.hashed_password,
        first_name=row.first_name,
        last_name=row.last_name,
        role=row.role,
        is_active=bool(row.is_active),
        created_at=row.created_at,
        last_login=row.last_login,
        refresh_token=row.refresh_token,
        refresh_token_expires_at=row.refresh_token_expires_at,
    )
