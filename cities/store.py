"""
cities/store.py -- SQLAlchemy-backed persistence for City records.

Uses SQLAlchemy Core (not ORM) so the dataclasses in cities/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. CityStore is the repository; _row_to_city
is the mapper. Services never touch SQL directly.

get_paged() is the data-source half of the paged query engine: it applies
the search filter and sort, then returns one window of rows together with
the total match count. Cache keys and metadata are the service's concern.

Usage:
    store = CityStore()
    city_id = store.create_city(City(name="Ankara", population=5_700_000))
    cities, total = store.get_paged(search="an", sort_by="population", descending=True, offset=0, limit=10)
    store.close()
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, event, func, select
from sqlalchemy.engine import Engine

from cities.models import City
from core.config import get_settings

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_cities = Table(
    "cities",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("population", Integer, nullable=False),
    Column("created_at", String(32), nullable=False),
)

# Sort field name (as accepted by core.paging) -> column. Anything else sorts by name.
_SORT_COLUMNS = {
    "name": _cities.c.name,
    "population": _cities.c.population,
    "createddate": _cities.c.created_at,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CityStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        db_url = db_url or get_settings().cities_db_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            if db_url.startswith("sqlite:///") and ":memory:" not in db_url and "mode=memory" not in db_url:
                Path(db_url[len("sqlite:///") :]).parent.mkdir(parents=True, exist_ok=True)
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def create_city(self, city: City) -> int:
        """Insert a city and return its ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _cities.insert().values(
                    name=city.name,
                    population=city.population,
                    created_at=city.created_at or _now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update_city(self, city_id: int, **fields) -> bool:
        """Update name and/or population. Returns False if city_id was not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_cities.update().where(_cities.c.id == city_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_city(self, city_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_cities.delete().where(_cities.c.id == city_id))
            conn.commit()
        return result.rowcount > 0

    def get_city(self, city_id: int) -> Optional[City]:
        with self.engine.connect() as conn:
            row = conn.execute(_cities.select().where(_cities.c.id == city_id)).fetchone()
        return _row_to_city(row) if row is not None else None

    def list_cities(self) -> list[City]:
        """Return all cities ordered by name."""
        with self.engine.connect() as conn:
            rows = conn.execute(_cities.select().order_by(_cities.c.name, _cities.c.id)).fetchall()
        return [_row_to_city(r) for r in rows]

    def is_name_unique(self, name: str, exclude_id: Optional[int] = None) -> bool:
        """Case-insensitive name check, optionally ignoring one city (update-self)."""
        query = select(func.count()).select_from(_cities).where(func.lower(_cities.c.name) == name.lower())
        if exclude_id is not None:
            query = query.where(_cities.c.id != exclude_id)
        with self.engine.connect() as conn:
            count = conn.execute(query).scalar()
        return (count or 0) == 0

    def get_paged(
        self,
        search: Optional[str],
        sort_by: str,
        descending: bool,
        offset: int,
        limit: int,
    ) -> tuple[list[City], int]:
        """Return (one window of matching cities, total matching count).

        search is matched as a case-insensitive substring of name. Unknown
        sort_by values fall back to name. Ties are broken by id so page
        boundaries are stable.
        """
        condition = None
        if search:
            pattern = f"%{_escape_like(search.lower())}%"
            condition = func.lower(_cities.c.name).like(pattern, escape="\\")

        sort_column = _SORT_COLUMNS.get(sort_by, _cities.c.name)
        order = sort_column.desc() if descending else sort_column.asc()
        tiebreak = _cities.c.id.desc() if descending else _cities.c.id.asc()

        query = _cities.select()
        count_query = select(func.count()).select_from(_cities)
        if condition is not None:
            query = query.where(condition)
            count_query = count_query.where(condition)
        query = query.order_by(order, tiebreak).offset(offset).limit(limit)

        with self.engine.connect() as conn:
            total = conn.execute(count_query).scalar() or 0
            rows = conn.execute(query).fetchall()
        return [_row_to_city(r) for r in rows], total

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_city(row) -> City:
    return City(
        id=row.id,
        name=row.name,
        population=row.population,
        created_at=row.created_at,
    )
