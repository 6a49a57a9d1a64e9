"""
hotels/store.py -- SQLAlchemy-backed persistence for Hotel records.

Pattern: Repository + Data Mapper, same shape as cities/store.py. Hotels live
in the hierarchy database (CITIES_DB_URL by default) next to the cities
table. city_id is a plain indexed column; the service checks that the city
exists before writing.

Usage:
    store = HotelStore()
    hotel_id = store.create_hotel(Hotel(name="Grand Ankara", stars=5, city_id=1))
    hotels = store.list_by_city(1)
    store.close()
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import Column, Index, Integer, MetaData, String, Table, create_engine, event, func, select
from sqlalchemy.engine import Engine

from core.config import get_settings
from hotels.models import Hotel

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_hotels = Table(
    "hotels",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(150), nullable=False),
    Column("stars", Integer, nullable=False),
    Column("city_id", Integer, nullable=False),
    Column("created_at", String(32), nullable=False),
)

Index("ix_hotels_city_id", _hotels.c.city_id)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class HotelStore:
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

    def create_hotel(self, hotel: Hotel) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                _hotels.insert().values(
                    name=hotel.name,
                    stars=hotel.stars,
                    city_id=hotel.city_id,
                    created_at=hotel.created_at or _now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update_hotel(self, hotel_id: int, **fields) -> bool:
        """Update name, stars and/or city_id. Returns False if hotel_id was not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_hotels.update().where(_hotels.c.id == hotel_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_hotel(self, hotel_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_hotels.delete().where(_hotels.c.id == hotel_id))
            conn.commit()
        return result.rowcount > 0

    def get_hotel(self, hotel_id: int) -> Optional[Hotel]:
        with self.engine.connect() as conn:
            row = conn.execute(_hotels.select().where(_hotels.c.id == hotel_id)).fetchone()
        return _row_to_hotel(row) if row is not None else None

    def list_hotels(self) -> list[Hotel]:
        with self.engine.connect() as conn:
            rows = conn.execute(_hotels.select().order_by(_hotels.c.name, _hotels.c.id)).fetchall()
        return [_row_to_hotel(r) for r in rows]

    def list_by_city(self, city_id: int) -> list[Hotel]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                _hotels.select().where(_hotels.c.city_id == city_id).order_by(_hotels.c.name, _hotels.c.id)
            ).fetchall()
        return [_row_to_hotel(r) for r in rows]

    def is_name_unique_in_city(self, name: str, city_id: int, exclude_id: Optional[int] = None) -> bool:
        """Hotel names are unique per city, ignoring case."""
        query = (
            select(func.count())
            .select_from(_hotels)
            .where(func.lower(_hotels.c.name) == name.lower())
            .where(_hotels.c.city_id == city_id)
        )
        if exclude_id is not None:
            query = query.where(_hotels.c.id != exclude_id)
        with self.engine.connect() as conn:
            count = conn.execute(query).scalar()
        return (count or 0) == 0

    def close(self) -> None:
        self.engine.dispose()


def _row_to_hotel(row) -> Hotel:
    return Hotel(
        id=row.id,
        name=row.name,
        stars=row.stars,
        city_id=row.city_id,
        created_at=row.created_at,
    )
