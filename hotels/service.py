"""
hotels/service.py -- Hotel operations with caching.

Cache layout:
  hotels:all              full list, 45 min
  hotels:id:{id}          single hotel, 1 h
  hotels:city:{city_id}   hotels of one city, 30 min

Every write fires CacheEvent.HOTEL_LIST_CHANGED for each affected city. The
event clears hotels:all and that city's list. An update that moves a hotel
to another city affects both the old and the new city. Update and delete
also drop the hotel's own hotels:id entry.
"""

import logging
from typing import Optional

from cache.events import CacheEvent
from cache.store import CacheStore
from cities.store import CityStore
from core.results import ErrorCode, Result, failure_from_exception
from hotels.models import Hotel, HotelInput
from hotels.store import HotelStore
from hotels.validators import validate_hotel

logger = logging.getLogger("citygarage.hotels")

ALL_HOTELS_KEY = "hotels:all"
HOTEL_BY_ID_KEY = "hotels:id:{}"
HOTELS_BY_CITY_KEY = "hotels:city:{}"

ALL_HOTELS_TTL = 45 * 60
HOTEL_BY_ID_TTL = 60 * 60
HOTELS_BY_CITY_TTL = 30 * 60

# Logical event -> (exact keys to remove, per-city key templates to remove).
_INVALIDATIONS: dict[CacheEvent, tuple[tuple[str, ...], tuple[str, ...]]] = {
    CacheEvent.HOTEL_LIST_CHANGED: ((ALL_HOTELS_KEY,), (HOTELS_BY_CITY_KEY,)),
}


class HotelService:
    def __init__(self, store: HotelStore, city_store: CityStore, cache: CacheStore) -> None:
        self.store = store
        self.city_store = city_store
        self.cache = cache

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_all(self) -> Result[list[Hotel]]:
        try:
            cached = self.cache.get(ALL_HOTELS_KEY)
            if cached is not None:
                return Result.success([Hotel(**h) for h in cached], "Hotels returned from cache.")
            hotels = self.store.list_hotels()
            self.cache.set(ALL_HOTELS_KEY, [_to_payload(h) for h in hotels], ttl=ALL_HOTELS_TTL)
            return Result.success(hotels, "Hotels retrieved.")
        except Exception as exc:
            logger.exception("get_all failed")
            return failure_from_exception(exc, "Could not retrieve hotels.")

    def get_by_id(self, hotel_id: int) -> Result[Hotel]:
        try:
            key = HOTEL_BY_ID_KEY.format(hotel_id)
            cached = self.cache.get(key)
            if cached is not None:
                return Result.success(Hotel(**cached), "Hotel returned from cache.")
            hotel = self.store.get_hotel(hotel_id)
            if hotel is None:
                return Result.failure(ErrorCode.not_found, "Hotel not found.")
            self.cache.set(key, _to_payload(hotel), ttl=HOTEL_BY_ID_TTL)
            return Result.success(hotel, "Hotel retrieved.")
        except Exception as exc:
            logger.exception("get_by_id failed for hotel id %s", hotel_id)
            return failure_from_exception(exc, "Could not retrieve hotel.")

    def get_by_city(self, city_id: int) -> Result[list[Hotel]]:
        try:
            key = HOTELS_BY_CITY_KEY.format(city_id)
            cached = self.cache.get(key)
            if cached is not None:
                return Result.success([Hotel(**h) for h in cached], "City hotels returned from cache.")
            hotels = self.store.list_by_city(city_id)
            self.cache.set(key, [_to_payload(h) for h in hotels], ttl=HOTELS_BY_CITY_TTL)
            return Result.success(hotels, "City hotels retrieved.")
        except Exception as exc:
            logger.exception("get_by_city failed for city id %s", city_id)
            return failure_from_exception(exc, "Could not retrieve city hotels.")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, payload: HotelInput) -> Result[Hotel]:
        try:
            errors = validate_hotel(payload, self.store, self.city_store)
            if errors:
                return Result.failure(ErrorCode.validation_error, "Hotel details are invalid.", errors)
            hotel_id = self.store.create_hotel(
                Hotel(name=payload.name, stars=payload.stars, city_id=payload.city_id)
            )
            self._invalidate(CacheEvent.HOTEL_LIST_CHANGED, city_ids=(payload.city_id,))
            return Result.success(self.store.get_hotel(hotel_id), "Hotel created.")
        except Exception as exc:
            logger.exception("create failed")
            return failure_from_exception(exc, "Could not create hotel.")

    def update(self, hotel_id: int, payload: HotelInput) -> Result[Hotel]:
        try:
            existing = self.store.get_hotel(hotel_id)
            if existing is None:
                return Result.failure(ErrorCode.not_found, "Hotel to update was not found.")
            errors = validate_hotel(payload, self.store, self.city_store, exclude_id=hotel_id)
            if errors:
                return Result.failure(ErrorCode.validation_error, "Hotel details are invalid.", errors)
            self.store.update_hotel(hotel_id, name=payload.name, stars=payload.stars, city_id=payload.city_id)
            self._invalidate(
                CacheEvent.HOTEL_LIST_CHANGED,
                city_ids=(existing.city_id, payload.city_id),
                hotel_id=hotel_id,
            )
            return Result.success(self.store.get_hotel(hotel_id), "Hotel updated.")
        except Exception as exc:
            logger.exception("update failed for hotel id %s", hotel_id)
            return failure_from_exception(exc, "Could not update hotel.")

    def delete(self, hotel_id: int) -> Result[None]:
        try:
            existing = self.store.get_hotel(hotel_id)
            if existing is None or not self.store.delete_hotel(hotel_id):
                return Result.failure(ErrorCode.not_found, "Hotel to delete was not found.")
            self._invalidate(CacheEvent.HOTEL_LIST_CHANGED, city_ids=(existing.city_id,), hotel_id=hotel_id)
            return Result.success(message="Hotel deleted.")
        except Exception as exc:
            logger.exception("delete failed for hotel id %s", hotel_id)
            return failure_from_exception(exc, "Could not delete hotel.")

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def _invalidate(self, event: CacheEvent, city_ids: tuple[int, ...], hotel_id: Optional[int] = None) -> None:
        keys, per_city = _INVALIDATIONS[event]
        for key in keys:
            self.cache.remove(key)
        for template in per_city:
            for city_id in set(city_ids):
                self.cache.remove(template.format(city_id))
        if hotel_id is not None:
            self.cache.remove(HOTEL_BY_ID_KEY.format(hotel_id))
        logger.info("Hotel caches cleared (%s, cities=%s)", event.value, sorted(set(city_ids)))


def _to_payload(hotel: Hotel) -> dict:
    return {
        "id": hotel.id,
        "name": hotel.name,
        "stars": hotel.stars,
        "city_id": hotel.city_id,
        "created_at": hotel.created_at,
    }
