"""
cities/service.py -- City operations with caching and the paged query engine.

Cache layout:
  cities:all                      full list, 4 h
  cities:id:{id}                  single city, 2 h
  cities:paged:{page}:{size}:{q=<search>|null}:{sort}:{asc|desc}
                                  one page, 30 min, registered under the
                                  "cities:paged" pattern

Paged entries get the shortest TTL: there are many of them and any write
makes all of them stale.

Invalidation is event-driven and coarse. Every write fires
CacheEvent.CITY_LIST_CHANGED, which maps to an explicit set of keys and
patterns to clear (_INVALIDATIONS). A single new city clears every cached
page, not just the page it would land on.

get_paged() flow:
  normalize request -> compose key -> cache hit? return
  -> store.get_paged(filter, sort, window) -> PagingInfo from (page, size, total)
  -> cache fill -> return

All methods return a core.results.Result. The cache fails open, so a cache
outage only costs extra queries.
"""

import logging
from typing import Optional

from cache.events import CacheEvent
from cache.store import CacheStore
from cities.models import City, CityInput
from cities.store import CityStore
from cities.validators import validate_city
from core.paging import PagedResult, PagingRequest
from core.results import ErrorCode, Result, failure_from_exception

logger = logging.getLogger("citygarage.cities")

ALL_CITIES_KEY = "cities:all"
CITY_BY_ID_KEY = "cities:id:{}"
PAGED_CITIES_PATTERN = "cities:paged"

ALL_CITIES_TTL = 4 * 60 * 60
CITY_BY_ID_TTL = 2 * 60 * 60
PAGED_CITIES_TTL = 30 * 60


# Logical event -> (exact keys to remove, registered patterns to sweep).
_INVALIDATIONS: dict[CacheEvent, tuple[tuple[str, ...], tuple[str, ...]]] = {
    CacheEvent.CITY_LIST_CHANGED: ((ALL_CITIES_KEY,), (PAGED_CITIES_PATTERN,)),
}


class CityService:
    def __init__(self, store: CityStore, cache: CacheStore) -> None:
        self.store = store
        self.cache = cache

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_all(self) -> Result[list[City]]:
        try:
            cached = self.cache.get(ALL_CITIES_KEY)
            if cached is not None:
                return Result.success([City(**c) for c in cached], "Cities returned from cache.")
            cities = self.store.list_cities()
            self.cache.set(ALL_CITIES_KEY, [_to_payload(c) for c in cities], ttl=ALL_CITIES_TTL)
            return Result.success(cities, "Cities retrieved.")
        except Exception as exc:
            logger.exception("get_all failed")
            return failure_from_exception(exc, "Could not retrieve cities.")

    def get_by_id(self, city_id: int) -> Result[City]:
        try:
            key = CITY_BY_ID_KEY.format(city_id)
            cached = self.cache.get(key)
            if cached is not None:
                return Result.success(City(**cached), "City returned from cache.")
            city = self.store.get_city(city_id)
            if city is None:
                return Result.failure(ErrorCode.not_found, "City not found.")
            self.cache.set(key, _to_payload(city), ttl=CITY_BY_ID_TTL)
            return Result.success(city, "City retrieved.")
        except Exception as exc:
            logger.exception("get_by_id failed for city id %s", city_id)
            return failure_from_exception(exc, "Could not retrieve city.")

    def get_paged(self, request: PagingRequest) -> Result[PagedResult[City]]:
        paging = request.normalized()
        try:
            key = paging.cache_key(PAGED_CITIES_PATTERN)

            cached = self.cache.get(key)
            if cached is not None:
                logger.info("Paged cities cache HIT: %s", key)
                page = PagedResult.from_dict(cached, lambda d: City(**d))
                return Result.success(page, "Paged cities returned from cache.")

            logger.info("Paged cities cache MISS: %s", key)
            cities, total = self.store.get_paged(
                search=paging.search,
                sort_by=paging.sort_by,
                descending=paging.sort_descending,
                offset=paging.offset,
                limit=paging.page_size,
            )
            page = PagedResult.build(cities, paging.page, paging.page_size, total)
            self.cache.set(key, page.to_dict(), ttl=PAGED_CITIES_TTL, patterns=(PAGED_CITIES_PATTERN,))
            logger.info(
                "Paged cities cached: %d total, page %d/%d",
                total,
                paging.page,
                page.pagination.total_pages,
            )
            return Result.success(page, page.message)
        except Exception as exc:
            logger.exception(
                "get_paged failed - page=%s size=%s search=%r",
                paging.page,
                paging.page_size,
                paging.search,
            )
            return failure_from_exception(exc, "Could not retrieve paged cities.")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, payload: CityInput) -> Result[City]:
        try:
            errors = validate_city(payload, self.store)
            if errors:
                return Result.failure(ErrorCode.validation_error, "City details are invalid.", errors)
            city_id = self.store.create_city(City(name=payload.name, population=payload.population))
            self._invalidate(CacheEvent.CITY_LIST_CHANGED)
            return Result.success(self.store.get_city(city_id), "City created.")
        except Exception as exc:
            logger.exception("create failed")
            return failure_from_exception(exc, "Could not create city.")

    def update(self, city_id: int, payload: CityInput) -> Result[City]:
        try:
            if self.store.get_city(city_id) is None:
                return Result.failure(ErrorCode.not_found, "City to update was not found.")
            errors = validate_city(payload, self.store, exclude_id=city_id)
            if errors:
                return Result.failure(ErrorCode.validation_error, "City details are invalid.", errors)
            self.store.update_city(city_id, name=payload.name, population=payload.population)
            self._invalidate(CacheEvent.CITY_LIST_CHANGED, city_id)
            return Result.success(self.store.get_city(city_id), "City updated.")
        except Exception as exc:
            logger.exception("update failed for city id %s", city_id)
            return failure_from_exception(exc, "Could not update city.")

    def delete(self, city_id: int) -> Result[None]:
        try:
            if not self.store.delete_city(city_id):
                return Result.failure(ErrorCode.not_found, "City to delete was not found.")
            self._invalidate(CacheEvent.CITY_LIST_CHANGED, city_id)
            return Result.success(message="City deleted.")
        except Exception as exc:
            logger.exception("delete failed for city id %s", city_id)
            return failure_from_exception(exc, "Could not delete city.")

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def _invalidate(self, event: CacheEvent, city_id: Optional[int] = None) -> None:
        keys, patterns = _INVALIDATIONS[event]
        for key in keys:
            self.cache.remove(key)
        for pattern in patterns:
            self.cache.remove_by_pattern(pattern)
        if city_id is not None:
            self.cache.remove(CITY_BY_ID_KEY.format(city_id))
        logger.info("City caches cleared (%s)", event.value)


def _to_payload(city: City) -> dict:
    return {"id": city.id, "name": city.name, "population": city.population, "created_at": city.created_at}
