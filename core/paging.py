"""
core/paging.py -- Paging request normalization, window math, and metadata.

Pattern: Value objects. PagingRequest owns the clamping rules, PagingInfo is
derived entirely from (current_page, page_size, total_records), and
PagedResult pairs a page of items with that metadata. None of these classes
touch a database or a cache -- cities/service.py composes them with the store
and the cache.

Clamping (never rejecting) out-of-range input:
  page <= 0                      -> 1
  page > MAX_PAGE                -> MAX_PAGE (keeps OFFSET inside a 64-bit int)
  page_size <= 0 or > 100        -> 10
  sort_by not one of SORT_FIELDS -> "name"
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Generic, Optional, TypeVar
from urllib.parse import quote

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
MAX_PAGE = 10_000_000

SORT_FIELDS = ("name", "population", "createddate")
DEFAULT_SORT = "name"

# Cache key segment when no search term was given. A real term is always
# written as SEARCH_PREFIX + percent-encoded text, so it can never collide
# with this sentinel or introduce an extra ":" separator.
NO_SEARCH = "null"
SEARCH_PREFIX = "q="


@dataclass
class PagingRequest:
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    search: Optional[str] = None
    sort_by: Optional[str] = DEFAULT_SORT
    sort_descending: bool = False

    def normalized(self) -> "PagingRequest":
        """Return a copy with every field clamped to its legal range."""
        page = min(self.page, MAX_PAGE) if self.page and self.page > 0 else 1
        size = self.page_size
        if not size or size <= 0 or size > MAX_PAGE_SIZE:
            size = DEFAULT_PAGE_SIZE
        search = (self.search or "").strip().lower() or None
        sort_by = (self.sort_by or DEFAULT_SORT).strip().lower()
        if sort_by not in SORT_FIELDS:
            sort_by = DEFAULT_SORT
        return PagingRequest(
            page=page,
            page_size=size,
            search=search,
            sort_by=sort_by,
            sort_descending=bool(self.sort_descending),
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def cache_key(self, prefix: str) -> str:
        """Deterministic key built from every parameter that affects the page.

        Call on a normalized request so equivalent inputs ("Ank " vs "ank",
        "bogus" sort vs "name") share one entry. A search for the literal text
        "null" is written as "q=null" and never shares the no-search entry.
        """
        direction = "desc" if self.sort_descending else "asc"
        search = SEARCH_PREFIX + quote(self.search, safe="") if self.search else NO_SEARCH
        return f"{prefix}:{self.page}:{self.page_size}:{search}:{self.sort_by}:{direction}"


@dataclass
class PagingInfo:
    current_page: int
    page_size: int
    total_records: int
    total_pages: int
    has_next: bool
    has_previous: bool
    first_record: int
    last_record: int

    @classmethod
    def compute(cls, current_page: int, page_size: int, total_records: int) -> "PagingInfo":
        total_pages = math.ceil(total_records / page_size) if total_records > 0 else 0
        if total_records > 0:
            first_record = (current_page - 1) * page_size + 1
            last_record = min(current_page * page_size, total_records)
        else:
            first_record = 0
            last_record = 0
        return cls(
            current_page=current_page,
            page_size=page_size,
            total_records=total_records,
            total_pages=total_pages,
            has_next=current_page < total_pages,
            has_previous=current_page > 1,
            first_record=first_record,
            last_record=last_record,
        )


@dataclass
class PagedResult(Generic[T]):
    items: list[T]
    pagination: PagingInfo
    message: str = ""
    from_cache: bool = field(default=False, compare=False)

    @classmethod
    def build(cls, items: list[T], current_page: int, page_size: int, total_records: int) -> "PagedResult[T]":
        return cls(
            items=items,
            pagination=PagingInfo.compute(current_page, page_size, total_records),
            message=f"Page {current_page} - {len(items)} records returned.",
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe form used as the cache payload. Items must be dataclasses."""
        return {
            "items": [asdict(item) for item in self.items],
            "pagination": asdict(self.pagination),
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], item_factory: Callable[[dict], T]) -> "PagedResult[T]":
        return cls(
            items=[item_factory(item) for item in data["items"]],
            pagination=PagingInfo(**data["pagination"]),
            message=data.get("message", ""),
            from_cache=True,
        )
