"""
cache/events.py -- Logical cache invalidation events.

A write announces what changed, not which keys to delete. Each service owns
the mapping from these events to its concrete keys and registered patterns
(see _INVALIDATIONS in cities/service.py and hotels/service.py).
"""

from enum import Enum


class CacheEvent(str, Enum):
    CITY_LIST_CHANGED = "city_list_changed"
    HOTEL_LIST_CHANGED = "hotel_list_changed"
