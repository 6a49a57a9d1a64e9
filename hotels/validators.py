"""
hotels/validators.py -- Field validation for Hotel create/update payloads.

The parent city must exist; the name must be unique within that city.
"""

import re
from typing import Optional

from cities.store import CityStore
from hotels.models import HotelInput
from hotels.store import HotelStore

_HOTEL_NAME_RE = re.compile(r"^[a-zA-Z0-9ğüşıöçĞÜŞİÖÇ ]+$")


def validate_hotel(
    payload: HotelInput,
    store: HotelStore,
    city_store: CityStore,
    exclude_id: Optional[int] = None,
) -> list[str]:
    errors: list[str] = []

    city_ok = False
    if payload.city_id is None or payload.city_id <= 0:
        errors.append("Select a valid city.")
    elif city_store.get_city(payload.city_id) is None:
        errors.append("The selected city does not exist.")
    else:
        city_ok = True

    name = payload.name or ""
    if not name.strip():
        errors.append("Hotel name is required.")
    elif not 3 <= len(name) <= 150:
        errors.append("Hotel name must be between 3 and 150 characters.")
    elif not _HOTEL_NAME_RE.match(name):
        errors.append("Hotel name may only contain letters, digits and spaces.")
    elif city_ok and not store.is_name_unique_in_city(name, payload.city_id, exclude_id=exclude_id):
        errors.append("A hotel with this name already exists in this city.")

    if payload.stars is None or not 1 <= payload.stars <= 5:
        errors.append("Star rating must be between 1 and 5.")

    return errors
