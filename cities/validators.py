"""
cities/validators.py -- Field validation for City create/update payloads.

Returns a list of violations; empty means valid. The uniqueness rule takes the
store explicitly and accepts the id being updated so a city can keep its own
name.
"""

import re
from typing import Optional

from cities.models import CityInput
from cities.store import CityStore

_CITY_NAME_RE = re.compile(r"^[a-zA-ZğüşıöçĞÜŞİÖÇ ]+$")

MAX_POPULATION = 50_000_000


def validate_city(payload: CityInput, store: CityStore, exclude_id: Optional[int] = None) -> list[str]:
    errors: list[str] = []

    name = payload.name or ""
    if not name.strip():
        errors.append("City name is required.")
    elif not 2 <= len(name) <= 100:
        errors.append("City name must be between 2 and 100 characters.")
    elif not _CITY_NAME_RE.match(name):
        errors.append("City name may only contain letters and spaces.")
    elif not store.is_name_unique(name, exclude_id=exclude_id):
        errors.append("A city with this name already exists.")

    if payload.population is None or payload.population <= 0:
        errors.append("Population must be greater than 0.")
    elif payload.population > MAX_POPULATION:
        errors.append("Population cannot exceed 50 million.")

    return errors
