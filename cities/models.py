"""
cities/models.py -- Domain dataclasses for the City resource.

Pure data containers. City doubles as the cached payload shape: the service
serializes it with dataclasses.asdict() and rebuilds it with City(**data).
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class City:
    """Top level of the City -> Hotel -> Garage -> Car hierarchy.

    id is None before the record is written to the database.
    """

    name: str
    population: int
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert


@dataclass
class CityInput:
    """Create/update payload."""

    name: str
    population: int
