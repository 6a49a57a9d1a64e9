"""
hotels/models.py -- Domain dataclasses for the Hotel resource.

Second level of the City -> Hotel -> Garage -> Car hierarchy. Like City, a
Hotel doubles as its own cache payload (asdict() out, Hotel(**data) back).
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Hotel:
    name: str
    stars: int  # 1..5
    city_id: int
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert


@dataclass
class HotelInput:
    """Create/update payload."""

    name: str
    stars: int
    city_id: int
