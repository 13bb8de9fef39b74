from __future__ import annotations

import math
from typing import Any, Optional

from app.schemas import GeographicPoint, UNSET_EPSILON


def is_finite_pair(x: Any, y: Any) -> bool:
    """True when both values are real numbers (bools excluded) and finite."""
    for v in (x, y):
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return False
        if not math.isfinite(v):
            return False
    return True


def is_unset(latitude: float, longitude: float) -> bool:
    return abs(latitude) <= UNSET_EPSILON and abs(longitude) <= UNSET_EPSILON


def is_valid_geographic(latitude: Any, longitude: Any) -> bool:
    """A usable map location: finite, within WGS84 bounds and not the (0, 0) placeholder."""
    if not is_finite_pair(latitude, longitude):
        return False
    if abs(latitude) > 90.0 or abs(longitude) > 180.0:
        return False
    return not is_unset(latitude, longitude)


def to_geographic(latitude: Any, longitude: Any) -> Optional[GeographicPoint]:
    if not is_valid_geographic(latitude, longitude):
        return None
    return GeographicPoint(latitude=float(latitude), longitude=float(longitude))
