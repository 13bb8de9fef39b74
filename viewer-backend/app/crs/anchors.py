from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from app.schemas import GeographicPoint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Anchor:
    projected_x: float
    projected_y: float
    lat: float
    lon: float
    label: str = ""


@dataclass(frozen=True)
class Envelope:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    def contains(self, x: float, y: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y


# Indiana state-plane / InGCS county coordinates in US survey feet.
INDIANA_ANCHORS: Tuple[Anchor, ...] = (
    Anchor(3154601.912, 1727378.764, 39.7684, -86.1581, "Marion (Indianapolis)"),
    Anchor(2800000, 1200000, 37.9747, -87.5558, "Vanderburgh (Evansville)"),
    Anchor(3800000, 2100000, 41.0793, -85.1394, "Allen (Fort Wayne)"),
    Anchor(2900000, 2300000, 41.5868, -87.3467, "Lake (Gary)"),
    Anchor(3100000, 1400000, 39.1653, -86.5264, "Monroe (Bloomington)"),
    Anchor(3200000, 2200000, 41.7018, -86.2390, "St. Joseph (South Bend)"),
    Anchor(3300000, 1600000, 39.4, -85.8, "East Central"),
    Anchor(2900000, 1800000, 40.2, -87.2, "West Central"),
    Anchor(3500000, 1900000, 40.5, -85.5, "Northeast"),
    Anchor(3000000, 1300000, 38.8, -86.8, "Southwest"),
)

# Projected-space extent the anchors are trusted for, and the geographic
# envelope (x = longitude, y = latitude) a result must land in.
INDIANA_PROJECTED_ENVELOPE = Envelope(2_500_000, 1_000_000, 4_500_000, 2_500_000)
INDIANA_GEOGRAPHIC_ENVELOPE = Envelope(-88.5, 37.0, -84.5, 42.0)

# Feet per degree of latitude, and feet per degree of longitude at the equator.
LAT_SCALE = 364000.0
LON_SCALE_EQUATOR = 288200.0

DEFAULT_MAX_DISTANCE = 1_000_000.0


def _max_distance_from_env() -> float:
    raw = os.getenv("ANCHOR_MAX_DISTANCE")
    if raw:
        try:
            return float(raw)
        except ValueError:
            pass
    return DEFAULT_MAX_DISTANCE


# UTM zone 16N (metres) window covering the region
UTM_ZONE = 16
INDIANA_UTM_ENVELOPE = Envelope(250_000, 4_200_000, 750_000, 4_700_000)

# GRS 80 ellipsoid; NAD83 and WGS 84 differ by well under a metre here
_A = 6378137.0
_F = 1 / 298.257222101
_E2 = _F * (2 - _F)
_EP2 = _E2 / (1 - _E2)
_K0 = 0.9996
_FALSE_EASTING = 500_000.0


def utm_to_geographic(easting: float, northing: float, zone: int = UTM_ZONE) -> Tuple[float, float]:
    """Inverse transverse Mercator (northern hemisphere) -> (lat, lon) in degrees.

    Series form from Snyder, "Map Projections: A Working Manual" (USGS PP 1395),
    good to well below a metre inside a zone.
    """
    lon0 = math.radians(zone * 6 - 183)
    x = easting - _FALSE_EASTING
    m = northing / _K0

    mu = m / (_A * (1 - _E2 / 4 - 3 * _E2 ** 2 / 64 - 5 * _E2 ** 3 / 256))
    e1 = (1 - math.sqrt(1 - _E2)) / (1 + math.sqrt(1 - _E2))
    phi1 = (
        mu
        + (3 * e1 / 2 - 27 * e1 ** 3 / 32) * math.sin(2 * mu)
        + (21 * e1 ** 2 / 16 - 55 * e1 ** 4 / 32) * math.sin(4 * mu)
        + (151 * e1 ** 3 / 96) * math.sin(6 * mu)
        + (1097 * e1 ** 4 / 512) * math.sin(8 * mu)
    )

    sin1, cos1, tan1 = math.sin(phi1), math.cos(phi1), math.tan(phi1)
    c1 = _EP2 * cos1 ** 2
    t1 = tan1 ** 2
    n1 = _A / math.sqrt(1 - _E2 * sin1 ** 2)
    r1 = _A * (1 - _E2) / (1 - _E2 * sin1 ** 2) ** 1.5
    d = x / (n1 * _K0)

    lat = phi1 - (n1 * tan1 / r1) * (
        d ** 2 / 2
        - (5 + 3 * t1 + 10 * c1 - 4 * c1 ** 2 - 9 * _EP2) * d ** 4 / 24
        + (61 + 90 * t1 + 298 * c1 + 45 * t1 ** 2 - 252 * _EP2 - 3 * c1 ** 2) * d ** 6 / 720
    )
    lon = lon0 + (
        d
        - (1 + 2 * t1 + c1) * d ** 3 / 6
        + (5 - 2 * c1 + 28 * t1 - 3 * c1 ** 2 + 8 * _EP2 + 24 * t1 ** 2) * d ** 5 / 120
    ) / cos1
    return math.degrees(lat), math.degrees(lon)


class ReferencePointInterpolator:
    """Approximate projected coordinates to degrees for the supported region.

    State-plane feet use the closest anchor only: the offset in projected
    units is scaled by a fixed latitude scale and a longitude scale shrunk by
    cos(anchor latitude). Points too far from every anchor are rejected.
    Coordinates outside the state-plane window but inside the UTM zone 16N
    window are inverted with the transverse Mercator series instead. Either
    way the result must land in the geographic envelope.
    """

    def __init__(
        self,
        anchors: Sequence[Anchor] = INDIANA_ANCHORS,
        projected_envelope: Optional[Envelope] = INDIANA_PROJECTED_ENVELOPE,
        geographic_envelope: Envelope = INDIANA_GEOGRAPHIC_ENVELOPE,
        max_distance: Optional[float] = None,
        utm_envelope: Optional[Envelope] = INDIANA_UTM_ENVELOPE,
    ):
        if not anchors:
            raise ValueError("at least one anchor is required")
        self.anchors: List[Anchor] = list(anchors)
        self.projected_envelope = projected_envelope
        self.geographic_envelope = geographic_envelope
        self.max_distance = max_distance if max_distance is not None else _max_distance_from_env()
        self.utm_envelope = utm_envelope

    def nearest(self, x: float, y: float) -> Tuple[Anchor, float]:
        best = self.anchors[0]
        best_d = math.hypot(x - best.projected_x, y - best.projected_y)
        for a in self.anchors[1:]:
            d = math.hypot(x - a.projected_x, y - a.projected_y)
            if d < best_d:
                best, best_d = a, d
        return best, best_d

    def interpolate(self, x: float, y: float) -> Optional[GeographicPoint]:
        if not (math.isfinite(x) and math.isfinite(y)):
            return None
        if self.projected_envelope is None or self.projected_envelope.contains(x, y):
            result = self._from_anchor(x, y)
        elif self.utm_envelope is not None and self.utm_envelope.contains(x, y):
            result = utm_to_geographic(x, y)
            logger.debug("interpolate: (%s, %s) treated as UTM zone %d", x, y, UTM_ZONE)
        else:
            logger.debug("interpolate: (%s, %s) outside projected envelope", x, y)
            return None
        if result is None:
            return None

        lat, lon = result
        if not self.geographic_envelope.contains(lon, lat):
            logger.info("interpolate: result (%.6f, %.6f) outside supported region", lat, lon)
            return None
        return GeographicPoint(latitude=lat, longitude=lon)

    def _from_anchor(self, x: float, y: float) -> Optional[Tuple[float, float]]:
        anchor, dist = self.nearest(x, y)
        if dist > self.max_distance:
            logger.debug("interpolate: nearest anchor %s is %.0f units away", anchor.label, dist)
            return None

        dx = x - anchor.projected_x
        dy = y - anchor.projected_y
        lon_scale = LON_SCALE_EQUATOR * math.cos(math.radians(anchor.lat))
        lat = anchor.lat + dy / LAT_SCALE
        lon = anchor.lon + dx / lon_scale
        logger.debug("interpolate: [%s, %s] -> [%.6f, %.6f] via %s", x, y, lat, lon, anchor.label)
        return lat, lon


__all__ = [
    "Anchor",
    "Envelope",
    "ReferencePointInterpolator",
    "INDIANA_ANCHORS",
    "INDIANA_UTM_ENVELOPE",
    "LAT_SCALE",
    "LON_SCALE_EQUATOR",
    "utm_to_geographic",
]
