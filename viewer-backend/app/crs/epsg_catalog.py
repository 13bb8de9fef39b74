from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

# Static regional catalog (Indiana). Plain dicts; CRSCatalogService turns them
# into immutable CRSEntry values once at start-up.

INDIANA_BBOX = [-88.1, 37.77, -84.78, 41.77]
INDIANA_EAST_BBOX = [-86.59, 37.95, -84.78, 41.77]
INDIANA_WEST_BBOX = [-88.1, 37.77, -86.24, 41.77]

HORIZONTAL: List[dict] = [
    {"code": "EPSG:2965", "name": "NAD83 / Indiana East (ftUS)", "recommended": True,
     "description": "Indiana State Plane East Zone in US Survey Feet", "bounding_box": INDIANA_EAST_BBOX},
    {"code": "EPSG:2966", "name": "NAD83 / Indiana West (ftUS)", "recommended": True,
     "description": "Indiana State Plane West Zone in US Survey Feet", "bounding_box": INDIANA_WEST_BBOX},
    {"code": "EPSG:6459", "name": "NAD83(2011) / Indiana East (ftUS)", "recommended": True,
     "description": "Indiana State Plane East Zone, NAD83(2011), US Survey Feet", "bounding_box": INDIANA_EAST_BBOX},
    {"code": "EPSG:6461", "name": "NAD83(2011) / Indiana West (ftUS)", "recommended": True,
     "description": "Indiana State Plane West Zone, NAD83(2011), US Survey Feet", "bounding_box": INDIANA_WEST_BBOX},
    {"code": "EPSG:2792", "name": "NAD83(HARN) / Indiana East",
     "description": "Indiana State Plane East Zone, HARN, meters", "bounding_box": INDIANA_EAST_BBOX},
    {"code": "EPSG:2793", "name": "NAD83(HARN) / Indiana West",
     "description": "Indiana State Plane West Zone, HARN, meters", "bounding_box": INDIANA_WEST_BBOX},
    {"code": "EPSG:2967", "name": "NAD83(HARN) / Indiana East (ftUS)",
     "description": "Indiana State Plane East Zone, HARN, US Survey Feet", "bounding_box": INDIANA_EAST_BBOX},
    {"code": "EPSG:7328", "name": "NAD83(2011) / InGCS Johnson-Marion (ftUS)", "recommended": True,
     "description": "Indiana Geospatial Coordinate System - Johnson-Marion County NAD83(2011) (US Survey Feet)"},
    {"code": "EPSG:26916", "name": "NAD83 / UTM zone 16N", "description": "UTM zone 16N, covers most of Indiana"},
    {"code": "EPSG:32616", "name": "WGS 84 / UTM zone 16N", "description": "UTM zone 16N on WGS 84"},
    {"code": "EPSG:4326", "name": "WGS 84", "description": "World Geodetic System 1984, geographic"},
    {"code": "EPSG:3857", "name": "WGS 84 / Pseudo-Mercator", "description": "Web map tiles"},
    {"code": "EPSG:4269", "name": "NAD83", "description": "North American Datum 1983, geographic"},
    {"code": "EPSG:4152", "name": "NAD83(HARN)", "description": "NAD83 High Accuracy Reference Network, geographic"},
]

VERTICAL: List[dict] = [
    {"code": "EPSG:6360", "name": "NAVD88 height (ftUS)", "recommended": True,
     "description": "North American Vertical Datum of 1988 (US Survey Feet)"},
    {"code": "EPSG:5703", "name": "NAVD88 height", "description": "North American Vertical Datum of 1988 (meters)"},
    {"code": "EPSG:5702", "name": "NGVD29 height (ftUS)", "description": "National Geodetic Vertical Datum of 1929"},
    {"code": "EPSG:5701", "name": "MSL height", "description": "Mean Sea Level height"},
    {"code": "EPSG:8052", "name": "MSL height (ftUS)", "description": "Mean Sea Level height (US Survey Feet)"},
]

GEOID: List[dict] = [
    {"code": "GEOID18", "name": "GEOID18", "recommended": True, "description": "Current NOAA geoid model for CONUS (2019)"},
    {"code": "GEOID12B", "name": "GEOID12B", "description": "Previous NOAA geoid model for CONUS (2012)"},
    {"code": "GEOID12A", "name": "GEOID12A", "description": "NOAA geoid model for CONUS (2012, first release)"},
    {"code": "GEOID09", "name": "GEOID09", "description": "Legacy NOAA geoid model for CONUS (2009)"},
    {"code": "GEOID03", "name": "GEOID03", "description": "Legacy NOAA geoid model for CONUS (2003)"},
    {"code": "GEOID99", "name": "GEOID99", "description": "Legacy NOAA geoid model for CONUS (1999)"},
]

# Curated, not derived: the codes survey staff are told to use.
RECOMMENDED: Dict[str, frozenset] = {
    "EPSG": frozenset({2965, 2966, 6459, 6461, 3613, 7328}),
}

# InGCS county systems, EPSG:3532 (Adams) through EPSG:3623 (Whitley) in county order
INGCS_COUNTIES: Tuple[str, ...] = (
    "Adams", "Allen", "Bartholomew", "Benton", "Blackford", "Boone", "Brown", "Carroll",
    "Cass", "Clark", "Clay", "Clinton", "Crawford", "Daviess", "Dearborn", "Decatur",
    "DeKalb", "Delaware", "Dubois", "Elkhart", "Fayette", "Floyd", "Fountain", "Franklin",
    "Fulton", "Gibson", "Grant", "Greene", "Hamilton", "Hancock", "Harrison", "Hendricks",
    "Henry", "Howard", "Huntington", "Jackson", "Jasper", "Jay", "Jefferson", "Jennings",
    "Johnson", "Knox", "Kosciusko", "LaGrange", "Lake", "LaPorte", "Lawrence", "Madison",
    "Marion", "Marshall", "Martin", "Miami", "Monroe", "Montgomery", "Morgan", "Newton",
    "Noble", "Ohio", "Orange", "Owen", "Parke", "Perry", "Pike", "Porter",
    "Posey", "Pulaski", "Putnam", "Randolph", "Ripley", "Rush", "Scott", "Shelby",
    "Spencer", "Starke", "Steuben", "St Joseph", "Sullivan", "Switzerland", "Tippecanoe", "Tipton",
    "Union", "Vanderburgh", "Vermillion", "Vigo", "Wabash", "Warren", "Warrick", "Washington",
    "Wayne", "Wells", "White", "Whitley",
)
INGCS_FIRST_CODE = 3532

HORIZONTAL.extend(
    {
        "code": f"EPSG:{INGCS_FIRST_CODE + i}",
        "name": f"NAD83 / InGCS {county} (ftUS)",
        "recommended": INGCS_FIRST_CODE + i in RECOMMENDED["EPSG"],
        "description": f"Indiana Geospatial Coordinate System - {county} County (US Survey Feet)",
    }
    for i, county in enumerate(INGCS_COUNTIES)
)

# Regional defaults applied when a manifest or point-cloud metadata carries no vertical info
DEFAULT_HORIZONTAL = "EPSG:2965"
DEFAULT_VERTICAL = "EPSG:6360"
DEFAULT_GEOID = "GEOID18"

REGION_CENTER: Tuple[float, float, str] = (39.7684, -86.1581, "Indiana")

# Approximate location (lat, lon, label) for regional CRS codes
CRS_LOCATIONS: Dict[str, Tuple[float, float, str]] = {
    "EPSG:2965": (39.7684, -85.8419, "Indiana East Zone"),
    "EPSG:2966": (39.7684, -87.1581, "Indiana West Zone"),
    "EPSG:6459": (39.7684, -85.8419, "Indiana East Zone (NAD83 2011)"),
    "EPSG:6461": (39.7684, -87.1581, "Indiana West Zone (NAD83 2011)"),
    "EPSG:3533": (41.0793, -85.1394, "Allen County, IN"),
    "EPSG:3576": (41.4831, -87.4289, "Lake County, IN"),
    "EPSG:3580": (39.7684, -86.1581, "Marion County, IN"),
    "EPSG:3584": (39.1653, -86.5264, "Monroe County, IN"),
    "EPSG:3607": (41.7018, -86.2390, "St Joseph County, IN"),
    "EPSG:3613": (37.9747, -87.5558, "Vanderburgh County, IN"),
    "EPSG:7328": (39.6507, -86.1270, "Johnson-Marion County, IN"),
    "EPSG:26916": (39.7684, -86.1581, "Indiana (UTM 16N)"),
    "EPSG:32616": (39.7684, -86.1581, "Indiana (UTM 16N WGS84)"),
    "EPSG:4269": (39.7684, -86.1581, "Indiana (NAD83)"),
    "EPSG:4326": (39.7684, -86.1581, "Indiana (WGS84)"),
}

_PREFIXED_RE = re.compile(r"\b(EPSG|ESRI)\s*:\s*(\d+)", re.IGNORECASE)
_BARE_CODE_RE = re.compile(r"(?<!\d)(\d{4,5})(?!\d)")
_FIPS_SUFFIX_RE = re.compile(r"FIPS[\s_]*$", re.IGNORECASE)
_REGIONAL_NAME_RE = re.compile(r"INDIANA|INGCS", re.IGNORECASE)


def is_recommended(authority: str, code: int | str) -> bool:
    try:
        n = int(code)
    except (TypeError, ValueError):
        return False
    return n in RECOMMENDED.get(str(authority).upper(), frozenset())


def canonical_code(label: Optional[str], default: Optional[str] = None) -> Optional[str]:
    """Coerce a free-form projection label to AUTHORITY:NUMBER where a code is recoverable."""
    if not label or not label.strip():
        return default
    m = _PREFIXED_RE.search(label)
    if m:
        return f"{m.group(1).upper()}:{m.group(2)}"
    for m in _BARE_CODE_RE.finditer(label):
        n = int(m.group(1))
        # datum years (NAD_1983, NAD83(2011)) and state-plane FIPS zones are not EPSG codes
        if 1900 <= n <= 2099 or _FIPS_SUFFIX_RE.search(label[: m.start()]):
            continue
        return f"EPSG:{n}"
    return default


def location_for_crs(code: Optional[str]) -> Optional[Tuple[float, float, str]]:
    """Rough regional location implied by a CRS code alone."""
    if not code:
        return None
    key = canonical_code(code, default=code)
    if key in CRS_LOCATIONS:
        return CRS_LOCATIONS[key]
    if key.upper().startswith("EPSG:") or _REGIONAL_NAME_RE.search(code):
        return REGION_CENTER
    return None


__all__ = [
    "HORIZONTAL",
    "VERTICAL",
    "GEOID",
    "RECOMMENDED",
    "INGCS_COUNTIES",
    "is_recommended",
    "canonical_code",
    "location_for_crs",
    "DEFAULT_HORIZONTAL",
    "DEFAULT_VERTICAL",
    "DEFAULT_GEOID",
]
