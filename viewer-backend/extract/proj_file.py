from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from app.schemas import CRSDeclaration

# -----------------------------
# WKT keyword patterns
# -----------------------------

PROJCS_RE = re.compile(r'PROJCS\[\s*"([^"]+)"', re.IGNORECASE)
GEOGCS_RE = re.compile(r'GEOGCS\[\s*"([^"]+)"', re.IGNORECASE)
DATUM_RE = re.compile(r'DATUM\[\s*"([^"]+)"', re.IGNORECASE)
SPHEROID_RE = re.compile(r'SPHEROID\[\s*"([^"]+)"', re.IGNORECASE)
PROJECTION_RE = re.compile(r'PROJECTION\[\s*"([^"]+)"', re.IGNORECASE)
UNIT_RE = re.compile(r'UNIT\[\s*"([^"]+)"', re.IGNORECASE)
AUTHORITY_RE = re.compile(r'AUTHORITY\[\s*"(\w+)"\s*,\s*"?(\d+)"?\s*\]', re.IGNORECASE)
PARAMETER_RE = re.compile(r'PARAMETER\[\s*"([^"]+)"\s*,\s*([^\],]+)', re.IGNORECASE)

CENTRAL_MERIDIAN_KEYS = ("central_meridian", "longitude_of_center", "longitude_of_origin")
LATITUDE_OF_ORIGIN_KEYS = ("latitude_of_origin", "latitude_of_center")

FOOT_UNIT_WORDS = ("foot", "feet", "ftus")


@dataclass(frozen=True)
class ProjectionDescription:
    projcs: str = ""
    geogcs: str = ""
    datum: str = ""
    spheroid: str = ""
    projection: str = ""
    parameters: Dict[str, float] = field(default_factory=dict)
    unit: str = ""
    authority: str = ""  # "EPSG:2965" style, empty when absent

    @property
    def authority_number(self) -> str:
        return self.authority.split(":", 1)[1] if ":" in self.authority else ""


def _normalize(s: str) -> str:
    return re.sub(r"\s+", " ", s).strip()


def _first(pattern: re.Pattern, text: str) -> str:
    m = pattern.search(text)
    return m.group(1) if m else ""


def _last(pattern: re.Pattern, text: str) -> str:
    # Outermost object's UNIT/AUTHORITY come after the nested GEOGCS ones in WKT1
    found = pattern.findall(text)
    return found[-1] if found else ""


def parse_projection_description(text: object) -> Optional[ProjectionDescription]:
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if not isinstance(text, str):
        return None
    norm = _normalize(text)

    parameters: Dict[str, float] = {}
    for name, raw in PARAMETER_RE.findall(norm):
        try:
            parameters[name] = float(raw.strip())
        except ValueError:
            continue

    authority = ""
    auths = AUTHORITY_RE.findall(norm)
    if auths:
        auth_name, auth_code = auths[-1]
        authority = f"{auth_name.upper()}:{auth_code}"

    return ProjectionDescription(
        projcs=_first(PROJCS_RE, norm),
        geogcs=_first(GEOGCS_RE, norm),
        datum=_first(DATUM_RE, norm),
        spheroid=_first(SPHEROID_RE, norm),
        projection=_first(PROJECTION_RE, norm),
        parameters=parameters,
        unit=_last(UNIT_RE, norm),
        authority=authority,
    )


def _param(desc: ProjectionDescription, keys: Tuple[str, ...]) -> Optional[float]:
    lowered = {k.lower(): v for k, v in desc.parameters.items()}
    for k in keys:
        if k in lowered:
            return lowered[k]
    return None


def central_point(desc: ProjectionDescription) -> Optional[Tuple[float, float]]:
    """(central meridian, latitude of origin) as an (x, y) pair, if both are declared."""
    cm = _param(desc, CENTRAL_MERIDIAN_KEYS)
    lat0 = _param(desc, LATITUDE_OF_ORIGIN_KEYS)
    if cm is None or lat0 is None:
        return None
    return cm, lat0


def to_crs_declaration(desc: ProjectionDescription) -> Optional[CRSDeclaration]:
    horizontal = desc.authority or desc.projcs or desc.geogcs
    if not horizontal:
        return None

    vertical: Optional[str] = None
    unit = desc.unit.lower()
    if any(w in unit for w in FOOT_UNIT_WORDS):
        datum = desc.datum.upper().replace(" ", "_")
        is_nad83 = "NAD83" in datum or "NAD_1983" in datum or ("NORTH_AMERICAN" in datum and "1983" in datum)
        vertical = "EPSG:6360" if is_nad83 else "EPSG:5702"

    geoid: Optional[str] = None
    if "2011" in desc.datum:
        geoid = "GEOID12B"
    elif "HARN" in desc.datum.upper():
        geoid = "GEOID09"

    return CRSDeclaration(horizontal=horizontal, vertical=vertical, geoid_model=geoid)


__all__ = [
    "ProjectionDescription",
    "parse_projection_description",
    "central_point",
    "to_crs_declaration",
]
