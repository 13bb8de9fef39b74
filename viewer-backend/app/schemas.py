from __future__ import annotations

import math
from typing import List, Optional, Literal
from pydantic import BaseModel, Field, ConfigDict, field_validator


LocationSource = Literal["world_file", "proj_file", "sources_manifest", "potree_bounds"]
Confidence = Literal["high", "medium", "low"]
ConversionMethod = Literal["direct", "remote", "interpolated", "raw"]
CRSType = Literal["horizontal", "vertical", "geoid"]

# Both components within this distance of zero means "never set", not the Gulf of Guinea
UNSET_EPSILON = 0.01


class GeographicPoint(BaseModel):
    """WGS84 latitude/longitude in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)

    @field_validator("latitude", "longitude")
    @classmethod
    def _finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("coordinate must be finite")
        return v

    @property
    def is_unset(self) -> bool:
        return abs(self.latitude) <= UNSET_EPSILON and abs(self.longitude) <= UNSET_EPSILON


class ProjectedPoint(BaseModel):
    """Coordinates in the units of some declared or unknown CRS; no inherent bounds."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class CRSDeclaration(BaseModel):
    model_config = ConfigDict(frozen=True)

    horizontal: str = Field(default="", description="AUTHORITY:NUMBER when recoverable, else free text or empty")
    vertical: Optional[str] = None
    geoid_model: Optional[str] = None


class ResolvedLocation(BaseModel):
    """One resolution attempt's location. Never mutated; a later attempt produces a new record."""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    source: LocationSource
    confidence: Confidence
    method: ConversionMethod = "direct"


class AttemptRecord(BaseModel):
    source: str
    status: Literal["absent", "malformed", "unusable", "resolved", "crs_only"]
    detail: Optional[str] = None


class ResolutionResult(BaseModel):
    """Best-effort project identity, location and CRS for a job number.

    `location` and `crs` may both be None: that is the unresolved terminal
    state, rendered by the UI like any other project.
    """

    job_number: str
    project_name: str
    description: str = "Point cloud project"
    project_type: str = "survey"
    location: Optional[ResolvedLocation] = None
    crs: Optional[CRSDeclaration] = None
    total_points: Optional[int] = None
    diagnostics: List[AttemptRecord] = Field(default_factory=list)

    @property
    def confidence(self) -> Optional[Confidence]:
        return self.location.confidence if self.location else None


class CRSEntry(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "code": "EPSG:2965",
                "name": "NAD83 / Indiana East (ftUS)",
                "type": "horizontal",
                "recommended": True,
                "description": "Indiana State Plane East Zone in US Survey Feet",
                "bounding_box": [-86.59, 37.95, -84.78, 41.77],
            }
        },
    )

    code: str
    name: str
    type: CRSType = "horizontal"
    recommended: bool = False
    description: Optional[str] = None
    bounding_box: Optional[List[float]] = Field(
        default=None, description="[west, south, east, north] in degrees"
    )

    @field_validator("bounding_box")
    @classmethod
    def _validate_bbox(cls, v: Optional[List[float]]) -> Optional[List[float]]:
        if v is None:
            return v
        if len(v) != 4:
            raise ValueError("bounding_box must be [west, south, east, north]")
        return [float(x) for x in v]


class CRSOptions(BaseModel):
    horizontal: List[CRSEntry] = Field(default_factory=list)
    vertical: List[CRSEntry] = Field(default_factory=list)
    geoid: List[CRSEntry] = Field(default_factory=list)


class RegionalLocation(BaseModel):
    latitude: float
    longitude: float
    address: str
