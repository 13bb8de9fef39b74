"""Authoritative coordinate conversion through a remote geometry service.

Env:
  GEOMETRY_SERVICE_URL        ArcGIS-compatible GeometryServer root
  PROJECTION_TIMEOUT_SECONDS  request timeout (float, default 6)
  PROJECTION_DISABLE=1        do not build a client; callers fall back locally
"""
from __future__ import annotations

import json
import logging
import math
import os
import re
from typing import Any, List, Optional, Sequence

import httpx

from app.errors import RemoteServiceFailure
from app.schemas import GeographicPoint, ProjectedPoint
from qc.sanity import is_valid_geographic

logger = logging.getLogger(__name__)

DEFAULT_GEOMETRY_SERVICE_URL = (
    "https://utility.arcgisonline.com/ArcGIS/rest/services/Geometry/GeometryServer"
)
WGS84 = 4326

_AUTHORITY_CODE_RE = re.compile(r"^\s*(EPSG|ESRI)\s*:\s*(\d+)\s*$", re.IGNORECASE)
_DIGITS_RE = re.compile(r"^\s*(\d+)\s*$")


def normalize_code(value: Any) -> Optional[int]:
    """Reduce 6459, "6459" or "EPSG:6459" to 6459; anything else yields None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str):
        m = _AUTHORITY_CODE_RE.match(value) or _DIGITS_RE.match(value)
        if m:
            code = int(m.groups()[-1])
            return code if code > 0 else None
    return None


def _finite_point(p: Any) -> bool:
    x = getattr(p, "x", None)
    y = getattr(p, "y", None)
    if isinstance(x, bool) or isinstance(y, bool):
        return False
    if not isinstance(x, (int, float)) or not isinstance(y, (int, float)):
        return False
    return math.isfinite(x) and math.isfinite(y)


class ExternalProjectionClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or os.getenv("GEOMETRY_SERVICE_URL") or DEFAULT_GEOMETRY_SERVICE_URL).rstrip("/")
        if timeout is None:
            try:
                timeout = float(os.getenv("PROJECTION_TIMEOUT_SECONDS", "6"))
            except ValueError:
                timeout = 6.0
        self.timeout = timeout
        self._transport = transport

    async def project(
        self,
        points: Sequence[ProjectedPoint],
        from_crs: Any,
        to_crs: Any = WGS84,
    ) -> List[GeographicPoint]:
        """Project `points` to geographic coordinates.

        Non-finite inputs are dropped before sending, unusable outputs are dropped
        after receiving, so the result may be shorter than the input. Raises
        RemoteServiceFailure when nothing usable comes back.
        """
        in_sr = normalize_code(from_crs)
        if in_sr is None:
            raise RemoteServiceFailure(f"Cannot normalize source CRS {from_crs!r}")
        out_sr = WGS84 if str(to_crs).upper() in ("WGS84", "WGS 84") else normalize_code(to_crs)
        if out_sr is None:
            raise RemoteServiceFailure(f"Cannot normalize target CRS {to_crs!r}")

        valid = [p for p in points if _finite_point(p)]
        if not valid:
            raise RemoteServiceFailure("No valid coordinates to project")
        if len(valid) < len(points):
            logger.info("projection: dropped %d non-finite input point(s)", len(points) - len(valid))

        form = {
            "f": "json",
            "geometries": json.dumps(
                {
                    "geometryType": "esriGeometryPoint",
                    "geometries": [{"x": float(p.x), "y": float(p.y)} for p in valid],
                },
                separators=(",", ":"),
            ),
            "inSR": str(in_sr),
            "outSR": str(out_sr),
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(f"{self.base_url}/project", data=form)
        except httpx.HTTPError as e:
            raise RemoteServiceFailure(f"Geometry service unreachable: {e}") from e

        if resp.status_code != 200:
            raise RemoteServiceFailure(f"Geometry service responded {resp.status_code}")
        try:
            payload = resp.json()
        except ValueError as e:
            raise RemoteServiceFailure("Geometry service returned non-JSON body") from e
        if not isinstance(payload, dict):
            raise RemoteServiceFailure("Geometry service returned unexpected payload")

        err = payload.get("error")
        if err:
            msg = err.get("message") if isinstance(err, dict) else str(err)
            code = err.get("code") if isinstance(err, dict) else None
            raise RemoteServiceFailure(f"Geometry service error: {msg} (code {code})")

        out: List[GeographicPoint] = []
        for geom in payload.get("geometries") or []:
            if not isinstance(geom, dict):
                continue
            lon, lat = geom.get("x"), geom.get("y")
            if not is_valid_geographic(lat, lon):
                continue
            out.append(GeographicPoint(latitude=float(lat), longitude=float(lon)))

        if not out:
            raise RemoteServiceFailure("No valid geometries returned from projection")
        return out


def build_projection_client_from_env() -> ExternalProjectionClient | None:
    if os.getenv("PROJECTION_DISABLE") == "1":
        return None
    return ExternalProjectionClient()


__all__ = [
    "ExternalProjectionClient",
    "normalize_code",
    "build_projection_client_from_env",
    "WGS84",
]
