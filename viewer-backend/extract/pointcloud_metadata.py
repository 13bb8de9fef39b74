"""Point-cloud metadata in its two on-disk encodings, normalized to one shape.

 - metadata.json: boundingBox = {lx, ly, lz, ux, uy, uz}
 - cloud.js:      boundingBox = {min: [x, y, z], max: [x, y, z]}, often wrapped
                  in a JavaScript assignment (`var cloud = {...};`)

Both parse functions go through `normalize_metadata`, so callers only ever
see `PointCloudMetadata`.
"""
from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Any, Literal, Optional, Union

from extract.bounds import Bounds, bounds_from_min_max, load_json_object

_JS_ASSIGNMENT_RE = re.compile(r"=\s*(\{[\s\S]*\})\s*;?\s*$")
_LU_KEYS = ("lx", "ly", "lz", "ux", "uy", "uz")


@dataclass(frozen=True)
class CornerBoxMetadata:
    """metadata.json encoding."""
    kind: Literal["corners"]
    raw: dict


@dataclass(frozen=True)
class MinMaxBoxMetadata:
    """cloud.js encoding."""
    kind: Literal["min_max"]
    raw: dict


RawMetadata = Union[CornerBoxMetadata, MinMaxBoxMetadata]


@dataclass(frozen=True)
class PointCloudMetadata:
    bounds: Bounds
    tight_bounds: Optional[Bounds]
    points: int
    projection_label: str
    encoding: Literal["corners", "min_max"]

    @property
    def effective_bounds(self) -> Bounds:
        return self.tight_bounds or self.bounds


def _bounds_from_corners(obj: Any) -> Optional[Bounds]:
    if not isinstance(obj, dict):
        return None
    vals = []
    for k in _LU_KEYS:
        v = obj.get(k)
        if isinstance(v, bool) or not isinstance(v, (int, float)) or not math.isfinite(v):
            return None
        vals.append(float(v))
    return Bounds((vals[0], vals[1], vals[2]), (vals[3], vals[4], vals[5]))


def tag_metadata(obj: Any) -> Optional[RawMetadata]:
    """Tag a decoded metadata object by the bounding-box encoding it uses."""
    if not isinstance(obj, dict):
        return None
    bbox = obj.get("boundingBox")
    if not isinstance(bbox, dict):
        return None
    if "min" in bbox and "max" in bbox:
        return MinMaxBoxMetadata("min_max", obj)
    if all(k in bbox for k in _LU_KEYS):
        return CornerBoxMetadata("corners", obj)
    return None


def normalize_metadata(tagged: Optional[RawMetadata]) -> Optional[PointCloudMetadata]:
    if tagged is None:
        return None
    obj = tagged.raw
    to_bounds = _bounds_from_corners if isinstance(tagged, CornerBoxMetadata) else bounds_from_min_max
    bounds = to_bounds(obj.get("boundingBox"))
    if bounds is None:
        return None
    tight = to_bounds(obj.get("tightBoundingBox")) if obj.get("tightBoundingBox") else None

    points = obj.get("points")
    if isinstance(points, bool) or not isinstance(points, (int, float)):
        points = 0

    label = ""
    for key in ("projection", "coordinateSystem", "crs"):
        v = obj.get(key)
        if isinstance(v, str) and v.strip():
            label = v.strip()
            break

    return PointCloudMetadata(
        bounds=bounds,
        tight_bounds=tight,
        points=int(points),
        projection_label=label,
        encoding=tagged.kind,
    )


def parse_metadata_json(data: Any) -> Optional[PointCloudMetadata]:
    return normalize_metadata(tag_metadata(load_json_object(data)))


def parse_cloud_js(text: Any) -> Optional[PointCloudMetadata]:
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if not isinstance(text, str):
        return None
    obj = load_json_object(text)
    if obj is None:
        m = _JS_ASSIGNMENT_RE.search(text.strip())
        if not m:
            return None
        try:
            obj = json.loads(m.group(1))
        except ValueError:
            return None
    return normalize_metadata(tag_metadata(obj))


__all__ = [
    "PointCloudMetadata",
    "CornerBoxMetadata",
    "MinMaxBoxMetadata",
    "tag_metadata",
    "normalize_metadata",
    "parse_metadata_json",
    "parse_cloud_js",
]
