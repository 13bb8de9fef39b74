from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from extract.bounds import Bounds, bounds_from_min_max, load_json_object


@dataclass(frozen=True)
class TileManifest:
    bounds: Bounds
    projection_label: str
    total_points: int


def parse_tile_manifest(data: Any) -> Optional[TileManifest]:
    """Parse sources.json: {bounds: {min, max}, projection, sources: [{points}]}.

    Missing or non-numeric bounds yield None; a missing projection or source
    list does not.
    """
    obj = load_json_object(data)
    if obj is None:
        return None
    bounds = bounds_from_min_max(obj.get("bounds"))
    if bounds is None:
        return None

    total = 0
    sources = obj.get("sources")
    if isinstance(sources, list):
        for s in sources:
            pts = s.get("points") if isinstance(s, dict) else None
            if isinstance(pts, (int, float)) and not isinstance(pts, bool):
                total += int(pts)

    label = obj.get("projection")
    return TileManifest(
        bounds=bounds,
        projection_label=label.strip() if isinstance(label, str) else "",
        total_points=total,
    )


__all__ = ["TileManifest", "parse_tile_manifest"]
