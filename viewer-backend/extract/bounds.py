from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Optional, Tuple

Triple = Tuple[float, float, float]


@dataclass(frozen=True)
class Bounds:
    min: Triple
    max: Triple

    def center(self) -> Tuple[float, float]:
        return (self.min[0] + self.max[0]) / 2, (self.min[1] + self.max[1]) / 2


def as_triple(v: Any) -> Optional[Triple]:
    if not isinstance(v, (list, tuple)) or len(v) < 3:
        return None
    out = []
    for x in v[:3]:
        if isinstance(x, bool) or not isinstance(x, (int, float)) or not math.isfinite(x):
            return None
        out.append(float(x))
    return out[0], out[1], out[2]


def bounds_from_min_max(obj: Any) -> Optional[Bounds]:
    if not isinstance(obj, dict):
        return None
    lo, hi = as_triple(obj.get("min")), as_triple(obj.get("max"))
    if lo is None or hi is None:
        return None
    return Bounds(lo, hi)


def load_json_object(data: Any) -> Optional[dict]:
    """Accept an already-decoded dict, or JSON text/bytes holding an object."""
    if isinstance(data, dict):
        return data
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if not isinstance(data, str):
        return None
    try:
        obj = json.loads(data)
    except ValueError:
        return None
    return obj if isinstance(obj, dict) else None
