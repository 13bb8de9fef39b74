from __future__ import annotations

import math
import os
from dataclasses import astuple, dataclass
from typing import Optional, Tuple

# Field order as written in .tfw/.jgw sidecars
FIELDS = ("pixel_size_x", "rotation_y", "rotation_x", "pixel_size_y", "upper_left_x", "upper_left_y")

DEFAULT_RASTER_SIZE = 1000


@dataclass(frozen=True)
class WorldFileRecord:
    pixel_size_x: float
    rotation_y: float
    rotation_x: float
    pixel_size_y: float  # typically negative
    upper_left_x: float
    upper_left_y: float


def parse_world_file(text: object) -> Optional[WorldFileRecord]:
    """Parse a six-line world file; None when the content is not one."""
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if not isinstance(text, str):
        return None

    lines = [ln.strip() for ln in text.splitlines()]
    lines = [ln for ln in lines if ln]
    if len(lines) < 6:
        return None

    values = []
    for ln in lines:
        try:
            v = float(ln)
        except ValueError:
            return None
        if not math.isfinite(v):
            return None
        values.append(v)
    return WorldFileRecord(*values[:6])


def serialize_world_file(record: WorldFileRecord) -> str:
    return "\n".join(repr(v) for v in astuple(record)) + "\n"


def raster_size_from_env() -> int:
    try:
        size = int(os.getenv("WORLD_FILE_RASTER_SIZE", str(DEFAULT_RASTER_SIZE)))
    except ValueError:
        return DEFAULT_RASTER_SIZE
    return size if size > 0 else DEFAULT_RASTER_SIZE


def center_point(
    record: WorldFileRecord,
    width: int = DEFAULT_RASTER_SIZE,
    height: int = DEFAULT_RASTER_SIZE,
) -> Optional[Tuple[float, float]]:
    """Projected centre of a width x height raster; rotation terms ignored."""
    cx = record.upper_left_x + (width / 2) * record.pixel_size_x
    cy = record.upper_left_y + (height / 2) * record.pixel_size_y
    if not (math.isfinite(cx) and math.isfinite(cy)):
        return None
    return cx, cy


__all__ = ["WorldFileRecord", "parse_world_file", "serialize_world_file", "center_point", "raster_size_from_env"]
