"""Magnitude heuristic that labels a raw (x, y) pair.

Labels:
 - GEOGRAPHIC: plausible decimal degrees (x = longitude, y = latitude)
 - PROJECTED_LIKELY: magnitudes typical of state-plane / county systems
 - INDETERMINATE: everything else, including (0, 0) which means "unset"

One threshold set serves the whole backend. The projected band is a regional
heuristic, tunable through the environment:

  CLASSIFIER_PROJECTED_MIN   lower bound on |x| and |y| (exclusive, default 1e3)
  CLASSIFIER_PROJECTED_MAX   upper bound on |x| and |y| (exclusive, default 1e7)
"""
from __future__ import annotations

import math
import os
from enum import Enum


class CoordinateClass(str, Enum):
    GEOGRAPHIC = "geographic"
    PROJECTED_LIKELY = "projected_likely"
    INDETERMINATE = "indeterminate"


DEFAULT_THRESHOLDS = {
    "PROJECTED_MIN": 1_000.0,
    "PROJECTED_MAX": 10_000_000.0,
    "ZERO_EPSILON": 0.01,
}


def _load_thresholds() -> dict:
    t = dict(DEFAULT_THRESHOLDS)
    for k in ("PROJECTED_MIN", "PROJECTED_MAX"):
        env_key = f"CLASSIFIER_{k}"
        if env_key in os.environ:
            try:
                t[k] = float(os.environ[env_key])
            except ValueError:
                pass
    return t


THRESHOLDS = _load_thresholds()


def classify(x: float, y: float, thresholds: dict | None = None) -> CoordinateClass:
    t = thresholds or THRESHOLDS
    try:
        fx, fy = float(x), float(y)
    except (TypeError, ValueError):
        return CoordinateClass.INDETERMINATE
    if not (math.isfinite(fx) and math.isfinite(fy)):
        return CoordinateClass.INDETERMINATE

    ax, ay = abs(fx), abs(fy)
    eps = t["ZERO_EPSILON"]
    if ax <= 180.0 and ay <= 90.0 and ax > eps and ay > eps:
        return CoordinateClass.GEOGRAPHIC

    lo, hi = t["PROJECTED_MIN"], t["PROJECTED_MAX"]
    if lo < ax < hi and lo < ay < hi:
        return CoordinateClass.PROJECTED_LIKELY

    return CoordinateClass.INDETERMINATE


__all__ = ["CoordinateClass", "classify", "THRESHOLDS", "DEFAULT_THRESHOLDS"]
