from __future__ import annotations

import math

import pytest

from app.crs.anchors import Anchor, ReferencePointInterpolator, utm_to_geographic
from app.crs.classifier import DEFAULT_THRESHOLDS, CoordinateClass, classify

G, P, I = CoordinateClass.GEOGRAPHIC, CoordinateClass.PROJECTED_LIKELY, CoordinateClass.INDETERMINATE


@pytest.mark.parametrize(
    "x,y,expected",
    [
        (-86.1581, 39.7684, G),
        (180.0, -90.0, G),
        (3154601.912, 1727378.764, P),
        (500000.0, 4400000.0, P),
        (0.0, 0.0, I),
        (0.005, 45.0, I),  # near-zero component is not a real longitude
        (-86.1, 0.0, I),
        (250.0, 40.0, I),
        (500.0, 500.0, I),
        (2e7, 2e7, I),
        (3154601.9, 10.0, I),
        (math.nan, 1.0, I),
        (math.inf, 5000.0, I),
    ],
)
def test_classify_labels(x, y, expected):
    assert classify(x, y) is expected


def test_classify_origin_is_never_geographic():
    assert classify(0, 0) is not G
    assert classify(0.01, 0.01) is not G


def test_classify_accepts_thresholds():
    t = dict(DEFAULT_THRESHOLDS, PROJECTED_MIN=100.0)
    assert classify(500.0, 500.0, t) is P
    assert classify(500.0, 500.0) is I


def test_classify_non_numeric_is_indeterminate():
    assert classify("abc", 1) is I
    assert classify(None, None) is I


MARION = (3154601.912, 1727378.764)


def test_interpolate_at_anchor_returns_anchor():
    pt = ReferencePointInterpolator().interpolate(*MARION)
    assert pt.latitude == pytest.approx(39.7684)
    assert pt.longitude == pytest.approx(-86.1581)


def test_interpolate_offset_from_nearest_anchor():
    interp = ReferencePointInterpolator()
    pt = interp.interpolate(MARION[0] + 10000.0, MARION[1] + 3640.0)
    assert pt.latitude == pytest.approx(39.7684 + 0.01)
    expected_lon = -86.1581 + 10000.0 / (288200.0 * math.cos(math.radians(39.7684)))
    assert pt.longitude == pytest.approx(expected_lon)


def test_interpolate_is_deterministic():
    interp = ReferencePointInterpolator()
    a = interp.interpolate(3456789.0, 1876543.0)
    b = interp.interpolate(3456789.0, 1876543.0)
    assert a is not None
    assert (a.latitude, a.longitude) == (b.latitude, b.longitude)


@pytest.mark.parametrize(
    "x,y",
    [
        (500000.0, 6400000.0),  # UTM metres far north of the region
        (260000.0, 4250000.0),  # UTM zone 16N but west of the state line
        (-3154601.9, -1727378.7),
        (9_000_000.0, 9_000_000.0),
        (math.nan, 1727378.764),
    ],
)
def test_interpolate_rejects_outside_region(x, y):
    assert ReferencePointInterpolator().interpolate(x, y) is None


def test_interpolate_rejects_when_no_anchor_close_enough():
    interp = ReferencePointInterpolator(max_distance=1000.0)
    assert interp.interpolate(MARION[0] + 5000.0, MARION[1]) is None
    assert interp.interpolate(*MARION) is not None


def test_nearest_ties_keep_first_anchor():
    anchors = [Anchor(0.0, 0.0, 40.0, -86.0, "a"), Anchor(2.0, 0.0, 40.0, -86.0, "b")]
    interp = ReferencePointInterpolator(anchors, projected_envelope=None)
    anchor, dist = interp.nearest(1.0, 0.0)
    assert anchor.label == "a"
    assert dist == 1.0


def test_interpolator_requires_anchors():
    with pytest.raises(ValueError):
        ReferencePointInterpolator(anchors=[])


def test_utm_zone_16n_inverse():
    # central meridian maps straight back to -87
    lat, lon = utm_to_geographic(500000.0, 4400000.0)
    assert lon == pytest.approx(-87.0, abs=1e-9)
    assert 39.70 < lat < 39.77
    lat, lon = utm_to_geographic(570000.0, 4400000.0)
    assert 39.72 < lat < 39.77
    assert -86.21 < lon < -86.16


def test_interpolate_falls_back_to_utm_outside_state_plane_window():
    pt = ReferencePointInterpolator().interpolate(570000.0, 4400000.0)
    assert pt is not None
    assert 39.72 < pt.latitude < 39.77
    assert -86.21 < pt.longitude < -86.16
    assert ReferencePointInterpolator(utm_envelope=None).interpolate(570000.0, 4400000.0) is None
