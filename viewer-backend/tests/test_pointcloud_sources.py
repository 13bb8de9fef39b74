from __future__ import annotations

import json

import pytest

from extract.manifest import parse_tile_manifest
from extract.pointcloud_metadata import (
    CornerBoxMetadata,
    MinMaxBoxMetadata,
    normalize_metadata,
    parse_cloud_js,
    parse_metadata_json,
    tag_metadata,
)

MANIFEST = {
    "bounds": {"min": [3154000.0, 1727000.0, 700.0], "max": [3155203.824, 1727757.528, 900.0]},
    "projection": "epsg:2965",
    "sources": [{"name": "a.las", "points": 1200}, {"name": "b.las", "points": 800}, {"name": "c.las"}],
}


def test_parse_tile_manifest():
    m = parse_tile_manifest(json.dumps(MANIFEST))
    assert m.projection_label == "epsg:2965"
    assert m.total_points == 2000
    assert m.bounds.center() == pytest.approx((3154601.912, 1727378.764))


def test_tile_manifest_without_projection_or_sources():
    m = parse_tile_manifest({"bounds": MANIFEST["bounds"]})
    assert m.projection_label == ""
    assert m.total_points == 0


@pytest.mark.parametrize(
    "data",
    [
        "not json",
        "[1, 2, 3]",
        {"projection": "EPSG:2965"},
        {"bounds": {"min": [1, 2], "max": [3, 4, 5]}},
        {"bounds": {"min": ["a", 2, 3], "max": [3, 4, 5]}},
        {"bounds": {"min": [True, 2, 3], "max": [3, 4, 5]}},
    ],
)
def test_tile_manifest_rejects_missing_or_bad_bounds(data):
    assert parse_tile_manifest(data) is None


METADATA_JSON = {
    "points": 52000,
    "projection": "NAD83 Indiana East 2965",
    "boundingBox": {"lx": 100.0, "ly": 200.0, "lz": 0.0, "ux": 300.0, "uy": 600.0, "uz": 10.0},
}

CLOUD_JS_BODY = {
    "version": "1.7",
    "points": 123,
    "boundingBox": {"min": [0, 0, 0], "max": [1000, 1000, 50]},
    "tightBoundingBox": {"min": [10, 20, 0], "max": [30, 60, 5]},
}


def test_tag_metadata_by_encoding():
    assert isinstance(tag_metadata(METADATA_JSON), CornerBoxMetadata)
    assert isinstance(tag_metadata(CLOUD_JS_BODY), MinMaxBoxMetadata)
    assert tag_metadata({"boundingBox": {"lx": 1}}) is None
    assert tag_metadata({"points": 3}) is None


def test_metadata_json_corner_encoding():
    meta = parse_metadata_json(json.dumps(METADATA_JSON))
    assert meta.encoding == "corners"
    assert meta.points == 52000
    assert meta.projection_label == "NAD83 Indiana East 2965"
    assert meta.effective_bounds.center() == (200.0, 400.0)


def test_both_encodings_normalize_to_same_shape():
    a = normalize_metadata(tag_metadata({"boundingBox": {"lx": 0, "ly": 0, "lz": 0, "ux": 2, "uy": 4, "uz": 1}}))
    b = normalize_metadata(tag_metadata({"boundingBox": {"min": [0, 0, 0], "max": [2, 4, 1]}}))
    assert a.bounds == b.bounds
    assert a.encoding != b.encoding


def test_cloud_js_prefers_tight_bounding_box():
    meta = parse_cloud_js(json.dumps(CLOUD_JS_BODY))
    assert meta.encoding == "min_max"
    assert meta.effective_bounds.center() == (20.0, 40.0)
    assert meta.bounds.center() == (500.0, 500.0)


def test_cloud_js_javascript_assignment():
    text = "var cloud = " + json.dumps(CLOUD_JS_BODY, indent=2) + ";\n"
    meta = parse_cloud_js(text)
    assert meta is not None
    assert meta.points == 123


def test_cloud_js_coordinate_system_label():
    body = dict(CLOUD_JS_BODY, coordinateSystem="EPSG:6459")
    assert parse_cloud_js(json.dumps(body)).projection_label == "EPSG:6459"


@pytest.mark.parametrize("text", ["", "cloud = {oops};", "var x = 5;", json.dumps({"boundingBox": {"min": [0, 0]}})])
def test_cloud_js_rejects(text):
    assert parse_cloud_js(text) is None
