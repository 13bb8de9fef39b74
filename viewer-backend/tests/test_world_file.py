from __future__ import annotations

import pytest

from extract.world_file import (
    WorldFileRecord,
    center_point,
    parse_world_file,
    raster_size_from_env,
    serialize_world_file,
)

TFW = "0.5\n0.0\n0.0\n-0.5\n3154351.912\n1727628.764\n"


def test_parse_world_file_field_order():
    rec = parse_world_file(TFW)
    assert rec == WorldFileRecord(0.5, 0.0, 0.0, -0.5, 3154351.912, 1727628.764)


def test_world_file_reserializes_to_same_numbers():
    text = "1.25\n0\n0\n-1.25\n-86.158\n39.77\n"
    rec = parse_world_file(text)
    again = parse_world_file(serialize_world_file(rec))
    assert again == rec
    assert [float(v) for v in serialize_world_file(rec).split()] == [1.25, 0.0, 0.0, -1.25, -86.158, 39.77]


def test_parse_world_file_tolerates_crlf_blank_lines_and_bytes():
    rec = parse_world_file(b"0.5\r\n\r\n0\r\n0\r\n-0.5\r\n100\r\n200\r\n")
    assert rec is not None
    assert rec.upper_left_y == 200.0


@pytest.mark.parametrize(
    "text",
    [
        "",
        "0.5\n0\n0\n-0.5\n100\n",  # five lines
        "0.5\n0\n0\n-0.5\n100\nnorth\n",
        "0.5\n0\n0\n-0.5\n100\nnan\n",
        "0.5\n0\n0\n-0.5\ninf\n200\n",
    ],
)
def test_parse_world_file_rejects(text):
    assert parse_world_file(text) is None


def test_parse_world_file_rejects_non_text():
    assert parse_world_file(None) is None
    assert parse_world_file(12) is None


def test_center_point_uses_implied_raster():
    rec = parse_world_file(TFW)
    cx, cy = center_point(rec)
    assert cx == pytest.approx(3154601.912)
    assert cy == pytest.approx(1727378.764)
    assert center_point(rec, 10, 10) == pytest.approx((3154354.412, 1727626.264))


def test_raster_size_env(monkeypatch):
    monkeypatch.setenv("WORLD_FILE_RASTER_SIZE", "2048")
    assert raster_size_from_env() == 2048
    monkeypatch.setenv("WORLD_FILE_RASTER_SIZE", "big")
    assert raster_size_from_env() == 1000
    monkeypatch.setenv("WORLD_FILE_RASTER_SIZE", "-3")
    assert raster_size_from_env() == 1000
