from __future__ import annotations

import pytest

from extract.proj_file import central_point, parse_projection_description, to_crs_declaration

EPSG_WKT = (
    'PROJCS["NAD83 / Indiana East (ftUS)",GEOGCS["NAD83",DATUM["North_American_Datum_1983",'
    'SPHEROID["GRS 1980",6378137,298.257222101,AUTHORITY["EPSG","7019"]],AUTHORITY["EPSG","6269"]],'
    'PRIMEM["Greenwich",0,AUTHORITY["EPSG","8901"]],UNIT["degree",0.01745329251994328,AUTHORITY["EPSG","9122"]],'
    'AUTHORITY["EPSG","4269"]],UNIT["US survey foot",0.3048006096012192,AUTHORITY["EPSG","9003"]],'
    'PROJECTION["Transverse_Mercator"],PARAMETER["latitude_of_origin",37.5],'
    'PARAMETER["central_meridian",-85.66666666666667],PARAMETER["scale_factor",0.999966667],'
    'PARAMETER["false_easting",328083.333],PARAMETER["false_northing",820208.333],AUTHORITY["EPSG","2965"]]'
)

ESRI_WKT = """PROJCS["NAD_1983_StatePlane_Indiana_East_FIPS_1301_Feet",
  GEOGCS["GCS_North_American_1983",DATUM["D_North_American_1983",SPHEROID["GRS_1980",6378137.0,298.257222101]],
  PRIMEM["Greenwich",0.0],UNIT["Degree",0.0174532925199433]],
  PROJECTION["Transverse_Mercator"],
  PARAMETER["False_Easting",328083.3333333333],PARAMETER["False_Northing",820208.3333333333],
  PARAMETER["Central_Meridian",-85.66666666666667],PARAMETER["Scale_Factor",0.9999666666666667],
  PARAMETER["Latitude_Of_Origin",37.5],UNIT["Foot_US",0.3048006096012192]]"""


def test_parse_epsg_style_wkt():
    desc = parse_projection_description(EPSG_WKT)
    assert desc.projcs == "NAD83 / Indiana East (ftUS)"
    assert desc.geogcs == "NAD83"
    assert desc.projection == "Transverse_Mercator"
    # outermost UNIT / AUTHORITY, not the nested GEOGCS ones
    assert desc.unit == "US survey foot"
    assert desc.authority == "EPSG:2965"
    assert desc.authority_number == "2965"
    assert desc.parameters["false_easting"] == pytest.approx(328083.333)


def test_central_point_is_case_insensitive():
    esri = parse_projection_description(ESRI_WKT)
    assert central_point(esri) == pytest.approx((-85.66666666666667, 37.5))
    assert central_point(parse_projection_description(EPSG_WKT)) == pytest.approx((-85.66666666666667, 37.5))


def test_crs_declaration_epsg_wkt():
    crs = to_crs_declaration(parse_projection_description(EPSG_WKT))
    assert crs.horizontal == "EPSG:2965"
    assert crs.vertical == "EPSG:6360"
    assert crs.geoid_model is None


def test_crs_declaration_falls_back_to_projcs_name():
    crs = to_crs_declaration(parse_projection_description(ESRI_WKT))
    assert crs.horizontal == "NAD_1983_StatePlane_Indiana_East_FIPS_1301_Feet"
    assert crs.vertical == "EPSG:6360"


def test_vertical_and_geoid_inference():
    nad27 = 'PROJCS["x",GEOGCS["NAD27",DATUM["North_American_Datum_1927"]],UNIT["Foot_US",0.3048]]'
    assert to_crs_declaration(parse_projection_description(nad27)).vertical == "EPSG:5702"

    metres = 'PROJCS["y",GEOGCS["NAD83(2011)",DATUM["NAD83_National_Spatial_Reference_System_2011"]],UNIT["metre",1]]'
    crs = to_crs_declaration(parse_projection_description(metres))
    assert crs.vertical is None
    assert crs.geoid_model == "GEOID12B"

    harn = 'PROJCS["z",GEOGCS["GCS_NAD83_HARN",DATUM["D_NAD_1983_HARN"]],UNIT["Foot_US",0.3048]]'
    crs = to_crs_declaration(parse_projection_description(harn))
    assert crs.geoid_model == "GEOID09"
    assert crs.vertical == "EPSG:6360"


def test_unparsable_parameter_is_dropped():
    desc = parse_projection_description('PROJCS["p",PARAMETER["central_meridian",abc],PARAMETER["latitude_of_origin",40]]')
    assert "central_meridian" not in desc.parameters
    assert central_point(desc) is None


def test_empty_text_gives_no_crs():
    desc = parse_projection_description("")
    assert desc is not None
    assert to_crs_declaration(desc) is None
    assert parse_projection_description(None) is None
