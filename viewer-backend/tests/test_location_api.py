from fastapi.testclient import TestClient

from app.main import create_app
from tests.test_resolver import GEOGRAPHIC_TFW, InMemoryProvider, PRJ_2965

provider = InMemoryProvider({
    "J1": {"J1.tfw": GEOGRAPHIC_TFW},
    "J2": {"J2.prj": PRJ_2965},
})
client = TestClient(create_app(provider=provider, projection=None, search=None))


def test_health():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_resolve_world_file_job():
    resp = client.get("/location/J1")
    assert resp.status_code == 200
    data = resp.json()
    assert data["project_name"] == "Project J1"
    assert data["location"]["source"] == "world_file"
    assert data["location"]["confidence"] == "high"
    assert abs(data["location"]["latitude"] - 39.7684) < 1e-9
    assert data["diagnostics"] == [{"source": "world_file", "status": "resolved", "detail": "direct/high"}]
    assert "X-Request-ID" in resp.headers


def test_resolve_crs_only_job():
    data = client.get("/location/J2").json()
    assert data["location"] is None
    assert data["crs"]["horizontal"] == "EPSG:2965"


def test_unknown_job_is_still_200():
    resp = client.get("/location/NOPE-42")
    assert resp.status_code == 200
    data = resp.json()
    assert data["location"] is None and data["crs"] is None
    assert {d["status"] for d in data["diagnostics"]} == {"absent"}


def test_invalid_job_number_is_rejected():
    assert client.get("/location/..bad").status_code == 422


def test_request_id_is_echoed():
    resp = client.get("/health", headers={"X-Request-ID": "abc123"})
    assert resp.headers["X-Request-ID"] == "abc123"


def test_classify_endpoint():
    assert client.post("/location/classify", json={"x": -86.1, "y": 39.7}).json() == {"label": "geographic"}
    assert client.post("/location/classify", json={"x": 3154601.9, "y": 1727378.7}).json() == {"label": "projected_likely"}
    assert client.post("/location/classify", json={"x": 0, "y": 0}).json() == {"label": "indeterminate"}
    assert client.post("/location/classify", json={"x": True, "y": 1}).status_code == 422


def test_interpolate_endpoint():
    data = client.post("/location/interpolate", json={"x": 3154601.912, "y": 1727378.764}).json()
    assert abs(data["latitude"] - 39.7684) < 1e-9
    assert client.post("/location/interpolate", json={"x": 500000, "y": 6400000}).json() is None


def test_crs_options():
    data = client.get("/crs/options").json()
    assert set(data) == {"horizontal", "vertical", "geoid"}
    assert data["horizontal"][0]["recommended"] is True


def test_crs_search():
    resp = client.get("/crs/search", params={"query": "6459"})
    assert resp.status_code == 200
    assert [e["code"] for e in resp.json()] == ["EPSG:6459"]
    assert client.get("/crs/search").status_code == 422


def test_crs_location():
    data = client.get("/crs/location/EPSG:3613").json()
    assert data == {"latitude": 37.9747, "longitude": -87.5558, "address": "Vanderburgh County, IN"}
    assert client.get("/crs/location/Lambert").status_code == 404


def test_interpolate_endpoint_accepts_utm_metres():
    data = client.post("/location/interpolate", json={"x": 570000, "y": 4400000}).json()
    assert 39.72 < data["latitude"] < 39.77
