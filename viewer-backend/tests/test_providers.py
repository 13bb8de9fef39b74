from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest

from app.cache import RedisCache, _NoopCache, build_cache_from_env
from app.errors import SourceAbsent
from extract.providers import DirectorySourceProvider, HttpSourceProvider, build_source_provider_from_env


def _http(handler) -> HttpSourceProvider:
    return HttpSourceProvider(base_url="http://pc.test/pointclouds/", timeout=1, transport=httpx.MockTransport(handler))


def test_http_provider_fetches_job_file():
    def handler(request):
        assert request.url.path == "/pointclouds/J7/sources.json"
        return httpx.Response(200, text='{"bounds": {}}')

    assert asyncio.run(_http(handler).fetch_text("J7", "sources.json")) == '{"bounds": {}}'


@pytest.mark.parametrize("status", [404, 500])
def test_http_provider_non_200_is_absent(status):
    with pytest.raises(SourceAbsent):
        asyncio.run(_http(lambda request: httpx.Response(status)).fetch_text("J7", "cloud.js"))


def test_http_provider_timeout_is_absent():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(SourceAbsent):
        asyncio.run(_http(handler).fetch_text("J7", "cloud.js"))


@pytest.mark.parametrize("job,filename", [("../etc", "passwd"), ("J7", "../x"), ("J7", "a/b"), ("", "cloud.js"), ("J..7", "x")])
def test_unsafe_names_are_refused(job, filename):
    def handler(request):
        raise AssertionError("must not be fetched")

    with pytest.raises(SourceAbsent):
        asyncio.run(_http(handler).fetch_text(job, filename))


def test_directory_provider(tmp_path):
    (tmp_path / "J7").mkdir()
    (tmp_path / "J7" / "J7.tfw").write_text("1\n0\n0\n-1\n10\n20\n")
    provider = DirectorySourceProvider(tmp_path)
    assert asyncio.run(provider.fetch_text("J7", "J7.tfw")).startswith("1\n")
    with pytest.raises(SourceAbsent):
        asyncio.run(provider.fetch_text("J7", "J7.prj"))
    with pytest.raises(SourceAbsent):
        asyncio.run(provider.fetch_text("J8", "J8.tfw"))


def test_directory_provider_io_error_is_absent(monkeypatch, tmp_path):
    (tmp_path / "J7").mkdir()
    (tmp_path / "J7" / "cloud.js").write_text("{}")

    def broken(self, *args, **kwargs):
        raise OSError(5, "Input/output error")

    monkeypatch.setattr(Path, "read_text", broken)
    with pytest.raises(SourceAbsent):
        asyncio.run(DirectorySourceProvider(tmp_path).fetch_text("J7", "cloud.js"))


def test_build_source_provider_prefers_directory(monkeypatch, tmp_path):
    monkeypatch.setenv("POINTCLOUD_DIR", str(tmp_path))
    assert isinstance(build_source_provider_from_env(), DirectorySourceProvider)
    monkeypatch.delenv("POINTCLOUD_DIR")
    monkeypatch.setenv("POINTCLOUD_BASE_URL", "http://elsewhere/pc/")
    p = build_source_provider_from_env()
    assert isinstance(p, HttpSourceProvider)
    assert p.base_url == "http://elsewhere/pc"


class FakeRedis:
    def __init__(self):
        self.store = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None, nx=False):
        if nx and key in self.store:
            return None
        self.store[key] = value.encode() if isinstance(value, str) else value
        return True


def test_redis_cache_add_is_additive():
    fake = FakeRedis()
    cache = RedisCache(fake, prefix="location")

    async def run():
        assert await cache.add_json("crs_search:lake", [{"code": "EPSG:3576"}])
        assert not await cache.add_json("crs_search:lake", [])
        return await cache.get_json("crs_search:lake")

    assert asyncio.run(run()) == [{"code": "EPSG:3576"}]
    assert "location:crs_search:lake" in fake.store


def test_redis_cache_ignores_corrupt_entry():
    fake = FakeRedis()
    fake.store["location:k"] = b"{not json"
    assert asyncio.run(RedisCache(fake).get_json("k")) is None


def test_cache_builder_without_redis_url(monkeypatch):
    monkeypatch.delenv("REDIS_URL", raising=False)
    assert isinstance(asyncio.run(build_cache_from_env()), _NoopCache)
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
    monkeypatch.setenv("CACHE_DISABLE", "1")
    assert isinstance(asyncio.run(build_cache_from_env()), _NoopCache)
