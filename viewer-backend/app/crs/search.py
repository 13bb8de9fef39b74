"""Remote CRS search (MapTiler coordinates API).

Env:
  MAPTILER_API_KEY   required; without it no client is built
  CRS_SEARCH_URL     search endpoint root (default MapTiler)
"""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, List
from urllib.parse import quote

import httpx

from app.errors import RemoteServiceFailure

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_URL = "https://api.maptiler.com/coordinates/search"


class RemoteCRSSearch:
    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout: float = 6.0,
        limit: int = 50,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = (base_url or os.getenv("CRS_SEARCH_URL") or DEFAULT_SEARCH_URL).rstrip("/")
        self.timeout = timeout
        self.limit = limit
        self._transport = transport

    async def search(self, query: str) -> List[Dict[str, Any]]:
        """Raw result dicts: {id: {authority, code}, name, area?, unit?, deprecated, ...}."""
        clean = " ".join(query.split())
        if not clean:
            return []
        url = f"{self.base_url}/{quote(clean)}.json"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(
                    url,
                    params={"key": self.api_key, "limit": self.limit},
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            raise RemoteServiceFailure(f"CRS search unreachable: {e}") from e
        if resp.status_code != 200:
            raise RemoteServiceFailure(f"CRS search responded {resp.status_code}")
        try:
            payload = resp.json()
        except ValueError as e:
            raise RemoteServiceFailure("CRS search returned non-JSON body") from e
        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list):
            raise RemoteServiceFailure("CRS search returned no result list")
        return [r for r in results if isinstance(r, dict)]


def build_search_client_from_env() -> RemoteCRSSearch | None:
    key = os.getenv("MAPTILER_API_KEY")
    if not key:
        return None
    return RemoteCRSSearch(api_key=key)


__all__ = ["RemoteCRSSearch", "build_search_client_from_env"]
