from __future__ import annotations

import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from app.crs import epsg_catalog
from app.crs.search import RemoteCRSSearch
from app.errors import RemoteServiceFailure
from app.schemas import CRSEntry, CRSOptions

logger = logging.getLogger(__name__)

DEFAULT_REGION_TERMS = ("indiana", "ingcs")


def _region_terms_from_env() -> Tuple[str, ...]:
    raw = os.getenv("CRS_REGION_TERMS")
    if not raw:
        return DEFAULT_REGION_TERMS
    terms = tuple(t.strip().lower() for t in raw.split(",") if t.strip())
    return terms or DEFAULT_REGION_TERMS


def sort_entries(entries: Iterable[CRSEntry]) -> List[CRSEntry]:
    """Recommended first, then alphabetical by name."""
    return sorted(entries, key=lambda e: (not e.recommended, e.name.lower(), e.code))


class CatalogCache:
    """Process-lifetime catalog state owned by one CRSCatalogService.

    The static catalog is installed as a whole by `populate`; replacing it swaps
    one reference, so a reader sees either the old or the new set. Entries
    learned from remote search are added by `remember` and never replaced.
    """

    def __init__(self):
        self._static: Optional[Dict[str, Tuple[CRSEntry, ...]]] = None
        self._learned: Dict[str, CRSEntry] = {}

    @property
    def populated(self) -> bool:
        return self._static is not None

    def populate(self, horizontal: Iterable[CRSEntry], vertical: Iterable[CRSEntry], geoid: Iterable[CRSEntry]) -> None:
        self._static = {
            "horizontal": tuple(horizontal),
            "vertical": tuple(vertical),
            "geoid": tuple(geoid),
        }

    def static(self, kind: str) -> Tuple[CRSEntry, ...]:
        if self._static is None:
            return ()
        return self._static.get(kind, ())

    def remember(self, entries: Iterable[CRSEntry]) -> int:
        learned = dict(self._learned)
        added = 0
        for e in entries:
            if e.code not in learned:
                learned[e.code] = e
                added += 1
        self._learned = learned
        return added

    def learned(self) -> Tuple[CRSEntry, ...]:
        return tuple(self._learned.values())


def _to_entries(rows: List[dict], kind: str) -> List[CRSEntry]:
    return [CRSEntry(type=kind, **row) for row in rows]


class CRSCatalogService:
    def __init__(
        self,
        cache: CatalogCache | None = None,
        remote: RemoteCRSSearch | None = None,
        json_cache: Any = None,
        region_terms: Iterable[str] | None = None,
    ):
        self.cache = cache or CatalogCache()
        self.remote = remote
        self.json_cache = json_cache
        self.region_terms = tuple(t.lower() for t in region_terms) if region_terms else _region_terms_from_env()

    def _ensure_loaded(self) -> None:
        if self.cache.populated:
            return
        self.cache.populate(
            _to_entries(epsg_catalog.HORIZONTAL, "horizontal"),
            _to_entries(epsg_catalog.VERTICAL, "vertical"),
            _to_entries(epsg_catalog.GEOID, "geoid"),
        )
        logger.debug("CRS catalog populated (%d horizontal)", len(self.cache.static("horizontal")))

    def get_all(self) -> CRSOptions:
        self._ensure_loaded()
        return CRSOptions(
            horizontal=sort_entries(self.cache.static("horizontal")),
            vertical=list(self.cache.static("vertical")),
            geoid=list(self.cache.static("geoid")),
        )

    @staticmethod
    def is_recommended(authority: str, code: int | str) -> bool:
        return epsg_catalog.is_recommended(authority, code)

    def search_static(self, query: str) -> List[CRSEntry]:
        self._ensure_loaded()
        q = query.strip().lower()
        pool = list(self.cache.static("horizontal")) + [
            e for e in self.cache.learned()
            if e.code not in {s.code for s in self.cache.static("horizontal")}
        ]
        hits = [
            e for e in pool
            if q in e.code.lower() or q in e.name.lower() or (e.description and q in e.description.lower())
        ]
        return sort_entries(hits)

    async def search(self, query: str) -> List[CRSEntry]:
        """Static catalog first; remote search only when it yields nothing. Never raises."""
        hits = self.search_static(query)
        if hits or self.remote is None or not query.strip():
            return hits

        key = f"crs_search:{' '.join(query.lower().split())}"
        if self.json_cache is not None:
            cached = await self.json_cache.get_json(key)
            if isinstance(cached, list):
                try:
                    entries = [CRSEntry(**row) for row in cached]
                except (TypeError, ValidationError):
                    logger.info("Ignoring unusable cached search result for %r", query)
                else:
                    self.cache.remember(entries)
                    return sort_entries(entries)

        try:
            rows = await self.remote.search(query)
        except RemoteServiceFailure as e:
            logger.warning("Remote CRS search failed for %r: %s", query, e)
            return []

        entries = self._map_remote(rows)
        self.cache.remember(entries)
        if self.json_cache is not None and entries:
            await self.json_cache.add_json(key, [e.model_dump() for e in entries])
        return sort_entries(entries)

    def _in_region(self, row: dict) -> bool:
        haystack = f"{row.get('area') or ''} {row.get('name') or ''}".lower()
        return any(t in haystack for t in self.region_terms)

    def _map_remote(self, rows: List[dict]) -> List[CRSEntry]:
        out: List[CRSEntry] = []
        for r in rows:
            ident = r.get("id")
            name = r.get("name")
            if not isinstance(ident, dict) or not name or r.get("deprecated"):
                continue
            if not self._in_region(r):
                continue
            authority, code = ident.get("authority"), ident.get("code")
            if not authority or code is None:
                continue
            bbox = r.get("bbox")
            try:
                out.append(
                    CRSEntry(
                        code=f"{authority}:{code}",
                        name=str(name),
                        type="horizontal",
                        recommended=self.is_recommended(authority, code),
                        description=r.get("area") or str(name),
                        bounding_box=bbox if isinstance(bbox, list) and len(bbox) == 4 else None,
                    )
                )
            except ValidationError:
                logger.debug("Skipping malformed search row %r", r)
        return out


__all__ = ["CRSCatalogService", "CatalogCache", "sort_entries"]
