from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Query, Request

from app.crs.catalog import CRSCatalogService
from app.crs.epsg_catalog import location_for_crs
from app.schemas import CRSEntry, CRSOptions, RegionalLocation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/crs", tags=["crs"])


def _catalog(request: Request) -> CRSCatalogService:
    svc = getattr(request.app.state, "catalog", None)
    if svc is None:
        svc = CRSCatalogService()
        request.app.state.catalog = svc
    return svc


@router.get("/options", response_model=CRSOptions)
async def crs_options(request: Request) -> CRSOptions:
    return _catalog(request).get_all()


@router.get("/search", response_model=List[CRSEntry])
async def crs_search(request: Request, query: str = Query(..., min_length=1, max_length=200)) -> List[CRSEntry]:
    """Static catalog matches first; the remote search is consulted only when none match."""
    return await _catalog(request).search(query)


@router.get("/location/{code}", response_model=RegionalLocation)
async def crs_location(code: str) -> RegionalLocation:
    found = location_for_crs(code)
    if found is None:
        raise HTTPException(status_code=404, detail=f"No known location for {code}")
    lat, lon, address = found
    return RegionalLocation(latitude=lat, longitude=lon, address=address)


__all__ = ["router"]
