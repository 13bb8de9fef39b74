from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Path, Request
from pydantic import BaseModel, ConfigDict, field_validator

from app.crs.anchors import ReferencePointInterpolator
from app.crs.classifier import CoordinateClass, classify
from app.resolver import SourceResolutionOrchestrator
from app.schemas import GeographicPoint, ResolutionResult
from extract.providers import build_source_provider_from_env

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/location", tags=["location"])

JOB_NUMBER_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9._-]*$"


class PointRequest(BaseModel):
    model_config = ConfigDict(json_schema_extra={"example": {"x": 3154601.9, "y": 1727378.8}})

    x: float
    y: float

    @field_validator("x", "y", mode="before")
    @classmethod
    def _no_bools(cls, v):
        if isinstance(v, bool):
            raise ValueError("coordinate must be a number")
        return v


class ClassifyResponse(BaseModel):
    label: CoordinateClass


def _orchestrator(request: Request) -> SourceResolutionOrchestrator:
    orch = getattr(request.app.state, "resolver", None)
    if orch is None:
        # App built without create_app (e.g. mounted elsewhere): build lazily
        orch = SourceResolutionOrchestrator(build_source_provider_from_env())
        request.app.state.resolver = orch
    return orch


def _interpolator(request: Request) -> ReferencePointInterpolator:
    orch = _orchestrator(request)
    return orch.converter.interpolator


@router.get("/{job_number}", response_model=ResolutionResult)
async def resolve_location(
    request: Request,
    job_number: str = Path(..., min_length=1, max_length=64, pattern=JOB_NUMBER_PATTERN),
) -> ResolutionResult:
    """Project identity, best-effort location and CRS for a job.

    Always 200: a job with no usable evidence comes back with `location` and
    `crs` null and the attempt trail in `diagnostics`.
    """
    return await _orchestrator(request).resolve(job_number)


@router.post("/classify", response_model=ClassifyResponse)
async def classify_point(payload: PointRequest) -> ClassifyResponse:
    return ClassifyResponse(label=classify(payload.x, payload.y))


@router.post("/interpolate", response_model=Optional[GeographicPoint])
async def interpolate_point(request: Request, payload: PointRequest) -> Optional[GeographicPoint]:
    pt = _interpolator(request).interpolate(payload.x, payload.y)
    if pt is None:
        logger.debug("No anchor close enough to (%s, %s)", payload.x, payload.y)
    return pt


__all__ = ["router", "PointRequest", "ClassifyResponse"]
