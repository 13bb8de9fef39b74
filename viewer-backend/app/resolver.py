"""Location/CRS resolution for a job number.

An ordered list of strategies is tried until one yields a location:

  1. world file (.tfw/.wld)            -> confidence high
  2. projection description (.prj)     -> medium
  3. tile manifest (sources.json)      -> medium, low when passed through raw
  4. point-cloud metadata              -> medium, low when passed through raw
     (metadata.json, then cloud.js)

The first CRS declaration seen in that order is kept and offered to later
strategies as the conversion CRS. When nothing resolves the result is a
placeholder carrying only the job number and a display name.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, Union

from app.crs.anchors import ReferencePointInterpolator
from app.crs.classifier import CoordinateClass, classify
from app.crs.epsg_catalog import DEFAULT_GEOID, DEFAULT_HORIZONTAL, DEFAULT_VERTICAL, canonical_code
from app.crs.projection import ExternalProjectionClient, normalize_code
from app.errors import RemoteServiceFailure, SourceAbsent, SourceMalformed
from app.logging_setup import resolution_fields
from app.schemas import (
    AttemptRecord,
    Confidence,
    ConversionMethod,
    CRSDeclaration,
    LocationSource,
    ProjectedPoint,
    ResolutionResult,
    ResolvedLocation,
)
from extract.manifest import parse_tile_manifest
from extract.pointcloud_metadata import parse_cloud_js, parse_metadata_json
from extract.proj_file import central_point, parse_projection_description, to_crs_declaration
from extract.providers import SourceProvider
from extract.world_file import center_point, parse_world_file, raster_size_from_env
from qc.sanity import is_unset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attempt:
    location: Optional[ResolvedLocation] = None
    crs: Optional[CRSDeclaration] = None
    total_points: Optional[int] = None


class JobEvidence:
    """Fetches each file of one job at most once; absent files are remembered too."""

    def __init__(self, job_number: str, provider: SourceProvider):
        self.job_number = job_number
        self.provider = provider
        self._memo: Dict[str, Union[str, SourceAbsent]] = {}

    async def _fetch(self, filename: str) -> Union[str, SourceAbsent]:
        if filename not in self._memo:
            try:
                self._memo[filename] = await self.provider.fetch_text(self.job_number, filename)
            except SourceAbsent as e:
                self._memo[filename] = e
            except Exception as e:  # provider bug or I/O failure: the file counts as missing
                logger.warning("Fetching %s for job %s failed: %s", filename, self.job_number, e)
                self._memo[filename] = SourceAbsent(f"{filename}: {type(e).__name__}: {e}")
        return self._memo[filename]

    async def prefetch(self, filenames: Sequence[str]) -> None:
        await asyncio.gather(*(self._fetch(f) for f in dict.fromkeys(filenames)))

    async def first(self, filenames: Sequence[str]) -> Tuple[str, str]:
        """(filename, text) of the first existing file, else raise SourceAbsent."""
        for f in filenames:
            got = await self._fetch(f)
            if isinstance(got, str):
                return f, got
        raise SourceAbsent(f"none of {', '.join(filenames)} for job {self.job_number}")


class PointConverter:
    """Raw (x, y) -> (lat, lon, method). Remote projection, then anchors, then raw."""

    def __init__(
        self,
        projection: Optional[ExternalProjectionClient],
        interpolator: ReferencePointInterpolator,
    ):
        self.projection = projection
        self.interpolator = interpolator

    async def convert(
        self, x: float, y: float, crs: Optional[CRSDeclaration]
    ) -> Optional[Tuple[float, float, ConversionMethod]]:
        label = classify(x, y)
        if label is CoordinateClass.GEOGRAPHIC:
            return y, x, "direct"
        if is_unset(y, x):
            return None

        code = normalize_code(crs.horizontal) if crs else None
        if code is not None and self.projection is not None:
            try:
                projected = await self.projection.project([ProjectedPoint(x=x, y=y)], code)
                p = projected[0]
                return p.latitude, p.longitude, "remote"
            except RemoteServiceFailure as e:
                logger.warning("Remote projection from EPSG:%s failed, falling back: %s", code, e)

        if label is CoordinateClass.PROJECTED_LIKELY:
            pt = self.interpolator.interpolate(x, y)
            if pt is not None:
                return pt.latitude, pt.longitude, "interpolated"

        return y, x, "raw"


@dataclass
class ResolutionContext:
    job_number: str
    evidence: JobEvidence
    converter: PointConverter
    raster_size: int
    crs_hint: Optional[CRSDeclaration] = None


class ResolverStrategy(Protocol):
    name: LocationSource

    def filenames(self, job_number: str) -> Tuple[str, ...]:
        ...

    async def attempt(self, ctx: ResolutionContext) -> Optional[Attempt]:
        ...


async def _locate(
    ctx: ResolutionContext,
    x: float,
    y: float,
    crs: Optional[CRSDeclaration],
    source: LocationSource,
    confidence: Confidence,
) -> Optional[ResolvedLocation]:
    converted = await ctx.converter.convert(x, y, crs)
    if converted is None:
        return None
    lat, lon, method = converted
    return ResolvedLocation(
        latitude=lat,
        longitude=lon,
        source=source,
        confidence="low" if method == "raw" else confidence,
        method=method,
    )


def _projection_filenames(job_number: str) -> Tuple[str, ...]:
    return (f"{job_number}.prj", f"{job_number}.proj")


class WorldFileStrategy:
    name: LocationSource = "world_file"

    def filenames(self, job_number: str) -> Tuple[str, ...]:
        return (f"{job_number}.tfw", f"{job_number}.wld")

    async def attempt(self, ctx: ResolutionContext) -> Optional[Attempt]:
        filename, text = await ctx.evidence.first(self.filenames(ctx.job_number))
        record = parse_world_file(text)
        if record is None:
            raise SourceMalformed(f"{filename}: not six finite numeric lines")

        # The sidecar carries no CRS; borrow the projection description's if any
        crs = ctx.crs_hint
        if crs is None:
            try:
                _, proj_text = await ctx.evidence.first(_projection_filenames(ctx.job_number))
                desc = parse_projection_description(proj_text)
                crs = to_crs_declaration(desc) if desc else None
            except SourceAbsent:
                crs = None

        center = center_point(record, ctx.raster_size, ctx.raster_size)
        if center is None:
            return Attempt(crs=crs)
        location = await _locate(ctx, center[0], center[1], crs, self.name, "high")
        return Attempt(location=location, crs=crs)


class ProjectionFileStrategy:
    name: LocationSource = "proj_file"

    def filenames(self, job_number: str) -> Tuple[str, ...]:
        return _projection_filenames(job_number)

    async def attempt(self, ctx: ResolutionContext) -> Optional[Attempt]:
        filename, text = await ctx.evidence.first(self.filenames(ctx.job_number))
        desc = parse_projection_description(text)
        if desc is None:
            raise SourceMalformed(f"{filename}: not text")
        crs = to_crs_declaration(desc)
        pt = central_point(desc)
        location = None
        if pt is not None:
            location = await _locate(ctx, pt[0], pt[1], crs, self.name, "medium")
        return Attempt(location=location, crs=crs)


def _defaulted(horizontal: str) -> CRSDeclaration:
    return CRSDeclaration(horizontal=horizontal, vertical=DEFAULT_VERTICAL, geoid_model=DEFAULT_GEOID)


class TileManifestStrategy:
    name: LocationSource = "sources_manifest"

    def filenames(self, job_number: str) -> Tuple[str, ...]:
        return ("sources.json",)

    async def attempt(self, ctx: ResolutionContext) -> Optional[Attempt]:
        filename, text = await ctx.evidence.first(self.filenames(ctx.job_number))
        manifest = parse_tile_manifest(text)
        if manifest is None:
            raise SourceMalformed(f"{filename}: missing or non-numeric bounds")

        label = manifest.projection_label
        declared = canonical_code(label)
        # A label with no recoverable code means the regional default zone
        crs = _defaulted(declared or DEFAULT_HORIZONTAL) if label else None
        # Only a declared code (here or upstream) is trusted for remote projection
        convert_crs = _defaulted(declared) if declared else ctx.crs_hint
        cx, cy = manifest.bounds.center()
        location = await _locate(ctx, cx, cy, convert_crs, self.name, "medium")
        return Attempt(location=location, crs=crs, total_points=manifest.total_points or None)


class PointCloudMetadataStrategy:
    name: LocationSource = "potree_bounds"

    def filenames(self, job_number: str) -> Tuple[str, ...]:
        return ("metadata.json", "cloud.js")

    async def attempt(self, ctx: ResolutionContext) -> Optional[Attempt]:
        meta = None
        seen = []
        for filename, parse in (("metadata.json", parse_metadata_json), ("cloud.js", parse_cloud_js)):
            try:
                _, text = await ctx.evidence.first((filename,))
            except SourceAbsent:
                continue
            seen.append(filename)
            meta = parse(text)
            if meta is not None:
                break
        if meta is None:
            if seen:
                raise SourceMalformed(f"{', '.join(seen)}: no usable bounding box")
            raise SourceAbsent(f"no point-cloud metadata for job {ctx.job_number}")

        crs = None
        if meta.projection_label:
            crs = _defaulted(canonical_code(meta.projection_label, default=meta.projection_label))
        cx, cy = meta.effective_bounds.center()
        location = await _locate(ctx, cx, cy, crs or ctx.crs_hint, self.name, "medium")
        return Attempt(location=location, crs=crs, total_points=meta.points or None)


DEFAULT_STRATEGIES: Tuple[ResolverStrategy, ...] = (
    WorldFileStrategy(),
    ProjectionFileStrategy(),
    TileManifestStrategy(),
    PointCloudMetadataStrategy(),
)


class SourceResolutionOrchestrator:
    def __init__(
        self,
        provider: SourceProvider,
        strategies: Sequence[ResolverStrategy] | None = None,
        projection: ExternalProjectionClient | None = None,
        interpolator: ReferencePointInterpolator | None = None,
        raster_size: int | None = None,
        prefetch: bool = False,
    ):
        self.provider = provider
        self.strategies: List[ResolverStrategy] = list(strategies if strategies is not None else DEFAULT_STRATEGIES)
        self.converter = PointConverter(projection, interpolator or ReferencePointInterpolator())
        self.raster_size = raster_size or raster_size_from_env()
        self.prefetch = prefetch

    async def resolve(self, job_number: str) -> ResolutionResult:
        """Best-effort location and CRS for `job_number`. Never raises for missing or bad sources."""
        ctx = ResolutionContext(
            job_number=job_number,
            evidence=JobEvidence(job_number, self.provider),
            converter=self.converter,
            raster_size=self.raster_size,
        )
        if self.prefetch:
            names: List[str] = []
            for s in self.strategies:
                names.extend(s.filenames(job_number))
            await ctx.evidence.prefetch(names)

        attempts: List[AttemptRecord] = []
        location: Optional[ResolvedLocation] = None
        total_points: Optional[int] = None

        for strategy in self.strategies:
            try:
                att = await strategy.attempt(ctx)
            except SourceAbsent as e:
                logger.debug("%s absent for %s: %s", strategy.name, job_number, e)
                attempts.append(AttemptRecord(source=strategy.name, status="absent"))
                continue
            except SourceMalformed as e:
                logger.info("%s malformed for %s: %s", strategy.name, job_number, e)
                attempts.append(AttemptRecord(source=strategy.name, status="malformed", detail=str(e)))
                continue
            except Exception as e:  # keep the chain going on unexpected parser bugs
                logger.exception("%s crashed for %s", strategy.name, job_number)
                attempts.append(AttemptRecord(source=strategy.name, status="unusable", detail=f"{type(e).__name__}: {e}"))
                continue

            if att is None or (att.location is None and att.crs is None):
                attempts.append(AttemptRecord(source=strategy.name, status="unusable"))
                continue
            if ctx.crs_hint is None and att.crs is not None:
                ctx.crs_hint = att.crs
            if total_points is None and att.total_points:
                total_points = att.total_points
            if att.location is not None:
                location = att.location
                attempts.append(
                    AttemptRecord(source=strategy.name, status="resolved", detail=f"{location.method}/{location.confidence}")
                )
                break
            attempts.append(AttemptRecord(source=strategy.name, status="crs_only", detail=att.crs.horizontal if att.crs else None))

        result = ResolutionResult(
            job_number=job_number,
            project_name=f"Project {job_number}",
            description=(
                f"Point cloud project with {total_points:,} points" if total_points else "Point cloud project"
            ),
            location=location,
            crs=ctx.crs_hint,
            total_points=total_points,
            diagnostics=attempts,
        )
        outcome = "resolved" if location is not None else ("crs only" if ctx.crs_hint else "unresolved")
        logger.info("job %s %s", job_number, outcome, extra=resolution_fields(result))
        return result


__all__ = [
    "SourceResolutionOrchestrator",
    "PointConverter",
    "JobEvidence",
    "Attempt",
    "WorldFileStrategy",
    "ProjectionFileStrategy",
    "TileManifestStrategy",
    "PointCloudMetadataStrategy",
    "DEFAULT_STRATEGIES",
]
