#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import csv
import json
import os
import sys
from typing import List, Tuple

# Make viewer-backend importable
THIS_DIR = os.path.dirname(__file__)
BACKEND_DIR = os.path.abspath(os.path.join(THIS_DIR, "..", "viewer-backend"))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

from app.crs.diagnostics import summarize  # type: ignore
from app.crs.projection import build_projection_client_from_env  # type: ignore
from app.logging_setup import configure_logging  # type: ignore
from app.resolver import SourceResolutionOrchestrator  # type: ignore
from app.schemas import ResolutionResult  # type: ignore
from extract.providers import DirectorySourceProvider, build_source_provider_from_env  # type: ignore

CSV_COLUMNS = [
    "job_number",
    "latitude",
    "longitude",
    "source",
    "confidence",
    "method",
    "horizontal",
    "vertical",
    "geoid_model",
    "total_points",
    "trail",
]


def _discover_jobs(root: str, limit: int | None) -> List[str]:
    jobs = sorted(d for d in os.listdir(root) if os.path.isdir(os.path.join(root, d)) and not d.startswith("."))
    return jobs[:limit] if limit is not None else jobs


def _row(result: ResolutionResult) -> dict:
    loc, crs = result.location, result.crs
    return {
        "job_number": result.job_number,
        "latitude": loc.latitude if loc else "",
        "longitude": loc.longitude if loc else "",
        "source": loc.source if loc else "",
        "confidence": loc.confidence if loc else "",
        "method": loc.method if loc else "",
        "horizontal": crs.horizontal if crs else "",
        "vertical": (crs.vertical or "") if crs else "",
        "geoid_model": (crs.geoid_model or "") if crs else "",
        "total_points": result.total_points or "",
        "trail": " ".join(summarize(result.diagnostics)["trail"]),
    }


async def resolve_all(orch: SourceResolutionOrchestrator, jobs: List[str], concurrency: int) -> List[ResolutionResult]:
    sem = asyncio.Semaphore(max(1, concurrency))

    async def one(job: str) -> ResolutionResult:
        async with sem:
            return await orch.resolve(job)

    return list(await asyncio.gather(*(one(j) for j in jobs)))


def aggregate(results: List[ResolutionResult]) -> dict:
    agg = {"jobs": len(results), "resolved": 0, "crs_only": 0, "unresolved": 0, "by_source": {}, "by_confidence": {}}
    for r in results:
        if r.location:
            agg["resolved"] += 1
            agg["by_source"][r.location.source] = agg["by_source"].get(r.location.source, 0) + 1
            agg["by_confidence"][r.location.confidence] = agg["by_confidence"].get(r.location.confidence, 0) + 1
        elif r.crs:
            agg["crs_only"] += 1
        else:
            agg["unresolved"] += 1
    return agg


def _print_pretty(results: List[ResolutionResult], agg: dict) -> None:
    for r in results:
        row = _row(r)
        where = f"{row['latitude']:.5f},{row['longitude']:.5f}" if r.location else "-"
        print(f"{r.job_number}: {where} [{row['source'] or 'none'}/{row['confidence'] or '-'}] crs={row['horizontal'] or '-'}")
        print(f"    {row['trail']}")
    print("\n--- aggregate ---")
    print(json.dumps(agg, indent=2))


def _parse_args(argv: List[str] | None) -> Tuple[argparse.Namespace, argparse.ArgumentParser]:
    ap = argparse.ArgumentParser(description="Resolve location and CRS for point-cloud jobs.")
    ap.add_argument("jobs", nargs="*", help="Job numbers; omitted means every job directory under --data-dir")
    ap.add_argument("--data-dir", default=os.getenv("POINTCLOUD_DIR"), help="Point-cloud root (defaults to POINTCLOUD_DIR)")
    ap.add_argument("--limit", type=int, default=None, help="Max number of discovered jobs")
    ap.add_argument("--concurrency", type=int, default=4)
    ap.add_argument("--no-remote", action="store_true", help="Skip the remote projection service")
    ap.add_argument("--format", choices=["pretty", "json", "csv"], default="pretty")
    ap.add_argument("--output", help="Optional path to write JSON/CSV output")
    return ap.parse_args(argv), ap


def main(argv: List[str] | None = None) -> int:
    args, ap = _parse_args(argv)
    configure_logging()

    provider = DirectorySourceProvider(args.data_dir) if args.data_dir else build_source_provider_from_env()
    jobs = list(args.jobs)
    if not jobs:
        if not args.data_dir:
            ap.error("give job numbers or --data-dir")
        jobs = _discover_jobs(args.data_dir, args.limit)
    if not jobs:
        print("No jobs found. Adjust --data-dir or pass job numbers.")
        return 1

    orch = SourceResolutionOrchestrator(
        provider,
        projection=None if args.no_remote else build_projection_client_from_env(),
        prefetch=True,
    )
    results = asyncio.run(resolve_all(orch, jobs, args.concurrency))
    agg = aggregate(results)

    if args.format == "pretty":
        _print_pretty(results, agg)

    if args.output:
        if args.format == "csv":
            with open(args.output, "w", newline="") as f:
                w = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
                w.writeheader()
                for r in results:
                    w.writerow(_row(r))
            print(f"Wrote CSV to {args.output}")
        else:
            payload = {"aggregate": agg, "results": [r.model_dump() for r in results]}
            with open(args.output, "w") as f:
                json.dump(payload, f, indent=2)
            print(f"Wrote JSON to {args.output}")
    elif args.format == "json":
        print(json.dumps({"aggregate": agg, "results": [r.model_dump() for r in results]}, indent=2))
    elif args.format == "csv":
        w = csv.DictWriter(sys.stdout, fieldnames=CSV_COLUMNS)
        w.writeheader()
        for r in results:
            w.writerow(_row(r))
    return 0


if __name__ == "__main__":
    sys.exit(main())
