"""Structured logging for job resolution.

JSON lines when ENABLE_JSON_LOGS=1 (default), otherwise a concise human
formatter. Request records carry request_id, path, method, status and
duration_ms; anything about a job also carries job_number, and a finished
resolution adds winner, method, confidence and the attempt trail.
"""
from __future__ import annotations

import json
import logging
import os
import re
import sys
import uuid
from time import time
from typing import Any, Dict, Optional

from app.crs.diagnostics import summarize

_REQUEST_FIELDS = ("request_id", "path", "method", "status", "duration_ms")
_JOB_FIELDS = ("job_number", "winner", "conversion", "confidence", "trail")

# /location/{job_number}; classify and interpolate are not jobs
_JOB_PATH_RE = re.compile(r"^/location/(?!classify$|interpolate$)([^/]+)$")


def job_number_from_path(path: str) -> Optional[str]:
    m = _JOB_PATH_RE.match(path)
    return m.group(1) if m else None


def resolution_fields(result) -> Dict[str, Any]:
    """Log `extra` for a finished ResolutionResult."""
    summary = summarize(result.diagnostics)
    loc = result.location
    return {
        "job_number": result.job_number,
        "winner": summary["winner"],
        "conversion": loc.method if loc else None,
        "confidence": loc.confidence if loc else None,
        "trail": summary["trail"],
    }


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover - formatting
        base = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
        }
        for attr in _REQUEST_FIELDS + _JOB_FIELDS:
            if hasattr(record, attr):
                base[attr] = getattr(record, attr)
        if record.exc_info:
            base["exc_type"] = record.exc_info[0].__name__ if record.exc_info[0] else None
            base["exc"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False, default=str)


class _PlainFormatter(logging.Formatter):
    """`12:00:01 I app.resolver: job J7 resolved job=J7 winner=world_file via=direct/high trail=...`"""

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            self.formatTime(record, datefmt="%H:%M:%S"),
            record.levelname[0],
            record.name + ":",
            record.getMessage(),
        ]
        job = getattr(record, "job_number", None)
        if job:
            parts.append(f"job={job}")
        if getattr(record, "winner", None):
            parts.append(f"winner={record.winner}")
        if getattr(record, "conversion", None):
            parts.append(f"via={record.conversion}/{getattr(record, 'confidence', None)}")
        trail = getattr(record, "trail", None)
        if trail:
            parts.append("trail=" + ">".join(trail))
        if hasattr(record, "request_id"):
            parts.append(f"rid={record.request_id} {getattr(record, 'method', '')} {getattr(record, 'path', '')}".rstrip())
        if getattr(record, "status", None) is not None:
            parts.append(f"status={record.status} {getattr(record, 'duration_ms', 0)}ms")
        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging() -> None:
    if getattr(configure_logging, "_configured", False):  # idempotent
        return
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    json_enabled = os.getenv("ENABLE_JSON_LOGS", "1") == "1"
    root = logging.getLogger()
    try:
        root.setLevel(level)
    except ValueError:
        root.setLevel(logging.INFO)
    for h in list(root.handlers):  # drop server default handlers so every line has one shape
        root.removeHandler(h)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_enabled else _PlainFormatter())
    root.addHandler(handler)
    # httpx logs every outbound request (GeometryServer, CRS search, sources) at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    configure_logging._configured = True  # type: ignore[attr-defined]


async def logging_middleware(request, call_next):
    rid = request.headers.get("x-request-id") or uuid.uuid4().hex[:8]
    request.state.request_id = rid
    fields: Dict[str, Any] = {"request_id": rid, "path": request.url.path, "method": request.method}
    job = job_number_from_path(request.url.path)
    if job:
        fields["job_number"] = job
    logger = logging.getLogger("request")
    logger.debug("request.start", extra=fields)
    start = time()
    response = None
    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
    finally:
        logger.info(
            "request.end",
            extra={
                **fields,
                "status": getattr(response, "status_code", None),
                "duration_ms": round((time() - start) * 1000.0, 2),
            },
        )


__all__ = ["configure_logging", "logging_middleware", "job_number_from_path", "resolution_fields"]
