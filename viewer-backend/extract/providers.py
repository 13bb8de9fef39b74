from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Protocol

import anyio
import httpx

from app.errors import SourceAbsent

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:4400/pointclouds"

_SAFE_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class SourceProvider(Protocol):
    async def fetch_text(self, job_number: str, filename: str) -> str:
        """Return the file's text, or raise SourceAbsent."""
        ...


def _check_names(job_number: str, filename: str) -> None:
    for part in (job_number, filename):
        if not _SAFE_NAME_RE.match(part or "") or ".." in part:
            raise SourceAbsent(f"Refusing unsafe path component {part!r}")


class HttpSourceProvider:
    """
    Env:
      POINTCLOUD_BASE_URL     e.g. http://localhost:4400/pointclouds
      SOURCE_TIMEOUT_SECONDS  per-file fetch timeout (float, default 5)
    """
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or os.getenv("POINTCLOUD_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
        if timeout is None:
            try:
                timeout = float(os.getenv("SOURCE_TIMEOUT_SECONDS", "5"))
            except ValueError:
                timeout = 5.0
        self.timeout = timeout
        self._transport = transport

    async def fetch_text(self, job_number: str, filename: str) -> str:
        _check_names(job_number, filename)
        url = f"{self.base_url}/{job_number}/{filename}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(url)
        except httpx.HTTPError as e:
            # Timeouts and refused connections count as "not there"
            raise SourceAbsent(f"{url}: {type(e).__name__}") from e
        if resp.status_code != 200:
            raise SourceAbsent(f"{url}: HTTP {resp.status_code}")
        return resp.text


class DirectorySourceProvider:
    """Reads <root>/<job_number>/<filename> from a mounted point-cloud directory."""

    def __init__(self, root: str | os.PathLike):
        self.root = Path(root)

    async def fetch_text(self, job_number: str, filename: str) -> str:
        _check_names(job_number, filename)
        path = self.root / job_number / filename

        def _read() -> str:
            return path.read_text(encoding="utf-8", errors="replace")

        try:
            # blocking read runs in a worker thread
            return await anyio.to_thread.run_sync(_read)
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
            raise SourceAbsent(str(path)) from e
        except PermissionError as e:
            logger.info("Permission denied reading %s", path)
            raise SourceAbsent(str(path)) from e
        except OSError as e:
            logger.warning("I/O error reading %s: %s", path, e)
            raise SourceAbsent(f"{path}: {e}") from e


def build_source_provider_from_env() -> SourceProvider:
    # A local directory wins when configured; otherwise fetch over HTTP.
    root = os.getenv("POINTCLOUD_DIR")
    if root:
        return DirectorySourceProvider(root)
    return HttpSourceProvider()
