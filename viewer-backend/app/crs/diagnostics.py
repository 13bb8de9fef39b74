from __future__ import annotations

from typing import Any, Dict, List

from app.schemas import AttemptRecord


def summarize(attempts: List[AttemptRecord]) -> Dict[str, Any]:
    """Collapse attempt records into counts plus the winning source, for logs and reports."""
    counts: Dict[str, int] = {}
    winner = None
    for a in attempts:
        counts[a.status] = counts.get(a.status, 0) + 1
        if a.status == "resolved" and winner is None:
            winner = a.source
    return {
        "winner": winner,
        "counts": counts,
        "trail": [f"{a.source}:{a.status}" for a in attempts],
    }


__all__ = ["summarize"]
