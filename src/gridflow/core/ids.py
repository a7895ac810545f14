from __future__ import annotations

from datetime import UTC, datetime
from typing import Sequence
from uuid import uuid4


def now_utc() -> datetime:
    return datetime.now(UTC)


def make_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:12]}"


def batch_id_for(seeds: Sequence[int], engine: str, at: datetime | None = None) -> str:
    """``batch_<engine>_<lo>-<hi>_<UTC stamp>_<hex>``; safe as an export file suffix."""
    span = f"{min(seeds)}-{max(seeds)}" if seeds else "none"
    stamp = (at or now_utc()).strftime("%Y%m%dT%H%M%S")
    return f"batch_{engine}_{span}_{stamp}_{uuid4().hex[:6]}"
