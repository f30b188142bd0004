"""Process-local scheduler state reported by the health endpoint."""
from __future__ import annotations

from datetime import datetime

from app.utils.time import utcnow

_scheduler_active = False
_scheduler_since: datetime | None = None


def set_scheduler_active(active: bool) -> None:
    global _scheduler_active, _scheduler_since
    _scheduler_active = active
    _scheduler_since = utcnow() if active else None


def is_scheduler_active() -> bool:
    return _scheduler_active


def scheduler_since() -> datetime | None:
    return _scheduler_since
