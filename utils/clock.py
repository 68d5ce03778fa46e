"""
Single source of "now" for the app.

Timestamps are naive UTC, matching the DateTime columns. Tests can pin the
clock with freeze()/advance() instead of patching datetime everywhere.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

_frozen: Optional[datetime] = None


def utcnow() -> datetime:
    if _frozen is not None:
        return _frozen
    return datetime.now(timezone.utc).replace(tzinfo=None)


def freeze(at: datetime) -> None:
    global _frozen
    _frozen = at


def advance(delta: timedelta) -> datetime:
    global _frozen
    _frozen = utcnow() + delta
    return _frozen


def unfreeze() -> None:
    global _frozen
    _frozen = None
