"""util/clock.py — 시각 헬퍼. 모든 시각은 timezone-aware UTC."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def seconds_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds()
