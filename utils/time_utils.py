"""시간 관련 유틸리티 (모든 시각은 UTC aware datetime으로 다룹니다)"""
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """DB에서 naive로 돌아온 시각은 UTC로 간주"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def seconds_until(target: datetime, now: datetime) -> float:
    return (as_utc(target) - as_utc(now)).total_seconds()
