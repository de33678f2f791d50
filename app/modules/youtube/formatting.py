"""Korean number formatting (천/만/억 units, never k/m)."""
import math
from datetime import datetime
from typing import Optional, Union

from app.core.time_utils import parse_timestamp, utcnow

Number = Union[int, float]


def _trim(value: float, decimals: int) -> str:
    scale = 10 ** decimals
    rounded = math.floor(value * scale + 0.5) / scale
    if rounded == int(rounded):
        return str(int(rounded))
    return f"{rounded:.{decimals}f}"


def format_number_ko(num: Optional[Number], decimals: int = 1) -> str:
    if num is None:
        return "0"
    sign = "-" if num < 0 else ""
    value = abs(num)
    if value < 1000:
        return f"{sign}{_trim(value, decimals) if isinstance(value, float) else value}"
    if value < 10000:
        return f"{sign}{_trim(value / 1000, decimals)}천"
    return f"{sign}{_trim(value / 10000, decimals)}만"


def format_large_number(num: Optional[Number]) -> str:
    if num is None:
        return "0"
    if abs(num) >= 100_000_000:
        sign = "-" if num < 0 else ""
        return f"{sign}{_trim(abs(num) / 100_000_000, 1)}억"
    return format_number_ko(num)


def format_delta(delta: Optional[Number]) -> str:
    if not delta:
        return "0"
    formatted = format_number_ko(abs(delta))
    return f"+{formatted}" if delta > 0 else f"-{formatted}"


def format_percent(value: Optional[Number], decimals: int = 1) -> str:
    if value is None:
        return "0%"
    sign = "-" if value < 0 else ""
    return f"{sign}{_trim(abs(value), decimals)}%"


def format_growth_rate(rate: Optional[Number]) -> str:
    if not rate:
        return "0%"
    formatted = format_percent(abs(rate))
    return f"+{formatted}" if rate > 0 else f"-{formatted}"


def format_time_ago(value: Union[str, datetime], now: Optional[datetime] = None) -> str:
    target = parse_timestamp(value)
    seconds = int(((now or utcnow()) - target).total_seconds())
    minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400
    if days > 0:
        return f"{days}일 전"
    if hours > 0:
        return f"{hours}시간 전"
    if minutes > 0:
        return f"{minutes}분 전"
    return "방금 전"
