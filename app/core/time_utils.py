import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

KST = timezone(timedelta(hours=9))

# fractional seconds and a bare-hour offset, as Postgres prints them
_FRACTION = re.compile(r"\.(\d+)")
_HOUR_OFFSET = re.compile(r"(:\d{2}(?:\.\d+)?[+-]\d{2})$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse a Postgres/ISO timestamp into an aware datetime (naive values are treated as UTC)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        text = _HOUR_OFFSET.sub(r"\1:00", text)
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_utc_iso(value: datetime) -> str:
    """ISO string in UTC, the form timestamps are stored and compared in."""
    return value.astimezone(timezone.utc).isoformat()


def kst_day_start(now: Optional[datetime] = None) -> datetime:
    """Midnight of the current KST calendar day, as an aware datetime."""
    now = now or utcnow()
    local = now.astimezone(KST)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def next_kst_midnight(now: Optional[datetime] = None) -> datetime:
    return kst_day_start(now) + timedelta(days=1)


def kst_month_start(now: Optional[datetime] = None) -> datetime:
    return kst_day_start(now).replace(day=1)


def is_same_kst_day(value: Union[str, datetime, None], now: Optional[datetime] = None) -> bool:
    parsed = parse_timestamp(value)
    if parsed is None:
        return False
    return parsed.astimezone(KST).date() == (now or utcnow()).astimezone(KST).date()
