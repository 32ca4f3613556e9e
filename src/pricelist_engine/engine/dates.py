"""
Date normalization for evaluation dates and validity windows.

All comparisons happen on naive UTC datetimes. Aware values are converted
to UTC. Plain dates mean midnight of that day, except as an upper
validity bound, where they cover the whole day.
"""
from datetime import date, datetime, time, timezone
from typing import Optional, Union

from .errors import InvalidArgumentError

DateLike = Union[datetime, date, str]

EPOCH = datetime(1970, 1, 1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def window_bound(value, end_of_day: bool = False) -> Optional[datetime]:
    """
    Normalize a stored validity bound.

    A plain date as an upper bound covers that whole day.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        if end_of_day:
            return datetime.combine(value, time.max)
        return datetime(value.year, value.month, value.day)
    raise TypeError(f"Expected datetime or date, got {type(value).__name__}")


def parse_date(value: Optional[DateLike], default_now: bool = True) -> Optional[datetime]:
    """
    Normalize a caller-supplied date.

    Accepts datetime, date or an ISO-8601 string. None becomes the current
    UTC time when default_now is set. Anything else raises
    InvalidArgumentError.
    """
    if value is None:
        return utcnow() if default_now else None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_naive_utc(datetime.fromisoformat(text))
        except ValueError:
            raise InvalidArgumentError(f"Malformed evaluation date: {value!r}") from None
    raise InvalidArgumentError(f"Unsupported evaluation date type: {type(value).__name__}")
