from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(moment: Optional[datetime] = None) -> datetime:
    """
    Normalise an optional instant to naive UTC.

    Aware datetimes are converted; naive ones are assumed to already be UTC.
    """
    if moment is None:
        return utcnow()
    if moment.tzinfo is not None:
        return moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def isoformat(moment: Optional[datetime]) -> Optional[str]:
    if moment is None:
        return None
    return moment.isoformat() + "Z"


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, rounded half up."""
    seconds = (end - start).total_seconds()
    return int(seconds / 60 + 0.5) if seconds >= 0 else -int(-seconds / 60 + 0.5)
