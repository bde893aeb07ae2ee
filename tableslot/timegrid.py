"""Slot grid and timestamp helpers for tableslot."""

from datetime import date, datetime, time, timedelta, tzinfo

MINUTES_PER_DAY = 24 * 60


def generate_slots(open_hour: int, close_hour: int, step_minutes: int = 15) -> list[int]:
    """
    Generate slot starts in minutes since midnight.

    The grid starts at the opening boundary and always ends with the closing
    boundary, so ``close_hour=24`` yields 1440 as the last entry.
    """
    if step_minutes <= 0:
        raise ValueError(f"step_minutes must be positive, got {step_minutes}")
    if close_hour <= open_hour:
        raise ValueError(f"close_hour ({close_hour}) must be after open_hour ({open_hour})")

    start = open_hour * 60
    end = close_hour * 60
    slots = list(range(start, end, step_minutes))
    slots.append(end)
    return slots


def slot_to_timestamp(slot: int, reference_date: date, tz: tzinfo) -> datetime:
    """Convert a slot to an absolute time on ``reference_date`` (rolling past midnight)."""
    midnight = datetime.combine(reference_date, time(0, 0), tzinfo=tz)
    return midnight + timedelta(minutes=slot)


def minutes_since_midnight(ts: datetime) -> int:
    """Wall-clock minutes since midnight in the timestamp's own offset."""
    return ts.hour * 60 + ts.minute


def minutes_to_label(minutes: int) -> str:
    """Format minutes since midnight as HH:MM (hours wrap at 24)."""
    hours = (minutes // 60) % 24
    return f"{hours:02d}:{minutes % 60:02d}"


def parse_timestamp(value: str | datetime) -> datetime:
    """
    Parse an ISO-8601 timestamp that carries a UTC offset.

    Naive timestamps are rejected: every booking time is absolute.
    """
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, str):
        try:
            ts = datetime.fromisoformat(value.strip())
        except ValueError as e:
            raise ValueError(f"Malformed timestamp: {value!r}") from e
    else:
        raise ValueError(f"Expected an ISO timestamp, got {type(value).__name__}")

    if ts.tzinfo is None or ts.utcoffset() is None:
        raise ValueError(f"Timestamp has no UTC offset: {value!r}")
    return ts


def format_timestamp(ts: datetime) -> str:
    return ts.isoformat()


def service_day_bounds(
    reference: datetime,
    open_hour: int,
    close_hour: int,
) -> tuple[datetime, datetime]:
    """
    Absolute open and close times of the service day containing ``reference``.

    With service past midnight (``close_hour > 24``) the small hours belong to
    the previous day's service.
    """
    midnight = datetime.combine(reference.date(), time(0, 0), tzinfo=reference.tzinfo)
    if close_hour > 24 and reference < midnight + timedelta(hours=close_hour - 24):
        midnight -= timedelta(days=1)
    return midnight + timedelta(hours=open_hour), midnight + timedelta(hours=close_hour)
