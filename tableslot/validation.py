"""Conflict detection and booking validation for tableslot."""

from collections.abc import Iterable
from datetime import datetime, timedelta

from tableslot.config import ServiceConfig
from tableslot.models import Booking, Reason, Resource, Verdict


def _check_duration(duration_minutes: int) -> None:
    if duration_minutes < 0:
        raise ValueError(f"Duration must not be negative, got {duration_minutes}")


def _overlapping(
    bookings: Iterable[Booking],
    resource_id: str,
    start_time: datetime,
    duration_minutes: int,
    exclude_booking_id: str | None,
) -> Iterable[Booking]:
    _check_duration(duration_minutes)
    new_start = start_time
    new_end = start_time + timedelta(minutes=duration_minutes)

    for booking in bookings:
        if booking.id == exclude_booking_id:
            continue
        if booking.resource_id != resource_id:
            continue
        if not booking.is_active:
            continue
        # Half-open intervals: touching edges do not overlap
        if new_start < booking.end_time and new_end > booking.start_time:
            yield booking


def find_conflict(
    bookings: Iterable[Booking],
    resource_id: str,
    start_time: datetime,
    duration_minutes: int,
    exclude_booking_id: str | None = None,
) -> str | None:
    """
    Find an active booking on the same table that overlaps the interval.

    Returns the id of the first overlapping booking, or None if the table is
    free. Pass ``exclude_booking_id`` when revalidating a booking against its
    own previous interval.
    """
    for booking in _overlapping(
        bookings, resource_id, start_time, duration_minutes, exclude_booking_id
    ):
        return booking.id
    return None


def find_conflicts(
    bookings: Iterable[Booking],
    resource_id: str,
    start_time: datetime,
    duration_minutes: int,
    exclude_booking_id: str | None = None,
) -> list[str]:
    """Return the ids of every active booking overlapping the interval."""
    return [
        b.id
        for b in _overlapping(
            bookings, resource_id, start_time, duration_minutes, exclude_booking_id
        )
    ]


def is_outside_service_hours(
    start_time: datetime,
    duration_minutes: int,
    open_hour: int,
    close_hour: int,
) -> bool:
    """
    Check whether [start, start + duration) leaves the service window.

    An end on the next calendar day counts as hour 24+, so ``close_hour=24``
    admits bookings that finish exactly at midnight.
    """
    _check_duration(duration_minutes)
    end_time = start_time + timedelta(minutes=duration_minutes)

    start_hour = start_time.hour + start_time.minute / 60
    end_hour = end_time.hour + end_time.minute / 60
    if end_time.date() != start_time.date():
        end_hour += 24

    return start_hour < open_hour or end_hour > close_hour


def is_in_the_past(start_time: datetime, now: datetime, allow_past: bool = False) -> bool:
    """Check whether the booking starts before ``now`` (never, if ``allow_past``)."""
    if allow_past:
        return False
    return start_time < now


def check_capacity(resource: Resource, party_size: int) -> bool:
    return resource.capacity.fits(party_size)


def validate_booking(
    booking: Booking,
    bookings: Iterable[Booking],
    config: ServiceConfig,
    resource: Resource | None = None,
    now: datetime | None = None,
    allow_past: bool | None = None,
) -> Verdict:
    """
    Validate a booking against the current booking set.

    Rules are applied in order (conflict, service hours, past, capacity) and
    the first failure becomes the verdict's reason. The booking itself is
    excluded from the conflict check, so this also revalidates moves and
    resizes. The past check is skipped when ``now`` is not given.
    """
    bookings = list(bookings)
    if allow_past is None:
        allow_past = config.allow_past

    conflict_id = find_conflict(
        bookings,
        booking.resource_id,
        booking.start_time,
        booking.duration_minutes,
        exclude_booking_id=booking.id,
    )
    if conflict_id is not None:
        other = next(b for b in bookings if b.id == conflict_id)
        return Verdict(
            allowed=False,
            reason=Reason.CONFLICT,
            message=f"Conflicts with booking for {other.customer.name}",
            conflict_with=conflict_id,
        )

    if is_outside_service_hours(
        booking.start_time, booking.duration_minutes, config.open_hour, config.close_hour
    ):
        return Verdict(
            allowed=False,
            reason=Reason.OUTSIDE_SERVICE_HOURS,
            message=f"Outside service hours ({config.open_hour}:00 - {config.close_hour}:00)",
        )

    if now is not None and is_in_the_past(booking.start_time, now, allow_past):
        return Verdict(
            allowed=False,
            reason=Reason.IN_THE_PAST,
            message="This booking time has already passed",
        )

    if resource is not None and not check_capacity(resource, booking.party_size):
        return Verdict(
            allowed=False,
            reason=Reason.CAPACITY_MISMATCH,
            message=(
                f"Party of {booking.party_size} does not fit {resource.name} "
                f"({resource.capacity.min}-{resource.capacity.max})"
            ),
        )

    return Verdict(allowed=True, booking=booking)
