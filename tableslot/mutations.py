"""Revalidated booking changes for tableslot."""

import logging
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime

from tableslot.config import ServiceConfig
from tableslot.models import (
    Booking,
    BookingStatus,
    Customer,
    InvalidTransitionError,
    Priority,
    Resource,
    Verdict,
)
from tableslot.validation import validate_booking

logger = logging.getLogger(__name__)

BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW}
    ),
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.SEATED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW}
    ),
    BookingStatus.SEATED: frozenset({BookingStatus.FINISHED}),
    BookingStatus.FINISHED: frozenset(),
    BookingStatus.NO_SHOW: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def _decide(
    proposed: Booking,
    bookings: Sequence[Booking],
    resource: Resource,
    config: ServiceConfig,
    now: datetime | None,
    allow_past: bool | None,
) -> Verdict:
    if proposed.resource_id != resource.id:
        raise ValueError(
            f"Booking {proposed.id} targets {proposed.resource_id}, not {resource.id}"
        )

    verdict = validate_booking(
        proposed, bookings, config, resource=resource, now=now, allow_past=allow_past
    )
    if not verdict.allowed:
        logger.debug("Rejected booking %s: %s", proposed.id, verdict.reason)
    return verdict


def create_booking(
    booking_id: str,
    resource: Resource,
    customer: Customer,
    party_size: int,
    start_time: datetime,
    bookings: Sequence[Booking],
    config: ServiceConfig,
    duration_minutes: int | None = None,
    priority: Priority = Priority.STANDARD,
    status: BookingStatus = BookingStatus.CONFIRMED,
    notes: str = "",
    source: str | None = None,
    now: datetime | None = None,
    allow_past: bool | None = None,
) -> Verdict:
    """
    Propose a new booking on ``resource``.

    The verdict carries the new booking when every rule passes; the caller
    applies it to its own collection (see ``apply_booking``). An id already
    present in ``bookings`` is a ValueError, since validation skips a
    booking's own id.
    """
    if party_size < 1:
        raise ValueError(f"Party size must be positive, got {party_size}")
    if any(b.id == booking_id for b in bookings):
        raise ValueError(f"Booking id already in use: {booking_id}")

    proposed = Booking(
        id=booking_id,
        resource_id=resource.id,
        customer=customer,
        party_size=party_size,
        start_time=start_time,
        duration_minutes=(
            config.default_duration if duration_minutes is None else duration_minutes
        ),
        status=status,
        priority=priority,
        notes=notes,
        source=source,
        created_at=now,
        updated_at=now,
    )
    return _decide(proposed, bookings, resource, config, now, allow_past)


def move_booking(
    booking: Booking,
    bookings: Sequence[Booking],
    resource: Resource,
    new_start: datetime,
    config: ServiceConfig,
    now: datetime | None = None,
    allow_past: bool | None = None,
) -> Verdict:
    """Reassign a booking to another table and/or start time, keeping its duration."""
    proposed = replace(booking, resource_id=resource.id, start_time=new_start, updated_at=now)
    return _decide(proposed, bookings, resource, config, now, allow_past)


def resize_booking(
    booking: Booking,
    bookings: Sequence[Booking],
    resource: Resource,
    new_duration: int,
    config: ServiceConfig,
    new_start: datetime | None = None,
    now: datetime | None = None,
    allow_past: bool | None = None,
) -> Verdict:
    """Change a booking's duration, optionally dragging its start edge too."""
    if new_duration < 0:
        raise ValueError(f"Duration must not be negative, got {new_duration}")

    proposed = replace(
        booking,
        start_time=new_start or booking.start_time,
        duration_minutes=new_duration,
        updated_at=now,
    )
    return _decide(proposed, bookings, resource, config, now, allow_past)


def change_status(
    booking: Booking,
    status: BookingStatus,
    now: datetime | None = None,
) -> Booking:
    """Return a copy of the booking in ``status``, enforcing the lifecycle."""
    if status not in BOOKING_TRANSITIONS[booking.status]:
        raise InvalidTransitionError(
            f"Booking {booking.id} cannot go from {booking.status.value} to {status.value}"
        )
    return replace(booking, status=status, updated_at=now)


def apply_booking(bookings: Sequence[Booking], booking: Booking) -> list[Booking]:
    """Return a new collection with ``booking`` inserted or replacing its previous version."""
    updated = [booking if b.id == booking.id else b for b in bookings]
    if not any(b.id == booking.id for b in bookings):
        updated.append(booking)
    return updated


def remove_booking(bookings: Sequence[Booking], booking_id: str) -> list[Booking]:
    """Return a new collection without the booking (explicit delete, not cancellation)."""
    return [b for b in bookings if b.id != booking_id]
