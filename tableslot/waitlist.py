"""Waitlist queue management for tableslot."""

import logging
import math
import uuid
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime, timedelta

from tableslot.config import ServiceConfig
from tableslot.models import (
    Booking,
    BookingStatus,
    Customer,
    InvalidTransitionError,
    Notification,
    Priority,
    Resource,
    Sector,
    Verdict,
    WaitlistEntry,
    WaitlistStats,
    WaitlistStatus,
)
from tableslot.analytics import round_half_up
from tableslot.timegrid import service_day_bounds
from tableslot.validation import find_conflict, validate_booking

logger = logging.getLogger(__name__)

QUEUE_PENALTY_MINUTES = 15
VIP_PRIORITY_DIVISOR = 2  # VIP estimates grow half as fast with queue length

TRANSITIONS: dict[WaitlistStatus, frozenset[WaitlistStatus]] = {
    WaitlistStatus.WAITING: frozenset({WaitlistStatus.NOTIFIED, WaitlistStatus.CANCELLED}),
    WaitlistStatus.NOTIFIED: frozenset(
        {WaitlistStatus.SEATED, WaitlistStatus.CANCELLED, WaitlistStatus.NO_SHOW}
    ),
    WaitlistStatus.SEATED: frozenset(),
    WaitlistStatus.CANCELLED: frozenset(),
    WaitlistStatus.NO_SHOW: frozenset(),
}

STATUS_RANK: dict[WaitlistStatus, int] = {
    WaitlistStatus.WAITING: 0,
    WaitlistStatus.NOTIFIED: 1,
    WaitlistStatus.SEATED: 2,
    WaitlistStatus.CANCELLED: 3,
    WaitlistStatus.NO_SHOW: 4,
}


def transition(
    entry: WaitlistEntry,
    status: WaitlistStatus,
    now: datetime | None = None,
) -> WaitlistEntry:
    """Return a copy of the entry in ``status``, enforcing the lifecycle."""
    if status not in TRANSITIONS[entry.status]:
        raise InvalidTransitionError(
            f"Waitlist entry {entry.id} cannot go from {entry.status.value} to {status.value}"
        )
    if status is WaitlistStatus.NOTIFIED:
        return replace(entry, status=status, notified_at=now)
    return replace(entry, status=status)


def new_entry(
    customer: Customer,
    party_size: int,
    preferred_time: datetime,
    now: datetime,
    priority: Priority = Priority.STANDARD,
    preferred_sector: str | None = None,
    notes: str = "",
    entry_id: str | None = None,
) -> WaitlistEntry:
    """Create a WAITING entry enqueued at ``now``."""
    return WaitlistEntry(
        id=entry_id or f"waitlist-{uuid.uuid4().hex[:12]}",
        customer=customer,
        party_size=party_size,
        preferred_time=preferred_time,
        added_at=now,
        priority=priority,
        preferred_sector=preferred_sector,
        notes=notes,
    )


def is_duplicate(
    entries: Sequence[WaitlistEntry],
    entry: WaitlistEntry,
    window_seconds: int = ServiceConfig.duplicate_window_seconds,
) -> bool:
    """
    Detect a double submission of the same enqueue.

    Matches the same id, or the same name, phone and preferred time added
    less than ``window_seconds`` apart.
    """
    for existing in entries:
        if existing.id == entry.id:
            return True
        if (
            existing.customer.name == entry.customer.name
            and existing.customer.phone == entry.customer.phone
            and existing.preferred_time == entry.preferred_time
            and abs((existing.added_at - entry.added_at).total_seconds()) < window_seconds
        ):
            return True
    return False


def add_to_waitlist(
    entries: Sequence[WaitlistEntry],
    entry: WaitlistEntry,
    config: ServiceConfig | None = None,
) -> tuple[list[WaitlistEntry], bool]:
    """
    Append an entry unless it duplicates one already queued.

    The duplicate window comes from ``config.duplicate_window_seconds``.
    """
    config = config or ServiceConfig()
    if is_duplicate(entries, entry, config.duplicate_window_seconds):
        logger.warning(
            "Ignoring duplicate waitlist entry %s for %s", entry.id, entry.customer.name
        )
        return list(entries), False

    logger.debug("Adding waitlist entry %s", entry.id)
    return [*entries, entry], True


def _matches(entry: WaitlistEntry, resource: Resource) -> bool:
    if not resource.capacity.fits(entry.party_size):
        return False
    return entry.preferred_sector is None or entry.preferred_sector == resource.sector_id


def _next_free_time(
    resource: Resource,
    bookings: Sequence[Booking],
    start: datetime,
    end: datetime,
    step_minutes: int,
    duration_minutes: int,
) -> datetime | None:
    current = start
    while current < end:
        if find_conflict(bookings, resource.id, current, duration_minutes) is None:
            return current
        current += timedelta(minutes=step_minutes)
    return None


def queue_position(entry: WaitlistEntry, queue: Sequence[WaitlistEntry]) -> int:
    """
    Zero-based rank of the entry among WAITING entries in enqueue order.

    An entry that is not queued yet ranks behind everyone currently waiting.
    """
    waiting = sorted(
        (e for e in queue if e.status is WaitlistStatus.WAITING),
        key=lambda e: e.added_at,
    )
    for position, e in enumerate(waiting):
        if e.id == entry.id:
            return position
    return len(waiting)


def estimate_wait_minutes(
    entry: WaitlistEntry,
    queue: Sequence[WaitlistEntry],
    resources: Sequence[Resource],
    bookings: Sequence[Booking],
    config: ServiceConfig,
    now: datetime,
) -> int:
    """
    Estimate how long a party will wait for a suitable table.

    The earliest time any matching table is free for an average meal is
    searched in slot steps until closing. If nothing frees up today the
    sentinel ``config.wait_sentinel`` is returned. Otherwise a queue penalty
    is added, halved in growth rate for VIP parties.
    """
    matching = [r for r in resources if _matches(entry, r)]
    if not matching:
        return config.wait_sentinel

    _, closing = service_day_bounds(now, config.open_hour, config.close_hour)

    best: int | None = None
    for resource in matching:
        free_at = _next_free_time(
            resource,
            bookings,
            now,
            closing,
            config.slot_minutes,
            config.average_dining_minutes,
        )
        if free_at is None:
            continue
        wait = max(0, math.ceil((free_at - now).total_seconds() / 60))
        best = wait if best is None else min(best, wait)

    if best is None:
        return config.wait_sentinel

    position = queue_position(entry, queue)
    if entry.priority is Priority.VIP:
        penalty = (position // VIP_PRIORITY_DIVISOR) * QUEUE_PENALTY_MINUTES
    else:
        penalty = position * QUEUE_PENALTY_MINUTES

    return best + penalty


def estimate_wait_times(
    queue: Sequence[WaitlistEntry],
    resources: Sequence[Resource],
    bookings: Sequence[Booking],
    config: ServiceConfig,
    now: datetime,
) -> list[WaitlistEntry]:
    """Return the queue with fresh estimates on every WAITING entry."""
    return [
        replace(
            entry,
            estimated_wait_minutes=estimate_wait_minutes(
                entry, queue, resources, bookings, config, now
            ),
        )
        if entry.status is WaitlistStatus.WAITING
        else entry
        for entry in queue
    ]


def _priority_key(entry: WaitlistEntry) -> tuple[int, int, datetime]:
    return (
        STATUS_RANK[entry.status],
        0 if entry.priority is Priority.VIP else 1,
        entry.added_at,
    )


def sort_by_priority(entries: Sequence[WaitlistEntry]) -> list[WaitlistEntry]:
    """Order entries by status, then VIP first, then longest waiting."""
    return sorted(entries, key=_priority_key)


def find_promotion_candidates(
    entries: Sequence[WaitlistEntry],
    resource: Resource,
    available_time: datetime,
    bookings: Sequence[Booking],
    config: ServiceConfig,
) -> list[WaitlistEntry]:
    """Rank the WAITING parties that could take a table freed at ``available_time``."""
    conflict = find_conflict(
        bookings, resource.id, available_time, config.average_dining_minutes
    )
    if conflict is not None:
        return []

    candidates = [
        e for e in entries if e.status is WaitlistStatus.WAITING and _matches(e, resource)
    ]
    return sort_by_priority(candidates)


def mark_notified(entry: WaitlistEntry, now: datetime) -> WaitlistEntry:
    return transition(entry, WaitlistStatus.NOTIFIED, now)


def send_notification(
    entry: WaitlistEntry,
    resource: Resource,
    available_time: datetime,
    now: datetime,
    sectors: Sequence[Sector] = (),
) -> Notification:
    """Simulate the SMS telling a party their table is ready."""
    sector_names = {s.id: s.name for s in sectors}
    sector_name = sector_names.get(resource.sector_id, resource.sector_id)
    people = "person" if entry.party_size == 1 else "people"

    message = (
        f"Hi {entry.customer.name}! Your table for {entry.party_size} {people} is ready. "
        f"{resource.name} ({sector_name}) is available at {available_time:%H:%M}. "
        "Please confirm your arrival."
    )
    logger.info("SMS to %s: %s", entry.customer.phone, message)

    return Notification(
        id=f"notif-{uuid.uuid4().hex[:12]}",
        entry_id=entry.id,
        phone=entry.customer.phone,
        message=message,
        sent_at=now,
    )


def promote_next(
    entries: Sequence[WaitlistEntry],
    resource: Resource,
    available_time: datetime,
    bookings: Sequence[Booking],
    config: ServiceConfig,
    now: datetime,
    sectors: Sequence[Sector] = (),
) -> tuple[list[WaitlistEntry], Notification | None]:
    """
    Offer a freed table to the head of the candidate list.

    Returns the updated queue and the notification sent, or the unchanged
    queue and None when no party fits.
    """
    candidates = find_promotion_candidates(entries, resource, available_time, bookings, config)
    if not candidates:
        return list(entries), None

    head = candidates[0]
    notification = send_notification(head, resource, available_time, now, sectors)
    notified = mark_notified(head, now)
    return [notified if e.id == head.id else e for e in entries], notification


def convert_to_booking(
    entry: WaitlistEntry,
    resource: Resource,
    start_time: datetime,
    bookings: Sequence[Booking],
    config: ServiceConfig,
    now: datetime | None = None,
) -> tuple[Verdict, WaitlistEntry]:
    """
    Turn a notified entry into a confirmed booking on ``resource``.

    The new booking goes through the same validation as any other. On
    success the entry moves to SEATED; on rejection it is returned unchanged.
    """
    if WaitlistStatus.SEATED not in TRANSITIONS[entry.status]:
        raise InvalidTransitionError(
            f"Waitlist entry {entry.id} cannot be seated from {entry.status.value}"
        )

    booking = Booking(
        id=f"booking-from-{entry.id}",
        resource_id=resource.id,
        customer=entry.customer,
        party_size=entry.party_size,
        start_time=start_time,
        duration_minutes=config.average_dining_minutes,
        status=BookingStatus.CONFIRMED,
        priority=entry.priority,
        notes=f"Converted from waitlist. {entry.notes}".strip(),
        source="waitlist",
        created_at=now,
        updated_at=now,
    )

    verdict = validate_booking(booking, bookings, config, resource=resource, now=now)
    if not verdict.allowed:
        logger.info("Could not seat waitlist entry %s: %s", entry.id, verdict.message)
        return verdict, entry

    return verdict, transition(entry, WaitlistStatus.SEATED, now)


def waitlist_stats(entries: Sequence[WaitlistEntry], now: datetime) -> WaitlistStats:
    """Summarize the queue for display."""
    waiting = [e for e in entries if e.status is WaitlistStatus.WAITING]
    seated = [e for e in entries if e.status is WaitlistStatus.SEATED]

    # Wait of a seated party runs from enqueue to the moment it was notified.
    # Entries seated without a notification have no measured wait and stay
    # out of both the sum and the count.
    waits = [
        (e.notified_at - e.added_at).total_seconds() / 60
        for e in seated
        if e.notified_at is not None
    ]
    average_wait = round_half_up(sum(waits) / len(waits)) if waits else 0

    longest = max(
        (round_half_up((now - e.added_at).total_seconds() / 60) for e in waiting),
        default=0,
    )

    return WaitlistStats(
        total_waiting=len(waiting),
        average_wait_minutes=average_wait,
        longest_wait_minutes=longest,
        vip_count=sum(1 for e in waiting if e.priority is Priority.VIP),
        conversion_rate=round_half_up(len(seated) / len(entries) * 100) if entries else 0,
    )
