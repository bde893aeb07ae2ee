"""Table recommendation and alternative-slot search for tableslot."""

from collections.abc import Sequence
from datetime import datetime, timedelta

from tableslot.analytics import round_half_up
from tableslot.models import (
    AlternativeSlot,
    AvailabilityStats,
    Booking,
    CustomerPattern,
    Priority,
    Recommendation,
    Resource,
    Sector,
)
from tableslot.validation import find_conflict, is_outside_service_hours

# Scoring policy. Tunable, not structural.
PERFECT_MATCH_SCORE = 100
WASTE_PENALTY_PER_SEAT = 5
PREFERRED_SECTOR_BONUS = 10
UTILIZATION_BONUS = 15
UTILIZATION_BAND = (0.8, 1.0)

DEFAULT_SEARCH_WINDOWS = (15, 30, 60)


def _score_table(resource: Resource, party_size: int, preferred_sector: str | None) -> int:
    score = PERFECT_MATCH_SCORE
    score -= (resource.capacity.max - party_size) * WASTE_PENALTY_PER_SEAT

    if preferred_sector is not None and resource.sector_id == preferred_sector:
        score += PREFERRED_SECTOR_BONUS

    utilization = party_size / resource.capacity.max
    if UTILIZATION_BAND[0] <= utilization <= UTILIZATION_BAND[1]:
        score += UTILIZATION_BONUS

    return max(0, min(PERFECT_MATCH_SCORE, score))


def _describe(
    resource: Resource,
    party_size: int,
    preferred_sector: str | None,
    sector_names: dict[str, str],
) -> str:
    """Human-readable explanation of why a table is recommended."""
    wasted = resource.capacity.max - party_size
    utilization = round_half_up(party_size / resource.capacity.max * 100)

    reason = f"Capacity {resource.capacity.min}-{resource.capacity.max}"
    if wasted == 0:
        reason += " (perfect fit)"
    elif wasted <= 2:
        reason += f" ({wasted} free seat{'s' if wasted > 1 else ''})"
    else:
        reason += f" (utilization {utilization}%)"

    if preferred_sector is not None and resource.sector_id == preferred_sector:
        reason += f" • in {sector_names.get(resource.sector_id, resource.sector_id)}"

    return reason


def recommend(
    resources: Sequence[Resource],
    bookings: Sequence[Booking],
    party_size: int,
    start_time: datetime,
    duration_minutes: int,
    preferred_sector: str | None = None,
    sectors: Sequence[Sector] = (),
) -> list[Recommendation]:
    """
    Rank the tables that can host a party at the requested time.

    Tables with a conflicting booking or a capacity range that excludes the
    party are skipped. The rest are scored 0-100 and sorted best first;
    equal scores keep catalog order.
    """
    sector_names = {s.id: s.name for s in sectors}
    recommendations: list[Recommendation] = []

    for resource in resources:
        if find_conflict(bookings, resource.id, start_time, duration_minutes) is not None:
            continue
        if not resource.capacity.fits(party_size):
            continue

        score = _score_table(resource, party_size, preferred_sector)
        recommendations.append(
            Recommendation(
                resource=resource,
                score=score,
                reason=_describe(resource, party_size, preferred_sector, sector_names),
                is_optimal=score == PERFECT_MATCH_SCORE,
            )
        )

    # sorted() is stable, so ties keep catalog order
    return sorted(recommendations, key=lambda r: -r.score)


def _candidate_slot(
    resources: Sequence[Resource],
    bookings: Sequence[Booking],
    party_size: int,
    start_time: datetime,
    duration_minutes: int,
    offset_minutes: int,
) -> AlternativeSlot:
    available = recommend(resources, bookings, party_size, start_time, duration_minutes)
    return AlternativeSlot(
        start_time=start_time,
        end_time=start_time + timedelta(minutes=duration_minutes),
        offset_minutes=offset_minutes,
        available_resources=available,
        total_capacity=sum(r.resource.capacity.max for r in available),
    )


def find_alternatives(
    resources: Sequence[Resource],
    bookings: Sequence[Booking],
    party_size: int,
    requested_start: datetime,
    duration_minutes: int,
    windows: Sequence[int] = DEFAULT_SEARCH_WINDOWS,
) -> list[AlternativeSlot]:
    """
    Look for free tables shortly before and after the requested start.

    Each window is tried earlier then later. Only slots with at least one
    available table are kept, closest first. Slots are not clipped to the
    service window; see ``filter_within_service_hours``.
    """
    alternatives: list[AlternativeSlot] = []

    for window in windows:
        if window <= 0:
            raise ValueError(f"Search windows must be positive, got {window}")
        for offset in (-window, window):
            slot = _candidate_slot(
                resources,
                bookings,
                party_size,
                requested_start + timedelta(minutes=offset),
                duration_minutes,
                offset,
            )
            if slot.available_resources:
                alternatives.append(slot)

    return sorted(alternatives, key=lambda a: abs(a.offset_minutes))


def filter_within_service_hours(
    alternatives: Sequence[AlternativeSlot],
    open_hour: int,
    close_hour: int,
) -> list[AlternativeSlot]:
    """Drop alternatives that start or end outside the service window."""
    return [
        a
        for a in alternatives
        if not is_outside_service_hours(
            a.start_time,
            int((a.end_time - a.start_time).total_seconds() // 60),
            open_hour,
            close_hour,
        )
    ]


def availability_stats(
    resources: Sequence[Resource],
    bookings: Sequence[Booking],
    start_time: datetime,
    duration_minutes: int,
) -> AvailabilityStats:
    """Summarize how many tables are free for an interval."""
    free = [
        r
        for r in resources
        if find_conflict(bookings, r.id, start_time, duration_minutes) is None
    ]
    total = len(resources)
    occupancy = round_half_up((total - len(free)) / total * 100) if total else 0

    return AvailabilityStats(
        total_tables=total,
        available_tables=len(free),
        occupancy_percent=occupancy,
        available_capacity=sum(r.capacity.max for r in free),
    )


# Booking-history thresholds for customer suggestions
FREQUENT_CUSTOMER_BOOKINGS = 3
POTENTIAL_VIP_BOOKINGS = 5
CONFIDENCE_PER_BOOKING = 20


def analyze_customer_pattern(
    phone: str,
    bookings: Sequence[Booking],
    resources: Sequence[Resource] = (),
) -> CustomerPattern:
    """
    Derive booking suggestions from a customer's history, matched by phone.

    A customer with 5+ bookings, or any past VIP booking, is a potential VIP
    and gets VIP suggested. LARGE_GROUP is never suggested from history: a
    customer with 10+ bookings already qualifies as a potential VIP.
    Confidence grows by 20 points per booking, capped at 100. The preferred
    sector is the most booked one and needs ``resources`` to resolve tables.
    """
    history = [b for b in bookings if b.customer.phone == phone]
    count = len(history)

    average_party = round_half_up(sum(b.party_size for b in history) / count) if count else 0

    sector_of = {r.id: r.sector_id for r in resources}
    sector_counts: dict[str, int] = {}
    for b in history:
        if b.resource_id in sector_of:
            sector = sector_of[b.resource_id]
            sector_counts[sector] = sector_counts.get(sector, 0) + 1
    # max() keeps the first-seen sector on ties
    preferred_sector = max(sector_counts, key=sector_counts.__getitem__, default=None)

    is_potential_vip = count >= POTENTIAL_VIP_BOOKINGS or any(
        b.priority is Priority.VIP for b in history
    )
    suggested = Priority.VIP if is_potential_vip else Priority.STANDARD

    return CustomerPattern(
        booking_count=count,
        is_frequent_customer=count >= FREQUENT_CUSTOMER_BOOKINGS,
        is_potential_vip=is_potential_vip,
        average_party_size=average_party,
        preferred_sector=preferred_sector,
        suggested_priority=suggested,
        confidence=min(100, count * CONFIDENCE_PER_BOOKING),
    )
