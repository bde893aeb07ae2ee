"""Occupancy analytics for tableslot."""

from collections.abc import Sequence
from datetime import date, timedelta, tzinfo

import numpy as np

from tableslot.config import ServiceConfig
from tableslot.models import (
    Booking,
    DailyKPIs,
    DayComparison,
    Heatmap,
    OccupancyLevel,
    Resource,
    Sector,
    SectorOccupancy,
    SlotOccupancy,
)
from tableslot.timegrid import generate_slots, minutes_to_label, slot_to_timestamp
from tableslot.validation import find_conflict

OPTIMAL_BAND = (70, 90)
LOW_THRESHOLD = 50
LOW_SLOT_PENALTY = 30
TREND_THRESHOLD = 5


def occupancy_level(percent: int) -> OccupancyLevel:
    if percent >= 100:
        return OccupancyLevel.FULL
    if percent >= 90:
        return OccupancyLevel.HIGH
    if percent >= 70:
        return OccupancyLevel.MEDIUM
    return OccupancyLevel.LOW


def round_half_up(values):
    """Round halves up (2.5 -> 3, -2.5 -> -2); scalars give an int, arrays an int array."""
    rounded = np.floor(np.asarray(values, dtype=float) + 0.5).astype(int)
    return int(rounded) if rounded.ndim == 0 else rounded


def _percentages(occupied_counts: np.ndarray, total: int) -> np.ndarray:
    if total == 0:
        return np.zeros(len(occupied_counts), dtype=int)
    return round_half_up(occupied_counts * 100 / total)


def _occupancy_matrix(
    resources: Sequence[Resource],
    bookings: Sequence[Booking],
    slots: list[int],
    day: date,
    tz: tzinfo,
    slot_minutes: int,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Check every (table, slot) cell with a slot-wide interval.

    Returns a boolean occupancy matrix and the matching seats-used matrix,
    both shaped (tables, slots).
    """
    party_sizes = {b.id: b.party_size for b in bookings}
    occupied = np.zeros((len(resources), len(slots)), dtype=bool)
    seats = np.zeros((len(resources), len(slots)), dtype=int)

    for s_idx, slot in enumerate(slots):
        slot_start = slot_to_timestamp(slot, day, tz)
        for r_idx, resource in enumerate(resources):
            conflict = find_conflict(bookings, resource.id, slot_start, slot_minutes)
            if conflict is not None:
                occupied[r_idx, s_idx] = True
                seats[r_idx, s_idx] = party_sizes[conflict]

    return occupied, seats


def hourly_capacity(
    resources: Sequence[Resource],
    bookings: Sequence[Booking],
    day: date,
    tz: tzinfo,
    config: ServiceConfig,
) -> list[SlotOccupancy]:
    """
    Compute occupancy for every slot of the service day.

    A table counts as occupied in a slot when any active booking overlaps
    the slot's [start, start + slot width) interval.
    """
    slots = generate_slots(config.open_hour, config.close_hour, config.slot_minutes)
    occupied, seats = _occupancy_matrix(
        resources, bookings, slots, day, tz, config.slot_minutes
    )

    total_tables = len(resources)
    total_capacity = sum(r.capacity.max for r in resources)
    occupied_counts = occupied.sum(axis=0)
    seats_used = seats.sum(axis=0)
    percents = _percentages(occupied_counts, total_tables)

    return [
        SlotOccupancy(
            slot=slot,
            label=minutes_to_label(slot),
            total_tables=total_tables,
            occupied_count=int(occupied_counts[i]),
            available_tables=total_tables - int(occupied_counts[i]),
            occupancy_percent=int(percents[i]),
            total_capacity=total_capacity,
            total_capacity_used=int(seats_used[i]),
            level=occupancy_level(int(percents[i])),
        )
        for i, slot in enumerate(slots)
    ]


def utilization_score(percents: Sequence[int] | np.ndarray) -> int:
    """
    Score 0-100 for how well capacity is spread over the day.

    Rewards the share of slots in the 70-90% band and penalizes the share of
    slots below 50%.
    """
    values = np.asarray(percents)
    if values.size == 0:
        return 0

    optimal = np.mean((values >= OPTIMAL_BAND[0]) & (values <= OPTIMAL_BAND[1]))
    low = np.mean(values < LOW_THRESHOLD)
    score = round_half_up(optimal * 100 - low * LOW_SLOT_PENALTY)
    return max(0, min(100, score))


def sector_capacity(
    resources: Sequence[Resource],
    bookings: Sequence[Booking],
    day: date,
    tz: tzinfo,
    config: ServiceConfig,
    sectors: Sequence[Sector] = (),
) -> list[SectorOccupancy]:
    """Per-sector occupancy, busiest sector first."""
    slots = generate_slots(config.open_hour, config.close_hour, config.slot_minutes)
    occupied, _ = _occupancy_matrix(resources, bookings, slots, day, tz, config.slot_minutes)
    sector_names = {s.id: s.name for s in sectors}

    # Group table rows by sector, keeping first-seen order
    rows_by_sector: dict[str, list[int]] = {}
    for idx, resource in enumerate(resources):
        rows_by_sector.setdefault(resource.sector_id, []).append(idx)

    stats: list[SectorOccupancy] = []
    for sector_id, rows in rows_by_sector.items():
        percents = _percentages(occupied[rows].sum(axis=0), len(rows))
        peak_idx = int(np.argmax(percents))
        stats.append(
            SectorOccupancy(
                sector_id=sector_id,
                sector_name=sector_names.get(sector_id, sector_id),
                total_tables=len(rows),
                average_occupancy=round_half_up(percents.mean()),
                peak_slot=slots[peak_idx],
                peak_label=minutes_to_label(slots[peak_idx]),
                peak_occupancy=int(percents[peak_idx]),
                utilization_score=utilization_score(percents),
            )
        )

    return sorted(stats, key=lambda s: -s.average_occupancy)


def bookings_on(bookings: Sequence[Booking], day: date, tz: tzinfo) -> list[Booking]:
    """Bookings whose start falls on ``day`` in the given timezone."""
    return [b for b in bookings if b.start_time.astimezone(tz).date() == day]


def _day_summary(
    resources: Sequence[Resource],
    bookings: Sequence[Booking],
    day: date,
    tz: tzinfo,
    config: ServiceConfig,
) -> tuple[list[SlotOccupancy], np.ndarray]:
    hourly = hourly_capacity(resources, bookings, day, tz, config)
    return hourly, np.array([s.occupancy_percent for s in hourly])


def daily_kpis(
    resources: Sequence[Resource],
    bookings: Sequence[Booking],
    day: date,
    tz: tzinfo,
    config: ServiceConfig,
    sectors: Sequence[Sector] = (),
) -> DailyKPIs:
    """Headline metrics for one service day."""
    day_bookings = bookings_on(bookings, day, tz)
    hourly, percents = _day_summary(resources, bookings, day, tz, config)
    sector_stats = sector_capacity(resources, bookings, day, tz, config, sectors)
    peak_idx = int(np.argmax(percents))

    return DailyKPIs(
        total_bookings=len(day_bookings),
        average_occupancy=round_half_up(percents.mean()),
        peak_occupancy=int(percents[peak_idx]),
        peak_label=hourly[peak_idx].label,
        utilization_score=utilization_score(percents),
        turns_per_table=round(len(day_bookings) / len(resources), 1) if resources else 0.0,
        most_popular_sector=sector_stats[0].sector_name if sector_stats else None,
    )


def heatmap(
    resources: Sequence[Resource],
    bookings: Sequence[Booking],
    start_day: date,
    tz: tzinfo,
    config: ServiceConfig,
    days: int = 7,
) -> Heatmap:
    """Occupancy percentages for ``days`` consecutive service days."""
    slots = generate_slots(config.open_hour, config.close_hour, config.slot_minutes)
    dates: list[str] = []
    data = np.zeros((days, len(slots)), dtype=int)

    for offset in range(days):
        day = start_day + timedelta(days=offset)
        dates.append(day.isoformat())
        _, percents = _day_summary(resources, bookings, day, tz, config)
        data[offset] = percents

    return Heatmap(
        dates=dates,
        labels=[minutes_to_label(s) for s in slots],
        data=data.tolist(),
    )


def percent_change(old: int, new: int) -> int:
    if old == 0:
        return 100 if new > 0 else 0
    return round_half_up((new - old) / old * 100)


def compare_days(
    resources: Sequence[Resource],
    bookings: Sequence[Booking],
    current_day: date,
    comparison_day: date,
    tz: tzinfo,
    config: ServiceConfig,
) -> DayComparison:
    """Compare booking volume and average occupancy between two days."""
    current = daily_kpis(resources, bookings, current_day, tz, config)
    previous = daily_kpis(resources, bookings, comparison_day, tz, config)
    occupancy_change = percent_change(previous.average_occupancy, current.average_occupancy)

    trend = "stable"
    if occupancy_change > TREND_THRESHOLD:
        trend = "up"
    elif occupancy_change < -TREND_THRESHOLD:
        trend = "down"

    return DayComparison(
        current_bookings=current.total_bookings,
        comparison_bookings=previous.total_bookings,
        current_occupancy=current.average_occupancy,
        comparison_occupancy=previous.average_occupancy,
        bookings_change=percent_change(previous.total_bookings, current.total_bookings),
        occupancy_change=occupancy_change,
        trend=trend,
    )
