"""Output formatting for tableslot."""

from collections.abc import Sequence

from tableslot.models import (
    AlternativeSlot,
    DailyKPIs,
    Priority,
    Recommendation,
    SeatingPlan,
    SectorOccupancy,
    SlotOccupancy,
    Verdict,
    WaitlistEntry,
    WaitlistStats,
)

LEVEL_MARKS = {"low": ".", "medium": "+", "high": "#", "full": "X"}


def format_verdict(verdict: Verdict) -> str:
    if verdict.allowed:
        return "OK: booking is valid"
    return f"REJECTED ({verdict.reason.value}): {verdict.message}"


def format_recommendations(recommendations: Sequence[Recommendation]) -> str:
    """Format a ranked list of tables."""
    if not recommendations:
        return "No tables available at the requested time."

    lines = ["=== Recommended Tables ==="]
    for rank, rec in enumerate(recommendations, start=1):
        marker = " *" if rec.is_optimal else ""
        lines.append(
            f"{rank:2d}. {rec.resource.name:<12} score {rec.score:3d}{marker}  {rec.reason}"
        )
    return "\n".join(lines)


def format_alternatives(alternatives: Sequence[AlternativeSlot]) -> str:
    if not alternatives:
        return "No alternative times found nearby."

    lines = ["=== Alternative Times ==="]
    for alt in alternatives:
        names = ", ".join(r.resource.name for r in alt.available_resources)
        lines.append(
            f"  {alt.start_time:%H:%M}-{alt.end_time:%H:%M} ({alt.offset_minutes:+d} min): "
            f"{len(alt.available_resources)} tables, {alt.total_capacity} seats [{names}]"
        )
    return "\n".join(lines)


def format_waitlist(entries: Sequence[WaitlistEntry], stats: WaitlistStats) -> str:
    """Format the waitlist in service order, followed by a summary."""
    lines = ["=== Waitlist ==="]
    if not entries:
        lines.append("  (empty)")

    for entry in entries:
        wait = ""
        if entry.estimated_wait_minutes is not None:
            wait = f"  ~{entry.estimated_wait_minutes} min"
        vip = " VIP" if entry.priority is Priority.VIP else ""
        lines.append(
            f"  [{entry.status.value:<9}] {entry.customer.name} ({entry.party_size}){vip}{wait}"
        )

    lines.append("")
    lines.append(f"Waiting: {stats.total_waiting} (VIP {stats.vip_count})")
    lines.append(f"Longest wait: {stats.longest_wait_minutes} min")
    lines.append(f"Average wait (seated): {stats.average_wait_minutes} min")
    lines.append(f"Conversion rate: {stats.conversion_rate}%")
    return "\n".join(lines)


def format_occupancy(
    slots: Sequence[SlotOccupancy],
    sectors: Sequence[SectorOccupancy],
    kpis: DailyKPIs | None = None,
) -> str:
    """Format per-slot occupancy as a bar chart plus sector stats."""
    lines = ["=== Occupancy by Slot ==="]
    for slot in slots:
        bar = LEVEL_MARKS[slot.level.value] * (slot.occupancy_percent // 5)
        lines.append(
            f"  {slot.label} {slot.occupied_count:3d}/{slot.total_tables:<3d} "
            f"{slot.occupancy_percent:3d}% {bar}"
        )

    lines.append("")
    lines.append("=== Sectors ===")
    for sector in sectors:
        lines.append(
            f"  {sector.sector_name}: avg {sector.average_occupancy}%, "
            f"peak {sector.peak_occupancy}% at {sector.peak_label}, "
            f"utilization {sector.utilization_score}/100"
        )

    if kpis:
        lines.append("")
        lines.append("=== Day Summary ===")
        lines.append(f"Bookings: {kpis.total_bookings}")
        lines.append(f"Average occupancy: {kpis.average_occupancy}%")
        lines.append(f"Peak: {kpis.peak_occupancy}% at {kpis.peak_label}")
        lines.append(f"Turns per table: {kpis.turns_per_table}")
        if kpis.most_popular_sector:
            lines.append(f"Busiest sector: {kpis.most_popular_sector}")

    return "\n".join(lines)


def format_occupancy_csv(slots: Sequence[SlotOccupancy]) -> str:
    """Format per-slot occupancy as CSV for export."""
    lines: list[str] = ["slot,occupied,total,percent,seats_used,level"]
    for slot in slots:
        lines.append(
            f"{slot.label},{slot.occupied_count},{slot.total_tables},"
            f"{slot.occupancy_percent},{slot.total_capacity_used},{slot.level.value}"
        )
    return "\n".join(lines)


def format_seating_plan(plan: SeatingPlan, names: dict[str, str] | None = None) -> str:
    """Format a seating plan; ``names`` maps entry ids and table ids to display names."""
    names = names or {}
    if not plan.assignments:
        return "No waiting party can be seated right now."

    lines = ["=== Seating Plan ==="]
    for a in plan.assignments:
        lines.append(
            f"  {names.get(a.entry_id, a.entry_id)} -> "
            f"{names.get(a.resource_id, a.resource_id)} (score {a.score})"
        )
    if plan.unseated:
        lines.append("")
        lines.append("Still waiting: " + ", ".join(names.get(i, i) for i in plan.unseated))
    return "\n".join(lines)
