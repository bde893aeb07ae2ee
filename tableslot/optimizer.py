"""ILP-based joint seating of waitlisted parties."""

from collections.abc import Sequence
from datetime import datetime

import numpy as np
from scipy.optimize import Bounds, LinearConstraint, milp

from tableslot.config import ServiceConfig
from tableslot.models import (
    Booking,
    Priority,
    Resource,
    SeatAssignment,
    SeatingPlan,
    WaitlistEntry,
    WaitlistStatus,
)
from tableslot.recommend import recommend
from tableslot.waitlist import sort_by_priority

# Seating one more party always outweighs any score difference
SEATED_PARTY_WEIGHT = 1000.0
VIP_BONUS = 25.0


def _feasible_pairs(
    entries: list[WaitlistEntry],
    resources: Sequence[Resource],
    bookings: Sequence[Booking],
    at_time: datetime,
    duration: int,
) -> dict[tuple[int, int], int]:
    """Map (entry index, table index) -> recommendation score for every feasible pair."""
    table_index = {r.id: idx for idx, r in enumerate(resources)}
    pairs: dict[tuple[int, int], int] = {}

    for e_idx, entry in enumerate(entries):
        for rec in recommend(
            resources,
            bookings,
            entry.party_size,
            at_time,
            duration,
            preferred_sector=entry.preferred_sector,
        ):
            # A preferred sector is a hard constraint for waitlisted parties
            if entry.preferred_sector and rec.resource.sector_id != entry.preferred_sector:
                continue
            pairs[(e_idx, table_index[rec.resource.id])] = rec.score

    return pairs


def optimize_seating(
    entries: Sequence[WaitlistEntry],
    resources: Sequence[Resource],
    bookings: Sequence[Booking],
    at_time: datetime,
    config: ServiceConfig,
) -> SeatingPlan:
    """
    Assign waiting parties to tables free at ``at_time`` using Integer Linear Programming.

    Each party gets at most one table and each table at most one party. The
    objective seats as many parties as possible, then prefers higher
    recommendation scores, with a bonus for VIP parties. Like ``recommend``,
    the plan is advisory.
    """
    waiting = sort_by_priority([e for e in entries if e.status is WaitlistStatus.WAITING])
    pairs = _feasible_pairs(
        waiting, resources, bookings, at_time, config.average_dining_minutes
    )

    if not pairs:
        return SeatingPlan(unseated=[e.id for e in waiting])

    # One binary variable per feasible (entry, table) pair
    keys = list(pairs)
    num_vars = len(keys)

    c = np.zeros(num_vars)
    for var_idx, (e_idx, t_idx) in enumerate(keys):
        weight = SEATED_PARTY_WEIGHT + pairs[(e_idx, t_idx)]
        if waiting[e_idx].priority is Priority.VIP:
            weight += VIP_BONUS
        c[var_idx] = -weight  # Negate because milp minimizes

    A_rows: list[np.ndarray] = []

    # Constraint 1: Each party at most one table
    for e_idx in range(len(waiting)):
        row = np.zeros(num_vars)
        for var_idx, (pe, _pt) in enumerate(keys):
            if pe == e_idx:
                row[var_idx] = 1.0
        if row.any():
            A_rows.append(row)

    # Constraint 2: Each table at most one party
    for t_idx in range(len(resources)):
        row = np.zeros(num_vars)
        for var_idx, (_pe, pt) in enumerate(keys):
            if pt == t_idx:
                row[var_idx] = 1.0
        if row.any():
            A_rows.append(row)

    constraints = [LinearConstraint(np.array(A_rows), -np.inf, np.ones(len(A_rows)))]
    bounds = Bounds(np.zeros(num_vars), np.ones(num_vars))
    integrality = np.ones(num_vars, dtype=np.intp)  # All binary

    result = milp(c, constraints=constraints, bounds=bounds, integrality=integrality)

    if not result.success:
        return SeatingPlan(unseated=[e.id for e in waiting])

    assert result.x is not None  # Guaranteed by result.success check above
    assignments: list[SeatAssignment] = []
    seated: set[int] = set()
    for var_idx, (e_idx, t_idx) in enumerate(keys):
        if result.x[var_idx] > 0.5:  # Binary, so check > 0.5
            assignments.append(
                SeatAssignment(
                    entry_id=waiting[e_idx].id,
                    resource_id=resources[t_idx].id,
                    score=pairs[(e_idx, t_idx)],
                )
            )
            seated.add(e_idx)

    # Keep the plan in service order
    order = {e.id: idx for idx, e in enumerate(waiting)}
    assignments.sort(key=lambda a: order[a.entry_id])

    return SeatingPlan(
        assignments=assignments,
        total_score=float(sum(a.score for a in assignments)),
        unseated=[e.id for idx, e in enumerate(waiting) if idx not in seated],
    )
