"""Data models for tableslot."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum


class BookingStatus(Enum):
    """Lifecycle status of a booking."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SEATED = "SEATED"
    FINISHED = "FINISHED"
    NO_SHOW = "NO_SHOW"
    CANCELLED = "CANCELLED"


# Bookings in these states never block a table
INACTIVE_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.FINISHED})


class Priority(Enum):
    STANDARD = "STANDARD"
    VIP = "VIP"
    LARGE_GROUP = "LARGE_GROUP"


class WaitlistStatus(Enum):
    """Lifecycle status of a waitlist entry."""

    WAITING = "WAITING"
    NOTIFIED = "NOTIFIED"
    SEATED = "SEATED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class Reason(Enum):
    """Why a scheduling decision was rejected."""

    CONFLICT = "CONFLICT"
    OUTSIDE_SERVICE_HOURS = "OUTSIDE_SERVICE_HOURS"
    IN_THE_PAST = "IN_THE_PAST"
    CAPACITY_MISMATCH = "CAPACITY_MISMATCH"


class OccupancyLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    FULL = "full"


class InvalidTransitionError(ValueError):
    """Raised when a status change is not allowed by the lifecycle."""


@dataclass(frozen=True)
class Sector:
    """A named area of the dining room."""

    id: str
    name: str
    color: str = ""
    sort_order: int = 0


@dataclass(frozen=True)
class Capacity:
    """Inclusive party-size bounds of a table."""

    min: int
    max: int

    def __post_init__(self):
        if self.min < 1 or self.max < self.min:
            raise ValueError(f"Invalid capacity range {self.min}-{self.max}")

    def fits(self, party_size: int) -> bool:
        return self.min <= party_size <= self.max


@dataclass(frozen=True)
class Resource:
    """A schedulable table."""

    id: str
    sector_id: str
    name: str
    capacity: Capacity
    sort_order: int = 0


@dataclass(frozen=True)
class Customer:
    name: str
    phone: str
    email: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class Booking:
    """A time-boxed assignment of a party to a table."""

    id: str
    resource_id: str
    customer: Customer
    party_size: int
    start_time: datetime
    duration_minutes: int
    status: BookingStatus = BookingStatus.CONFIRMED
    priority: Priority = Priority.STANDARD
    notes: str = ""
    source: str | None = None  # phone, web, walkin, app
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(minutes=self.duration_minutes)

    @property
    def is_active(self) -> bool:
        return self.status not in INACTIVE_STATUSES


@dataclass(frozen=True)
class WaitlistEntry:
    """A party queued for the next suitable table."""

    id: str
    customer: Customer
    party_size: int
    preferred_time: datetime
    added_at: datetime
    priority: Priority = Priority.STANDARD
    status: WaitlistStatus = WaitlistStatus.WAITING
    preferred_sector: str | None = None  # sector id
    notes: str = ""
    notified_at: datetime | None = None
    estimated_wait_minutes: int | None = None  # derived, recomputed on read

    def __post_init__(self):
        if self.priority is Priority.LARGE_GROUP:
            raise ValueError("Waitlist entries are either STANDARD or VIP")
        if self.party_size < 1:
            raise ValueError(f"Party size must be positive, got {self.party_size}")


@dataclass(frozen=True)
class Verdict:
    """Outcome of a scheduling decision."""

    allowed: bool
    reason: Reason | None = None
    message: str | None = None
    conflict_with: str | None = None  # id of the blocking booking
    booking: Booking | None = None  # proposed booking when allowed


@dataclass(frozen=True)
class Recommendation:
    """A table that can host the party, with its suitability score."""

    resource: Resource
    score: int  # 0-100
    reason: str
    is_optimal: bool


@dataclass(frozen=True)
class AlternativeSlot:
    """A nearby start time at which at least one table is free."""

    start_time: datetime
    end_time: datetime
    offset_minutes: int  # signed difference from the requested start
    available_resources: list[Recommendation]
    total_capacity: int


@dataclass(frozen=True)
class AvailabilityStats:
    total_tables: int
    available_tables: int
    occupancy_percent: int
    available_capacity: int


@dataclass(frozen=True)
class CustomerPattern:
    """What a customer's booking history suggests for the next booking."""

    booking_count: int
    is_frequent_customer: bool
    is_potential_vip: bool
    average_party_size: int
    preferred_sector: str | None
    suggested_priority: Priority
    confidence: int  # 0-100, grows with the amount of history


@dataclass(frozen=True)
class SlotOccupancy:
    """Occupancy of the dining room (or a sector) for one time slot."""

    slot: int  # minutes since midnight
    label: str
    total_tables: int
    occupied_count: int
    available_tables: int
    occupancy_percent: int
    total_capacity: int
    total_capacity_used: int  # seats taken by the overlapping parties
    level: OccupancyLevel


@dataclass(frozen=True)
class SectorOccupancy:
    sector_id: str
    sector_name: str
    total_tables: int
    average_occupancy: int
    peak_slot: int
    peak_label: str
    peak_occupancy: int
    utilization_score: int  # 0-100


@dataclass(frozen=True)
class DailyKPIs:
    total_bookings: int
    average_occupancy: int
    peak_occupancy: int
    peak_label: str
    utilization_score: int
    turns_per_table: float
    most_popular_sector: str | None


@dataclass(frozen=True)
class DayComparison:
    current_bookings: int
    comparison_bookings: int
    current_occupancy: int
    comparison_occupancy: int
    bookings_change: int  # percent
    occupancy_change: int  # percent
    trend: str  # up, down, stable


@dataclass(frozen=True)
class Heatmap:
    dates: list[str]
    labels: list[str]
    data: list[list[int]]  # [day][slot] = occupancy percent


@dataclass(frozen=True)
class WaitlistStats:
    total_waiting: int
    average_wait_minutes: int
    longest_wait_minutes: int
    vip_count: int
    conversion_rate: int  # percent of entries that were seated


@dataclass(frozen=True)
class Notification:
    """Record of a simulated SMS sent to a waiting party."""

    id: str
    entry_id: str
    phone: str
    message: str
    sent_at: datetime
    success: bool = True


@dataclass(frozen=True)
class SeatAssignment:
    entry_id: str
    resource_id: str
    score: int


@dataclass
class SeatingPlan:
    """Result of the joint seating optimization."""

    assignments: list[SeatAssignment] = field(default_factory=list)
    total_score: float = 0.0
    unseated: list[str] = field(default_factory=list)  # entry ids left waiting
