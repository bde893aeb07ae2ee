"""YAML parsing for tableslot floor files."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

import yaml

from tableslot.config import ServiceConfig
from tableslot.models import (
    Booking,
    BookingStatus,
    Capacity,
    Customer,
    Priority,
    Resource,
    Sector,
    WaitlistEntry,
    WaitlistStatus,
)
from tableslot.timegrid import parse_timestamp

E = TypeVar("E", bound=Enum)


@dataclass
class Floor:
    """Everything the engine needs about one restaurant, loaded from YAML."""

    sectors: list[Sector] = field(default_factory=list)
    resources: list[Resource] = field(default_factory=list)
    bookings: list[Booking] = field(default_factory=list)
    waitlist: list[WaitlistEntry] = field(default_factory=list)
    config: ServiceConfig = field(default_factory=ServiceConfig)

    def resource(self, resource_id: str) -> Resource:
        for r in self.resources:
            if r.id == resource_id:
                return r
        raise KeyError(f"Unknown table: {resource_id}")


def _enum(enum_cls: type[E], value: str | None, default: E, where: str) -> E:
    if value is None:
        return default
    try:
        return enum_cls(str(value).upper())
    except ValueError as e:
        choices = ", ".join(m.value for m in enum_cls)
        raise ValueError(f"{where}: unknown {enum_cls.__name__} {value!r} ({choices})") from e


def _require(entry: dict[str, Any], key: str, where: str) -> Any:
    if key not in entry:
        raise ValueError(f"{where}: missing '{key}'")
    return entry[key]


def _customer(data: dict[str, Any], where: str) -> Customer:
    return Customer(
        name=str(_require(data, "name", where)),
        phone=str(data.get("phone", "")),
        email=data.get("email"),
        notes=data.get("notes"),
    )


def _optional_timestamp(value: Any) -> datetime | None:
    return parse_timestamp(value) if value is not None else None


def parse_floor_data(data: dict[str, Any] | None) -> Floor:
    """Build a Floor from an already-loaded YAML mapping."""
    if not data:
        return Floor()

    sectors = [
        Sector(
            id=str(_require(s, "id", "sector")),
            name=str(s.get("name", s["id"])),
            color=s.get("color", ""),
            sort_order=int(s.get("sort_order", idx)),
        )
        for idx, s in enumerate(data.get("sectors") or [])
    ]
    sector_ids = {s.id for s in sectors}

    resources: list[Resource] = []
    for idx, t in enumerate(data.get("tables") or []):
        where = f"table {t.get('id', idx)}"
        sector_id = str(_require(t, "sector", where))
        if sector_ids and sector_id not in sector_ids:
            raise ValueError(f"{where}: unknown sector {sector_id!r}")
        capacity = _require(t, "capacity", where)
        resources.append(
            Resource(
                id=str(_require(t, "id", where)),
                sector_id=sector_id,
                name=str(t.get("name", t["id"])),
                capacity=Capacity(min=int(capacity["min"]), max=int(capacity["max"])),
                sort_order=int(t.get("sort_order", idx)),
            )
        )
    resource_ids = {r.id for r in resources}

    bookings: list[Booking] = []
    for idx, b in enumerate(data.get("bookings") or []):
        where = f"booking {b.get('id', idx)}"
        resource_id = str(_require(b, "table", where))
        if resource_id not in resource_ids:
            raise ValueError(f"{where}: unknown table {resource_id!r}")
        duration = int(_require(b, "duration", where))
        if duration < 0:
            raise ValueError(f"{where}: negative duration")
        bookings.append(
            Booking(
                id=str(_require(b, "id", where)),
                resource_id=resource_id,
                customer=_customer(_require(b, "customer", where), where),
                party_size=int(_require(b, "party_size", where)),
                start_time=parse_timestamp(_require(b, "start", where)),
                duration_minutes=duration,
                status=_enum(BookingStatus, b.get("status"), BookingStatus.CONFIRMED, where),
                priority=_enum(Priority, b.get("priority"), Priority.STANDARD, where),
                notes=b.get("notes") or "",
                source=b.get("source"),
                created_at=_optional_timestamp(b.get("created_at")),
                updated_at=_optional_timestamp(b.get("updated_at")),
            )
        )

    waitlist: list[WaitlistEntry] = []
    for idx, w in enumerate(data.get("waitlist") or []):
        where = f"waitlist entry {w.get('id', idx)}"
        waitlist.append(
            WaitlistEntry(
                id=str(_require(w, "id", where)),
                customer=_customer(_require(w, "customer", where), where),
                party_size=int(_require(w, "party_size", where)),
                preferred_time=parse_timestamp(_require(w, "preferred_time", where)),
                added_at=parse_timestamp(_require(w, "added_at", where)),
                priority=_enum(Priority, w.get("priority"), Priority.STANDARD, where),
                status=_enum(WaitlistStatus, w.get("status"), WaitlistStatus.WAITING, where),
                preferred_sector=w.get("preferred_sector"),
                notes=w.get("notes") or "",
                notified_at=_optional_timestamp(w.get("notified_at")),
            )
        )

    return Floor(
        sectors=sectors,
        resources=resources,
        bookings=bookings,
        waitlist=waitlist,
        config=ServiceConfig.from_mapping(data.get("service")),
    )


def parse_floor_yaml(yaml_path: Path) -> Floor:
    """Parse a floor YAML file."""
    with yaml_path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return parse_floor_data(data)


def create_floor_template(output_path: Path) -> None:
    """Create a starter floor YAML file."""
    template = {
        "service": {"open_hour": 11, "close_hour": 24, "slot_minutes": 15},
        "sectors": [{"id": "main", "name": "Main Hall"}],
        "tables": [
            {"id": "T1", "sector": "main", "name": "Table 1", "capacity": {"min": 2, "max": 4}}
        ],
        "bookings": [
            {
                "id": "B1",
                "table": "T1",
                "customer": {"name": "Guest Name", "phone": "+1 555 0100"},
                "party_size": 2,
                "start": "2025-10-15T20:00:00-03:00",
                "duration": 90,
                "status": "CONFIRMED",
            }
        ],
        "waitlist": [],
    }

    # Add a comment header
    header = """\
# Floor file for tableslot
# Describe sectors, tables, current bookings and the waitlist.
#
# Timestamps are ISO-8601 with a UTC offset, e.g. 2025-10-15T20:00:00-03:00
#
# Booking status options: PENDING, CONFIRMED, SEATED, FINISHED, NO_SHOW, CANCELLED
# Booking priority options: STANDARD, VIP, LARGE_GROUP
# Waitlist status options: WAITING, NOTIFIED, SEATED, CANCELLED, NO_SHOW
#
# Example waitlist entry:
#   - id: W1
#     customer: {name: "Ana", phone: "+54 11 5555 0000"}
#     party_size: 4
#     preferred_time: 2025-10-15T21:00:00-03:00
#     added_at: 2025-10-15T20:10:00-03:00
#     priority: VIP
#     preferred_sector: main

"""

    with output_path.open("w", encoding="utf-8") as f:
        f.write(header)
        yaml.dump(template, f, default_flow_style=False, sort_keys=False)
