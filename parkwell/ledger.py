# parkwell/ledger.py
"""
Booking ledger: create / cancel / reset.

Slot state is a cached projection of booking existence:
a slot is "booked" iff at least one booking references its index.
Every mutation here rewrites bookings first, then the slot states they justify,
inside one gateway.atomic() block.

Conflict rule (half-open intervals, same slot):
    r.start < end AND r.end > start
Touching intervals (r.end == start) do not conflict.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from .storage import AVAILABLE, BOOKED, Booking, StorageGateway, parse_timestamp

logger = logging.getLogger(__name__)

CONFLICT_MSG = "This slot is already booked."


@dataclass(frozen=True)
class BookingResult:
    ok: bool
    booking: Booking | None = None
    msg: str | None = None


@dataclass(frozen=True)
class SlotView:
    """One grid cell: slot state plus the earliest booking on it."""
    index: int
    state: str
    booking: Booking | None = None

    @property
    def number(self) -> int:
        return self.index + 1


def find_conflict(
    bookings: list[Booking],
    slot_id: int,
    start: datetime,
    end: datetime,
) -> Booking | None:
    """First booking on slot_id overlapping [start, end), or None."""
    for r in bookings:
        if r.slot_id == slot_id and r.start < end and r.end > start:
            return r
    return None


def _new_booking_id(now: datetime, taken: set[str]) -> str:
    ms = int(now.timestamp() * 1000)
    while f"book_{ms}" in taken:
        ms += 1
    return f"book_{ms}"


# ---------------------------- Mutations ---------------------------- #

def create_booking(
    gateway: StorageGateway,
    slot_id: int,
    name: str,
    start: datetime | str,
    hours: float,
    now: datetime | None = None,
) -> BookingResult:
    """
    Book slot_id for `hours` starting at `start`.

    The caller validates name (non-empty) and hours (> 0).

    Returns:
        BookingResult(ok=True, booking=...) on success,
        BookingResult(ok=False, msg=...) on conflict (nothing is written).

    Raises:
        IndexError: slot_id is outside the current inventory.
    """
    now = now or datetime.now()
    start = parse_timestamp(start)
    end = start + timedelta(hours=hours)

    with gateway.atomic():
        slots = gateway.load_slots()
        if not 0 <= slot_id < len(slots):
            raise IndexError(f"slot {slot_id} out of range (0..{len(slots) - 1})")

        bookings = gateway.load_bookings()
        conflict = find_conflict(bookings, slot_id, start, end)
        if conflict:
            logger.info(f"Booking rejected: slot {slot_id} overlaps {conflict.id}")
            return BookingResult(ok=False, msg=CONFLICT_MSG)

        booking = Booking(
            id=_new_booking_id(now, {b.id for b in bookings}),
            slot_id=slot_id,
            name=name,
            start=start,
            end=end,
            hours=hours,
            created_at=now,
        )
        bookings.append(booking)
        gateway.save_bookings(bookings)

        slots[slot_id] = BOOKED
        gateway.save_slots(slots)

    logger.info(f"Booking created: {booking.id} slot={slot_id} {start.isoformat()} +{hours}h")
    return BookingResult(ok=True, booking=booking)


def cancel_booking(gateway: StorageGateway, booking_id: str) -> bool:
    """
    Remove a booking; free its slot if nothing else references it.

    Unknown ids are a silent no-op. Returns True if a booking was removed.
    """
    with gateway.atomic():
        bookings = gateway.load_bookings()
        target = next((b for b in bookings if b.id == booking_id), None)
        if target is None:
            return False

        remaining = [b for b in bookings if b.id != booking_id]
        gateway.save_bookings(remaining)

        slots = gateway.load_slots()
        if 0 <= target.slot_id < len(slots):
            if not any(b.slot_id == target.slot_id for b in remaining):
                slots[target.slot_id] = AVAILABLE
                gateway.save_slots(slots)

    logger.info(f"Booking cancelled: {booking_id}")
    return True


def reset_all(gateway: StorageGateway) -> None:
    """Drop every booking and free every slot, unconditionally."""
    with gateway.atomic():
        gateway.save_bookings([])
        slots = gateway.load_slots()
        gateway.save_slots([AVAILABLE] * len(slots))
    logger.info("All bookings cleared")


# ---------------------------- Read views ---------------------------- #

def bookings_for_slot(gateway: StorageGateway, slot_id: int) -> list[Booking]:
    return sorted(
        (b for b in gateway.load_bookings() if b.slot_id == slot_id),
        key=lambda b: b.start,
    )


def slot_overview(gateway: StorageGateway) -> list[SlotView]:
    slots = gateway.load_slots()
    first: dict[int, Booking] = {}
    for b in sorted(gateway.load_bookings(), key=lambda b: b.start):
        first.setdefault(b.slot_id, b)
    return [SlotView(index=i, state=state, booking=first.get(i)) for i, state in enumerate(slots)]


def export_data(gateway: StorageGateway) -> dict:
    return {
        "slots": gateway.load_slots(),
        "bookings": [b.to_record() for b in gateway.load_bookings()],
    }


def now_rounded(now: datetime | None = None) -> str:
    """Current time rounded up to the next quarter hour, as YYYY-MM-DDTHH:MM."""
    now = now or datetime.now()
    minutes = math.ceil(now.minute / 15) * 15
    rounded = now.replace(minute=0, second=0, microsecond=0) + timedelta(minutes=minutes)
    return rounded.strftime("%Y-%m-%dT%H:%M")
