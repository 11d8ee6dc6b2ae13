"""
ParkWell - smart parking booking manager.

Slots and bookings are two JSON records in a key-value store; the ledger
and inventory functions reconcile them on every operation.
"""

from .storage import StorageGateway, SqliteStore, MemoryStore, Booking, AVAILABLE, BOOKED
from .inventory import ensure_slots
from .ledger import (
    BookingResult,
    SlotView,
    create_booking,
    cancel_booking,
    reset_all,
    find_conflict,
    slot_overview,
    bookings_for_slot,
    export_data,
    now_rounded,
)

__all__ = [
    "StorageGateway",
    "SqliteStore",
    "MemoryStore",
    "Booking",
    "AVAILABLE",
    "BOOKED",
    "ensure_slots",
    "BookingResult",
    "SlotView",
    "create_booking",
    "cancel_booking",
    "reset_all",
    "find_conflict",
    "slot_overview",
    "bookings_for_slot",
    "export_data",
    "now_rounded",
]
