# parkwell/inventory.py
"""
Slot inventory resizing.

Grow  -> append free slots at the end.
Shrink -> drop bookings on removed indices, then truncate the slot list.
Retained slots keep their state either way.
"""

import logging

from .storage import AVAILABLE, StorageGateway

logger = logging.getLogger(__name__)


def ensure_slots(gateway: StorageGateway, n: int) -> list[str]:
    """Reconcile the slot list to exactly n entries and return it."""
    with gateway.atomic():
        slots = gateway.load_slots()
        current = len(slots)
        if current == n:
            return slots

        if current < n:
            slots = slots + [AVAILABLE] * (n - current)
        else:
            bookings = gateway.load_bookings()
            kept = [b for b in bookings if b.slot_id < n]
            gateway.save_bookings(kept)
            if len(kept) != len(bookings):
                logger.info(f"Dropped {len(bookings) - len(kept)} booking(s) on removed slots")
            slots = slots[:n]

        gateway.save_slots(slots)

    logger.info(f"Inventory resized: {current} -> {n} slots")
    return slots
