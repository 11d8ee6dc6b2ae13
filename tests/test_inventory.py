import random
from datetime import datetime, timedelta

from parkwell.inventory import ensure_slots
from parkwell.ledger import create_booking
from parkwell.storage import AVAILABLE, BOOKED


def test_same_count_is_noop(gateway):
    slots = gateway.load_slots()
    assert ensure_slots(gateway, 12) == slots


def test_grow_appends_free_slots_and_keeps_state(gateway):
    create_booking(gateway, 2, "Alice", "2024-01-01T10:00", 1)
    slots = ensure_slots(gateway, 20)
    assert len(slots) == 20
    assert slots[2] == BOOKED
    assert slots[12:] == [AVAILABLE] * 8
    assert gateway.load_slots() == slots


def test_shrink_drops_bookings_on_removed_slots(gateway):
    create_booking(gateway, 10, "Carol", "2024-01-01T10:00", 1)
    kept = create_booking(gateway, 1, "Dave", "2024-01-01T10:00", 1).booking

    slots = ensure_slots(gateway, 4)

    assert len(slots) == 4
    assert gateway.load_slots() == [AVAILABLE, BOOKED, AVAILABLE, AVAILABLE]
    assert gateway.load_bookings() == [kept]


def test_random_resizes_keep_bookings_in_range(gateway):
    rng = random.Random(7)
    base = datetime(2024, 1, 1, 8, 0)
    for step in range(60):
        slots = gateway.load_slots()
        if rng.random() < 0.5:
            create_booking(gateway, rng.randrange(len(slots)), f"u{step}",
                           base + timedelta(hours=step), 1, now=base + timedelta(seconds=step))
        else:
            n = rng.randint(4, 36)
            assert len(ensure_slots(gateway, n)) == n
            assert len(gateway.load_slots()) == n
            assert all(b.slot_id < n for b in gateway.load_bookings())
