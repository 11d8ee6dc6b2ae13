import json


def book(client, slot_id=0, name="Alice", start="2024-01-01T10:00", hours="1"):
    return client.post(
        f"/book/{slot_id}",
        data={"name": name, "start": start, "hours": hours},
        follow_redirects=True,
    )


def exported(client):
    return json.loads(client.get("/admin/export").data)


def test_grid_shows_default_inventory(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert b"Slot 12" in resp.data
    assert b"Slot 13" not in resp.data


def test_booking_form_defaults(client):
    resp = client.get("/book/0")
    assert resp.status_code == 200
    assert b"Book Slot 1" in resp.data
    assert b'name="hours"' in resp.data


def test_book_and_conflict(client):
    resp = book(client)
    assert b"Booked Slot 1 for Alice." in resp.data
    assert b"Alice" in client.get("/").data

    resp = book(client, name="Bob", start="2024-01-01T10:30")
    assert b"This slot is already booked." in resp.data
    assert len(exported(client)["bookings"]) == 1


def test_invalid_form_is_rejected(client):
    for data in (
        {"name": "  ", "start": "2024-01-01T10:00", "hours": "1"},
        {"name": "Alice", "start": "not a date", "hours": "1"},
        {"name": "Alice", "start": "2024-01-01T10:00", "hours": "0"},
        {"name": "Alice", "start": "2024-01-01T10:00", "hours": "abc"},
        {"name": "Alice", "start": "2024-01-01T10:00", "hours": "1e9"},
        {"name": "Alice", "start": "2024-01-01T10:00", "hours": "1e-300"},
        {"name": "Alice", "start": "2024-01-01T10:00", "hours": "nan"},
        {"name": "Alice", "start": "2024-01-01T10:00", "hours": "169"},
        {"name": "Alice", "start": "9999-12-31T23:30", "hours": "1"},
    ):
        resp = client.post("/book/0", data=data)
        assert b"Please fill the form correctly." in resp.data
    assert exported(client)["bookings"] == []


def test_unknown_slot_is_404(client):
    assert client.get("/book/12").status_code == 404
    assert client.get("/slot/40").status_code == 404


def test_slot_detail_and_cancel(client):
    book(client, slot_id=2)
    booking_id = exported(client)["bookings"][0]["id"]

    resp = client.get("/slot/2")
    assert resp.status_code == 200
    assert b"Alice" in resp.data
    assert f"/cancel/{booking_id}".encode() in resp.data

    resp = client.post(f"/cancel/{booking_id}", data={"next": "/admin"}, follow_redirects=True)
    assert b"Booking cancelled" in resp.data
    assert b"No bookings" in resp.data
    assert exported(client)["slots"][2] == "available"


def test_free_slot_detail_redirects_to_form(client):
    resp = client.get("/slot/0")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/book/0")


def test_cancel_unknown_id_is_silent(client):
    resp = client.post("/cancel/book_nope", follow_redirects=True)
    assert resp.status_code == 200
    assert b"Booking cancelled" in resp.data


def test_cancel_ignores_offsite_next(client):
    resp = client.post("/cancel/book_nope", data={"next": "//evil.example"})
    assert resp.headers["Location"].endswith("/")
    assert "evil" not in resp.headers["Location"]


def test_slot_count_bounds(client):
    resp = client.post("/slots/count", data={"count": "3"}, follow_redirects=True)
    assert b"Slots must be between 4 and 36" in resp.data
    assert len(exported(client)["slots"]) == 12

    client.post("/slots/count", data={"count": "37"})
    assert len(exported(client)["slots"]) == 12

    client.post("/slots/count", data={"count": "4"})
    assert len(exported(client)["slots"]) == 4

    client.post("/slots/count", data={"count": ""})
    assert len(exported(client)["slots"]) == 12


def test_shrink_drops_out_of_range_bookings(client):
    book(client, slot_id=10)
    book(client, slot_id=1, name="Bob")
    client.post("/slots/count", data={"count": "4"})

    data = exported(client)
    assert len(data["slots"]) == 4
    assert [b["name"] for b in data["bookings"]] == ["Bob"]


def test_reset_and_clear(client):
    book(client, slot_id=0)
    resp = client.post("/reset", follow_redirects=True)
    assert b"All bookings cleared." in resp.data
    assert exported(client) == {"slots": ["available"] * 12, "bookings": []}

    book(client, slot_id=5)
    resp = client.post("/admin/clear", follow_redirects=True)
    assert b"No bookings" in resp.data
    assert exported(client)["bookings"] == []


def test_admin_lists_bookings(client):
    assert b"No bookings" in client.get("/admin").data
    book(client, slot_id=3, hours="1.5")

    resp = client.get("/admin")
    assert b"Slot 4" in resp.data
    assert b"Alice" in resp.data
    assert b"1.5" in resp.data


def test_export_download(client):
    book(client)
    resp = client.get("/admin/export")
    assert resp.mimetype == "application/json"
    assert "smartparking_export.json" in resp.headers["Content-Disposition"]

    data = json.loads(resp.data)
    assert set(data) == {"slots", "bookings"}
    record = data["bookings"][0]
    assert record["slotId"] == 0
    assert record["hours"] == 1
    assert record["start"] == "2024-01-01T10:00:00"
    assert record["end"] == "2024-01-01T11:00:00"
