# parkwell/storage.py
"""
Storage gateway for the two persisted records.

Key format (JSON text, like browser local storage):
    pw_slots    : ["available" | "booked", ...]   length = inventory size
    pw_bookings : [{id, slotId, name, start, end, hours, createdAt}, ...]

Missing or malformed slots -> default list of DEFAULT_COUNT slots (persisted),
    booked where a stored booking still references the index.
Missing or malformed bookings -> empty list (NOT persisted).
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Literal, Union

from pydantic import BaseModel, Field, StrictFloat, StrictInt, StrictStr, TypeAdapter, ValidationError, field_validator

from .config import DEFAULT_COUNT, SLOTS_KEY, BOOK_KEY

logger = logging.getLogger(__name__)

AVAILABLE = "available"
BOOKED = "booked"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


def parse_timestamp(value) -> datetime:
    """Parse an ISO-8601 string into a naive local datetime."""
    dt = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


# ---------------------------- Records ---------------------------- #

SlotState = Literal["available", "booked"]


class Booking(BaseModel):
    id: StrictStr
    slot_id: StrictInt = Field(alias="slotId")
    name: StrictStr
    start: datetime
    end: datetime
    hours: Union[StrictInt, StrictFloat]
    created_at: datetime = Field(alias="createdAt")

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("start", "end", "created_at")
    @classmethod
    def naive_local(cls, v: datetime) -> datetime:
        return parse_timestamp(v)

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


_SLOTS = TypeAdapter(list[SlotState])
_BOOKINGS = TypeAdapter(list[Booking])


def parse_slots(raw: str | None) -> list[str] | None:
    """Validated slot list from JSON text, or None if missing or malformed."""
    if raw is None:
        return None
    try:
        return _SLOTS.validate_json(raw)
    except ValidationError:
        return None


def parse_bookings(raw: str | None) -> list[Booking] | None:
    """Validated booking list from JSON text, or None if any record is malformed."""
    if raw is None:
        return None
    try:
        return _BOOKINGS.validate_json(raw)
    except ValidationError as e:
        logger.warning(f"Rejecting booking record: {e.error_count()} error(s)")
        return None


# ---------------------------- Key-value stores ---------------------------- #

class MemoryStore:
    """Dict-backed store, for tests and throwaway sessions."""

    def __init__(self, data: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(data or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    @contextmanager
    def atomic(self):
        snapshot = dict(self.data)
        try:
            yield
        except Exception:
            self.data = snapshot
            raise


class SqliteStore:
    """
    sqlite3-backed store: one row per key in the kv_store table.

    Every set() commits immediately, except inside atomic() where the
    outermost block commits (or rolls back) all writes together.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self._depth = 0
        self.conn.executescript(SCHEMA_SQL)

    @classmethod
    def open(cls, path: str) -> "SqliteStore":
        return cls(sqlite3.connect(path))

    def get(self, key: str) -> str | None:
        row = self.conn.execute("SELECT value FROM kv_store WHERE key=?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        self.conn.execute(
            "INSERT OR REPLACE INTO kv_store(key,value) VALUES (?,?)",
            (key, value),
        )
        if self._depth == 0:
            self.conn.commit()

    @contextmanager
    def atomic(self):
        self._depth += 1
        try:
            yield
        except Exception:
            if self._depth == 1:
                self.conn.rollback()
            raise
        else:
            if self._depth == 1:
                self.conn.commit()
        finally:
            self._depth -= 1


# ---------------------------- Gateway ---------------------------- #

class StorageGateway:
    """Reads and writes the slot and booking records of a key-value store."""

    def __init__(self, store):
        self.store = store

    def atomic(self):
        return self.store.atomic()

    # ── Slots ────────────────────────────────────────────────────────────

    def load_slots(self) -> list[str]:
        raw = self.store.get(SLOTS_KEY)
        slots = parse_slots(raw)
        if slots is None:
            if raw is not None:
                logger.warning(f"Malformed slot record, resetting to {DEFAULT_COUNT} slots")
            slots = [AVAILABLE] * DEFAULT_COUNT
            # re-derive state from surviving bookings
            for b in self.load_bookings():
                if 0 <= b.slot_id < DEFAULT_COUNT:
                    slots[b.slot_id] = BOOKED
            self.save_slots(slots)
        return slots

    def save_slots(self, slots: list[str]) -> None:
        self.store.set(SLOTS_KEY, json.dumps(list(slots)))

    # ── Bookings ─────────────────────────────────────────────────────────

    def load_bookings(self) -> list[Booking]:
        raw = self.store.get(BOOK_KEY)
        bookings = parse_bookings(raw)
        if bookings is None:
            if raw is not None:
                logger.warning("Malformed booking record, reading as empty")
            return []
        return bookings

    def save_bookings(self, bookings: list[Booking]) -> None:
        self.store.set(BOOK_KEY, json.dumps([b.to_record() for b in bookings]))
