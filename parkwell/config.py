# parkwell/config.py
import os
from dotenv import load_dotenv

load_dotenv()

APP_TITLE = "ParkWell Smart Parking"

DEFAULT_COUNT = 12
MIN_SLOTS = 4
MAX_SLOTS = 36

# Booking duration accepted from the form, in hours
MIN_HOURS = 0.25
MAX_HOURS = 24 * 7

# Record keys in the key-value store
SLOTS_KEY = "pw_slots"
BOOK_KEY = "pw_bookings"

DB_PATH = os.getenv(
    "PARKWELL_DB_PATH",
    os.path.join(os.path.dirname(__file__), "parkwell.db"),
)
SECRET_KEY = os.getenv("PARKWELL_SECRET_KEY", "change-this-in-production")

EXPORT_FILENAME = "smartparking_export.json"
