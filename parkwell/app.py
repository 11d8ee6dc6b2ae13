"""
ParkWell Smart Parking (Flask, SQLite key-value store)
- Slot grid with per-slot booking form and time-window conflict checks
- Inventory resize (4..36 slots), full reset
- Admin view: booking table, JSON export, clear all

How to run:
  pip install -e .
  python -m parkwell.app
Then open http://127.0.0.1:5000
"""

from __future__ import annotations
from flask import Flask, g, render_template_string, request, redirect, url_for, flash, current_app
from werkzeug.exceptions import NotFound
from jinja2 import DictLoader
from datetime import datetime, timedelta
import json
import logging
import sqlite3

from .config import APP_TITLE, DB_PATH, SECRET_KEY, DEFAULT_COUNT, MIN_SLOTS, MAX_SLOTS, MIN_HOURS, MAX_HOURS, EXPORT_FILENAME
from .storage import StorageGateway, SqliteStore, parse_timestamp
from .inventory import ensure_slots
from .ledger import (
    create_booking,
    cancel_booking,
    reset_all,
    slot_overview,
    bookings_for_slot,
    export_data,
    now_rounded,
)

app = Flask(__name__)
app.secret_key = SECRET_KEY
app.config.from_mapping(DATABASE=DB_PATH)

# ---------------------------- DB Helpers ---------------------------- #

def get_db():
    if "db" not in g:
        g.db = sqlite3.connect(current_app.config["DATABASE"])
        g.db.row_factory = sqlite3.Row
    return g.db

def get_gateway() -> StorageGateway:
    if "gateway" not in g:
        g.gateway = StorageGateway(SqliteStore(get_db()))
    return g.gateway

@app.teardown_appcontext
def close_db(exception):
    g.pop("gateway", None)
    db = g.pop("db", None)
    if db is not None:
        db.close()

# ---------------------------- Templates ---------------------------- #

BASE_HTML = """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{{ title or app_title }}</title>
  <link href="https://cdn.jsdelivr.net/npm/bootstrap@5.3.3/dist/css/bootstrap.min.css" rel="stylesheet">
  <style>
    body { padding-top: 4.5rem; }
    .brand { font-weight: 700; }
    .card { border-radius: 1rem; }
    .slot { min-height: 8rem; }
    .slot.available { border-left: 6px solid #198754; }
    .slot.booked { border-left: 6px solid #dc3545; }
  </style>
</head>
<body>
<nav class="navbar navbar-expand-lg navbar-dark bg-dark fixed-top">
  <div class="container-fluid">
    <a class="navbar-brand brand" href="{{ url_for('index') }}">{{ app_title }}</a>
    <ul class="navbar-nav me-auto mb-2 mb-lg-0 flex-row gap-3">
      <li class="nav-item"><a class="nav-link" href="{{ url_for('index') }}">Book a Slot</a></li>
      <li class="nav-item"><a class="nav-link" href="{{ url_for('admin_dashboard') }}">Admin</a></li>
    </ul>
  </div>
</nav>

<main class="container">
  {% with messages = get_flashed_messages(with_categories=true) %}
    {% if messages %}
      {% for category, message in messages %}
        <div class="alert alert-{{ category }} alert-dismissible fade show" role="alert">{{ message }}
          <button type="button" class="btn-close" data-bs-dismiss="alert" aria-label="Close"></button>
        </div>
      {% endfor %}
    {% endif %}
  {% endwith %}

  {% block content %}{% endblock %}
</main>
<script src="https://cdn.jsdelivr.net/npm/bootstrap@5.3.3/dist/js/bootstrap.bundle.min.js"></script>
</body>
</html>
"""

GRID_HTML = """
{% extends 'base.html' %}
{% block content %}
<div class="card p-4 shadow-sm mb-3">
  <div class="d-flex flex-wrap gap-3 align-items-end">
    <form method="post" action="{{ url_for('set_slot_count') }}" class="d-flex gap-2 align-items-end">
      <div>
        <label class="form-label">Number of slots ({{ min_slots }}-{{ max_slots }})</label>
        <input class="form-control" type="number" name="count" min="{{ min_slots }}" max="{{ max_slots }}" value="{{ slots|length }}">
      </div>
      <button class="btn btn-warning">Apply</button>
    </form>
    <form method="post" action="{{ url_for('reset') }}">
      <button class="btn btn-outline-danger">Reset all</button>
    </form>
  </div>
</div>

<div class="row g-3" id="parking-grid">
  {% for s in slots %}
  <div class="col-6 col-md-3 col-lg-2">
    <a class="text-decoration-none text-reset" href="{{ url_for('slot_detail', slot_id=s.index) if s.booking else url_for('book', slot_id=s.index) }}">
      <div class="card p-3 shadow-sm slot {{ s.state }}">
        <div class="fw-bold">Slot {{ s.number }}</div>
        <div class="small text-muted">
          {% if s.booking %}{{ s.booking.name }} &bull; {{ s.booking.start|when }}{% else %}Available{% endif %}
        </div>
        <span class="badge mt-2 {% if s.booking %}bg-danger{% else %}bg-success{% endif %}">{% if s.booking %}Booked{% else %}Free{% endif %}</span>
      </div>
    </a>
  </div>
  {% endfor %}
</div>
{% endblock %}
"""

BOOK_HTML = """
{% extends 'base.html' %}
{% block content %}
<div class="row justify-content-center">
  <div class="col-md-6">
    <div class="card p-4 shadow-sm">
      <h3 class="mb-3">Book Slot {{ slot_id + 1 }}</h3>
      <form method="post">
        <div class="mb-3">
          <label class="form-label">Name</label>
          <input name="name" class="form-control" value="{{ form['name'] }}" required>
        </div>
        <div class="mb-3">
          <label class="form-label">Start</label>
          <input type="datetime-local" name="start" class="form-control" value="{{ form['start'] }}" required>
        </div>
        <div class="mb-3">
          <label class="form-label">Hours</label>
          <input type="number" name="hours" step="0.25" min="0.25" class="form-control" value="{{ form['hours'] }}" required>
        </div>
        <div class="d-flex gap-2">
          <button class="btn btn-primary">Book</button>
          <a class="btn btn-outline-secondary" href="{{ url_for('index') }}">Cancel</a>
        </div>
      </form>
    </div>
  </div>
</div>
{% endblock %}
"""

SLOT_HTML = """
{% extends 'base.html' %}
{% block content %}
<div class="card p-4 shadow-sm">
  <h3 class="mb-3">Slot {{ slot_id + 1 }} &mdash; Booking Details</h3>
  <div class="table-responsive">
    <table class="table table-striped align-middle">
      <thead><tr><th>Name</th><th>Start</th><th>End</th><th>Duration</th><th></th></tr></thead>
      <tbody>
        {% for b in bookings %}
        <tr>
          <td>{{ b.name }}</td>
          <td>{{ b.start|when }}</td>
          <td>{{ b.end|when }}</td>
          <td>{{ b.hours }}h</td>
          <td>
            <form method="post" action="{{ url_for('cancel', booking_id=b.id) }}">
              <input type="hidden" name="next" value="{{ url_for('index') }}">
              <button class="btn btn-sm btn-outline-danger">Cancel booking</button>
            </form>
          </td>
        </tr>
        {% endfor %}
      </tbody>
    </table>
  </div>
  <a class="btn btn-primary" href="{{ url_for('book', slot_id=slot_id) }}">Add another booking</a>
</div>
{% endblock %}
"""

ADMIN_HTML = """
{% extends 'base.html' %}
{% block content %}
<div class="row g-3 mb-3">
  <div class="col-md-6">
    <div class="card p-4 shadow-sm">
      <h4 class="mb-3">Overview</h4>
      <ul class="list-group">
        <li class="list-group-item d-flex justify-content-between"><span>Total Slots</span><span class="badge bg-dark" id="admin-slots">{{ slot_count }}</span></li>
        <li class="list-group-item d-flex justify-content-between"><span>Total Bookings</span><span class="badge bg-primary" id="admin-count">{{ bookings|length }}</span></li>
      </ul>
    </div>
  </div>
  <div class="col-md-6">
    <div class="card p-4 shadow-sm">
      <h4 class="mb-3">Data</h4>
      <div class="d-flex gap-2">
        <a class="btn btn-outline-primary" href="{{ url_for('admin_export') }}">Export JSON</a>
        <form method="post" action="{{ url_for('admin_clear') }}">
          <button class="btn btn-outline-danger">Clear all</button>
        </form>
      </div>
    </div>
  </div>
</div>

<div class="card p-4 shadow-sm" id="bookings-list">
  <h3 class="mb-3">All Bookings</h3>
  {% if not bookings %}
    <div class="p-3">No bookings</div>
  {% else %}
  <div class="table-responsive">
    <table class="table table-striped align-middle">
      <thead><tr><th>ID</th><th>Slot</th><th>Name</th><th>Start</th><th>End</th><th>Hours</th><th>Actions</th></tr></thead>
      <tbody>
        {% for b in bookings %}
        <tr>
          <td>{{ b.id }}</td>
          <td>Slot {{ b.slot_id + 1 }}</td>
          <td>{{ b.name }}</td>
          <td>{{ b.start|when }}</td>
          <td>{{ b.end|when }}</td>
          <td>{{ b.hours }}</td>
          <td>
            <form method="post" action="{{ url_for('cancel', booking_id=b.id) }}">
              <input type="hidden" name="next" value="{{ url_for('admin_dashboard') }}">
              <button class="btn btn-sm btn-outline-danger">Cancel</button>
            </form>
          </td>
        </tr>
        {% endfor %}
      </tbody>
    </table>
  </div>
  {% endif %}
</div>
{% endblock %}
"""

# Serve our inline strings as if they were templates
app.jinja_loader = DictLoader({
    'base.html': BASE_HTML,
})

# ---------------------------- Utility Logic ---------------------------- #

@app.template_filter('when')
def iso(dt:datetime) -> str:
    return dt.strftime('%Y-%m-%d %H:%M')

@app.context_processor
def inject_globals():
    return dict(app_title=APP_TITLE)

def _existing_slot(gw:StorageGateway, slot_id:int) -> None:
    count = len(gw.load_slots())
    if slot_id >= count:
        raise NotFound(f"Slot {slot_id + 1} does not exist ({count} slots).")

def _parse_hours(raw:str) -> float:
    hours = float(raw)
    if not MIN_HOURS <= hours <= MAX_HOURS:
        raise ValueError(f"hours must be between {MIN_HOURS} and {MAX_HOURS}")
    return int(hours) if hours.is_integer() else hours

def _safe_next(default:str) -> str:
    target = request.form.get('next', '')
    if target.startswith('/') and not target.startswith('//'):
        return target
    return default

# ---------------------------- Booking ---------------------------- #

@app.route('/')
def index():
    gw = get_gateway()
    return render_template_string(
        GRID_HTML,
        slots=slot_overview(gw),
        min_slots=MIN_SLOTS,
        max_slots=MAX_SLOTS,
    )

@app.route('/book/<int:slot_id>', methods=['GET','POST'])
def book(slot_id:int):
    gw = get_gateway()
    _existing_slot(gw, slot_id)

    if request.method == 'POST':
        form = request.form
        name = form.get('name', '').strip()
        try:
            start = parse_timestamp(form.get('start', '').strip())
            hours = _parse_hours(form.get('hours', '0'))
            # end must stay inside the datetime range
            start + timedelta(hours=hours)
        except (ValueError, OverflowError):
            start, hours = None, 0
        if not name or start is None or hours <= 0:
            flash("Please fill the form correctly.", "danger")
            return render_template_string(BOOK_HTML, slot_id=slot_id, form=form)

        res = create_booking(gw, slot_id, name, start, hours)
        if not res.ok:
            flash(res.msg, "warning")
            return render_template_string(BOOK_HTML, slot_id=slot_id, form=form)
        flash(f"Booked Slot {slot_id + 1} for {name}.", "success")
        return redirect(url_for('index'))

    form = {"name": "", "start": now_rounded(), "hours": 1}
    return render_template_string(BOOK_HTML, slot_id=slot_id, form=form)

@app.route('/slot/<int:slot_id>')
def slot_detail(slot_id:int):
    gw = get_gateway()
    _existing_slot(gw, slot_id)
    bookings = bookings_for_slot(gw, slot_id)
    if not bookings:
        return redirect(url_for('book', slot_id=slot_id))
    return render_template_string(SLOT_HTML, slot_id=slot_id, bookings=bookings)

@app.route('/cancel/<booking_id>', methods=['POST'])
def cancel(booking_id:str):
    cancel_booking(get_gateway(), booking_id)
    flash("Booking cancelled", "info")
    return redirect(_safe_next(url_for('index')))

@app.route('/slots/count', methods=['POST'])
def set_slot_count():
    try:
        count = int(request.form.get('count', ''))
    except ValueError:
        count = 0
    count = count or DEFAULT_COUNT
    if count < MIN_SLOTS or count > MAX_SLOTS:
        flash(f"Slots must be between {MIN_SLOTS} and {MAX_SLOTS}", "danger")
        return redirect(url_for('index'))
    ensure_slots(get_gateway(), count)
    flash(f"Inventory set to {count} slots.", "success")
    return redirect(url_for('index'))

@app.route('/reset', methods=['POST'])
def reset():
    reset_all(get_gateway())
    flash("All bookings cleared.", "info")
    return redirect(url_for('index'))

# ---------------------------- Admin ---------------------------- #

@app.route('/admin')
def admin_dashboard():
    gw = get_gateway()
    return render_template_string(
        ADMIN_HTML,
        slot_count=len(gw.load_slots()),
        bookings=gw.load_bookings(),
    )

@app.route('/admin/export')
def admin_export():
    data = export_data(get_gateway())
    return app.response_class(
        json.dumps(data, indent=2),
        mimetype="application/json",
        headers={"Content-Disposition": f"attachment; filename={EXPORT_FILENAME}"},
    )

@app.route('/admin/clear', methods=['POST'])
def admin_clear():
    reset_all(get_gateway())
    flash("All bookings cleared.", "info")
    return redirect(url_for('admin_dashboard'))

if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    app.run(debug=True)
