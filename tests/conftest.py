import sys, os, pathlib

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

os.environ.setdefault("APP_ENV", "test")

import pytest
from datetime import date

from fleetplanner.models.store import Store
from fleetplanner.utils.constants import Kind


@pytest.fixture(autouse=True)
def store(monkeypatch):
    """
    Fresh in-memory store installed as the singleton, so services that call
    _store() and the Flask routes all see the SAME object.
    """
    st = Store(persist=False)
    monkeypatch.setattr(Store, "_inst", st)
    yield st


@pytest.fixture
def fleet(store):
    """Seeded demo vehicles, equipment and crew; returns {name: id}."""
    from seeds import seed
    return seed(store)


@pytest.fixture
def pin_today(monkeypatch):
    """Freeze 'today' for maintenance writes (the vehicle's booked_on)."""
    from fleetplanner.services import maintenance_service
    today = date(2024, 4, 20)
    monkeypatch.setattr(maintenance_service, "_today", lambda: today)
    return today


@pytest.fixture
def client(store):
    from fleetplanner import create_app
    app = create_app("test")
    with app.test_client() as c:
        yield c


def add_job(store, status="Confirmed", start=None, end=None, **fields):
    """Insert a job booking directly (no conflict check)."""
    doc = {"status": status, **fields}
    if start:
        doc["start_date"] = start
        doc["end_date"] = end or start
    return store.create_reservation(Kind.JOB_BOOKING, doc)


def add_holiday(store, employee, start, end=None, status="requested"):
    return store.create_reservation(Kind.HOLIDAY, {
        "employee": employee, "start_date": start, "end_date": end or start, "status": status,
    })


def add_maintenance(store, vehicle_id, day, status="Booked", mtype="MOT"):
    return store.create_reservation(Kind.MAINTENANCE_BOOKING, {
        "vehicle_id": vehicle_id, "type": mtype, "status": status,
        "is_multi_day": False, "appointment_date": day,
    })
