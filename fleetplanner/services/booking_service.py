"""Job bookings and holidays: every write goes through the conflict check."""

from __future__ import annotations

import logging
from typing import Optional

from fleetplanner.exceptions import ConflictError, InvalidRangeError, ReservationNotFoundError
from fleetplanner.models.reservation import as_list
from fleetplanner.models.store import Store
from fleetplanner.services.common import _store, _tz
from fleetplanner.services.conflict_service import ConflictService
from fleetplanner.utils.constants import HolidayStatus, JobStatus, Kind
from fleetplanner.utils.dates import day_key, expand_range, normalize_window

logger = logging.getLogger(__name__)

# Job booking fields copied through from the form as-is
_JOB_FIELDS = ("job_number", "client", "location", "notes", "vehicle_status", "employees_by_date")


def _job_fields(payload: dict, tz_name: Optional[str] = None, partial: bool = False) -> dict:
    """
    Normalise a job booking form; dates become an explicit ``booking_dates``
    list. With partial, only the fields present in the payload are returned.
    """
    fields = {k: payload[k] for k in _JOB_FIELDS if k in payload}
    if "status" in payload or not partial:
        fields["status"] = str(payload.get("status") or JobStatus.CONFIRMED).strip()
    for name in ("vehicles", "equipment", "employees"):
        if name in payload:
            fields[name] = as_list(payload.get(name))

    if "window" in payload:
        fields["booking_dates"] = sorted(normalize_window(payload.get("window"), tz_name))
    elif payload.get("booking_dates"):
        fields["booking_dates"] = sorted(normalize_window(list(payload["booking_dates"]), tz_name))
    elif payload.get("start_date") or payload.get("date"):
        start = payload.get("start_date") or payload.get("date")
        fields["booking_dates"] = expand_range(start, payload.get("end_date") or start, tz_name)
    return fields


def _holiday_fields(payload: dict, tz_name: Optional[str] = None) -> dict:
    employee = str(payload.get("employee") or "").strip()
    start = payload.get("start_date") or payload.get("date")
    if not start:
        raise InvalidRangeError("Error: holiday start date is required")
    end = payload.get("end_date") or start
    expand_range(start, end, tz_name)  # validates start <= end
    return {
        "employee": employee,
        "start_date": day_key(start, tz_name),
        "end_date": day_key(end, tz_name),
        "status": str(payload.get("status") or HolidayStatus.REQUESTED).strip().lower(),
        "reason": str(payload.get("reason") or "").strip(),
    }


class BookingService:
    """Create and edit job bookings and holidays. Returns ``(ok, message, id)``."""

    @staticmethod
    def create_booking(payload: dict, store: Optional[Store] = None):
        st = store or _store()
        try:
            fields = _job_fields(payload, _tz())
            bid = ConflictService.try_reserve(Kind.JOB_BOOKING, fields, store=st)
        except (InvalidRangeError, ConflictError) as e:
            return False, e.message, None
        logger.info("Job booking %s created (%s)", bid, fields.get("status"))
        return True, "OK", bid

    @staticmethod
    def update_booking(booking_id: str, payload: dict, store: Optional[Store] = None):
        st = store or _store()
        try:
            fields = _job_fields(payload, _tz(), partial=True)
            ConflictService.try_reserve(Kind.JOB_BOOKING, fields, booking_id, store=st)
        except ReservationNotFoundError:
            return False, "Booking not found", None
        except (InvalidRangeError, ConflictError) as e:
            return False, e.message, None
        return True, "OK", booking_id

    @staticmethod
    def create_holiday(payload: dict, store: Optional[Store] = None):
        st = store or _store()
        try:
            fields = _holiday_fields(payload, _tz())
            if not fields["employee"]:
                return False, "Employee is required", None
            hid = ConflictService.try_reserve(Kind.HOLIDAY, fields, store=st)
        except (InvalidRangeError, ConflictError) as e:
            return False, e.message, None
        logger.info("Holiday %s created for %s", hid, fields["employee"])
        return True, "OK", hid
