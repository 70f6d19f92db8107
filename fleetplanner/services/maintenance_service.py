"""MOT/service bookings and the vehicle summary they keep up to date."""

from __future__ import annotations

import logging
from typing import Optional

from fleetplanner.exceptions import (
    ConflictError,
    InvalidRangeError,
    PartialWriteInconsistencyError,
    StoreUnavailableError,
    VehicleNotFoundError,
)
from fleetplanner.models.store import Store
from fleetplanner.models.vehicle import (
    normalize_maintenance_type,
    vehicle_from_dict,
)
from fleetplanner.services import vehicle_sync
from fleetplanner.services.common import _store, _today, _transaction, _tz
from fleetplanner.services.conflict_service import ConflictService
from fleetplanner.utils.constants import Kind, MaintenanceStatus, MaintenanceType
from fleetplanner.utils.dates import day_key, parse_day

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def _truthy(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def _has_transactions(st) -> bool:
    return callable(getattr(st, "transaction", None))


def _booking_fields(vehicle: dict, payload: dict, tz_name: Optional[str] = None) -> dict:
    """
    Validate and normalise a maintenance booking form.

    Raises InvalidRangeError when the dates are missing, malformed or the
    start is after the end.
    """
    v = vehicle_from_dict(vehicle)
    multi = _truthy(payload.get("is_multi_day"))
    status = str(payload.get("status") or MaintenanceStatus.BOOKED).strip()

    if multi:
        if not payload.get("start_date"):
            raise InvalidRangeError("Error: start date is required")
        start = day_key(payload.get("start_date"), tz_name)
        end = day_key(payload.get("end_date") or start, tz_name)
        if parse_day(start) > parse_day(end):
            raise InvalidRangeError(f"Error: start date {start} is after end date {end}")
        appointment = ""
    else:
        raw = payload.get("appointment_date") or payload.get("date")
        if not raw:
            raise InvalidRangeError("Error: appointment date is required")
        appointment = day_key(raw, tz_name)
        start = end = ""

    fields = {
        "vehicle_id": v.vehicle_id,
        "registration": v.registration,
        "vehicle_label": v.label,
        "type": normalize_maintenance_type(payload.get("type")),
        "status": status,
        "is_multi_day": multi,
        "appointment_date": appointment,
        "start_date": start,
        "end_date": end,
        "provider": str(payload.get("provider") or "").strip(),
        "booking_ref": str(payload.get("booking_ref") or "").strip(),
        "location": str(payload.get("location") or "").strip(),
        "cost": str(payload.get("cost") or "").strip(),
        "notes": str(payload.get("notes") or "").strip(),
    }
    fields["completed_at"] = (
        vehicle_sync.completion_date(fields, tz_name) if vehicle_sync.is_completed(status) else ""
    )
    return fields


def _write_vehicle(st, booking_id: str, vehicle_id: str, patch: dict) -> None:
    """
    Apply a summary patch to the vehicle.

    Inside a transaction a failure propagates and the booking write is
    rolled back with it. Without transactions the booking is already saved,
    so the failure is logged and raised as PartialWriteInconsistencyError.
    """
    try:
        updated = st.update_vehicle(vehicle_id, patch)
    except (StoreUnavailableError, OSError) as e:
        if _has_transactions(st):
            raise
        logger.error(
            "Partial write: booking %s saved but vehicle %s not updated (patch=%r): %s",
            booking_id, vehicle_id, patch, e,
        )
        raise PartialWriteInconsistencyError(booking_id, vehicle_id, patch) from e

    if not updated:
        if _has_transactions(st):
            raise VehicleNotFoundError()
        logger.error(
            "Partial write: booking %s saved but vehicle %s is missing (patch=%r)",
            booking_id, vehicle_id, patch,
        )
        raise PartialWriteInconsistencyError(booking_id, vehicle_id, patch)


class MaintenanceService:
    """
    Create, edit, cancel and delete MOT/service bookings, keeping the
    vehicle's summary block and last/next dates in step.

    User-level outcomes come back as ``(ok, message, booking_id)``; store
    failures and partial writes raise.
    """

    @staticmethod
    def create_booking(vehicle_id: str, payload: dict, store: Optional[Store] = None):
        st = store or _store()
        tz_name = _tz()
        vehicle = st.get_vehicle(vehicle_id)
        if not vehicle:
            return False, "Vehicle not found", None

        try:
            fields = _booking_fields(vehicle, payload, tz_name)
            with _transaction(st):
                bid = ConflictService.try_reserve(Kind.MAINTENANCE_BOOKING, fields, store=st)
                booking = {**fields, "booking_id": bid}
                patch = vehicle_sync.booking_patch(
                    vehicle, booking, _today().isoformat(),
                    vehicle_from_dict(vehicle).freq_weeks(fields["type"]), tz_name, take_over=True,
                )
                _write_vehicle(st, bid, vehicle["vehicle_id"], patch)
        except (InvalidRangeError, ConflictError) as e:
            return False, e.message, None

        logger.info("Maintenance booking %s (%s, %s) created for vehicle %s",
                    bid, fields["type"], fields["status"], vehicle["vehicle_id"])
        return True, "OK", bid

    @staticmethod
    def update_booking(booking_id: str, payload: dict, store: Optional[Store] = None):
        """
        Edit a booking and rewrite the vehicle summary from it while the
        booking owns it. A booking that is already Completed or Cancelled is
        closed: only the booking document changes.
        """
        st = store or _store()
        tz_name = _tz()
        current = st.get_reservation(Kind.MAINTENANCE_BOOKING, booking_id)
        if not current:
            return False, "Maintenance booking not found", None
        vehicle = st.get_vehicle(current.get("vehicle_id"))
        if not vehicle:
            return False, "Vehicle not found", None

        try:
            fields = _booking_fields(vehicle, {**current, **payload}, tz_name)
            if vehicle_sync.is_terminal(current.get("status")):
                st.update_reservation(Kind.MAINTENANCE_BOOKING, booking_id, fields)
                return True, "OK", booking_id

            with _transaction(st):
                ConflictService.try_reserve(Kind.MAINTENANCE_BOOKING, fields, booking_id, store=st)
                booking = {**current, **fields, "booking_id": booking_id}
                patch = vehicle_sync.booking_patch(
                    vehicle, booking, _today().isoformat(),
                    vehicle_from_dict(vehicle).freq_weeks(fields["type"]), tz_name,
                )
                old_type = normalize_maintenance_type(current.get("type"))
                if old_type != fields["type"] and vehicle_sync.is_linked(vehicle, old_type, booking_id):
                    patch.update(vehicle_sync.clear_patch(old_type))
                if patch:
                    _write_vehicle(st, booking_id, vehicle["vehicle_id"], patch)
                else:
                    logger.info("Edited maintenance booking %s; vehicle %s links a newer booking, left unchanged",
                                booking_id, vehicle["vehicle_id"])
        except (InvalidRangeError, ConflictError) as e:
            return False, e.message, None

        return True, "OK", booking_id

    @staticmethod
    def cancel_booking(booking_id: str, store: Optional[Store] = None):
        """Mark a booking Cancelled; the vehicle follows only if it still links to it."""
        st = store or _store()
        current = st.get_reservation(Kind.MAINTENANCE_BOOKING, booking_id)
        if not current:
            return False, "Maintenance booking not found", None
        if vehicle_sync.is_terminal(current.get("status")):
            return False, "Maintenance booking already closed", booking_id

        mtype = normalize_maintenance_type(current.get("type"))
        with _transaction(st):
            st.update_reservation(Kind.MAINTENANCE_BOOKING, booking_id, {"status": MaintenanceStatus.CANCELLED})
            vehicle = st.get_vehicle(current.get("vehicle_id"))
            if vehicle_sync.is_linked(vehicle, mtype, booking_id):
                _write_vehicle(st, booking_id, vehicle["vehicle_id"], vehicle_sync.cancel_patch(mtype))
        return True, "OK", booking_id

    @staticmethod
    def delete_booking(booking_id: str, store: Optional[Store] = None):
        """
        Delete a booking. The vehicle summary is cleared only if it still
        links to this booking; otherwise the vehicle is left untouched.
        """
        st = store or _store()
        current = st.get_reservation(Kind.MAINTENANCE_BOOKING, booking_id)
        if not current:
            return False, "Maintenance booking not found", None

        with _transaction(st):
            st.delete_reservation(Kind.MAINTENANCE_BOOKING, booking_id)
            vehicle = st.get_vehicle(current.get("vehicle_id"))
            patch = {}
            for mtype in (MaintenanceType.MOT, MaintenanceType.SERVICE):
                if vehicle_sync.is_linked(vehicle, mtype, booking_id):
                    patch.update(vehicle_sync.clear_patch(mtype))
            if patch:
                _write_vehicle(st, booking_id, vehicle["vehicle_id"], patch)
            else:
                logger.info("Deleted maintenance booking %s; vehicle %s links elsewhere, left unchanged",
                            booking_id, current.get("vehicle_id"))
        return True, "OK", booking_id

    @staticmethod
    def derive_summary(vehicle_id: str, mtype: str, store: Optional[Store] = None) -> dict:
        """The summary block for one type, computed from the bookings rather than the cache."""
        st = store or _store()
        vehicle = st.get_vehicle(vehicle_id)
        if not vehicle:
            raise VehicleNotFoundError()
        vid = str(vehicle["vehicle_id"])
        bookings = [
            b for b in st.list_reservations(Kind.MAINTENANCE_BOOKING, [vid])
            if str(b.get("vehicle_id") or "") == vid
        ]
        mtype = normalize_maintenance_type(mtype)
        return vehicle_sync.derive_summary(
            vehicle, mtype, bookings, vehicle_from_dict(vehicle).freq_weeks(mtype), _tz()
        )

    @staticmethod
    def rebuild_summary(vehicle_id: str, store: Optional[Store] = None) -> dict:
        """
        Recompute both summary blocks and last/next dates from the bookings
        and write whatever differs. Returns the fields written (empty when
        the vehicle was already consistent), so running it twice is a no-op.
        """
        st = store or _store()
        with _transaction(st):
            vehicle = st.get_vehicle(vehicle_id)
            if not vehicle:
                raise VehicleNotFoundError()
            changes = {}
            for mtype in (MaintenanceType.MOT, MaintenanceType.SERVICE):
                derived = MaintenanceService.derive_summary(vehicle_id, mtype, store=st)
                changes.update(vehicle_sync.diff(vehicle, derived))
            if changes:
                st.update_vehicle(vehicle["vehicle_id"], changes)
                logger.info("Rebuilt summary for vehicle %s: %s", vehicle_id, sorted(changes))
        return changes

