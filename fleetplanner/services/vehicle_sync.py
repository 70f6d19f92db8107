"""
Vehicle <-> maintenance booking sync.

The vehicle keeps a cached summary of its current MOT and service bookings
(``mot_*`` / ``service_*`` fields plus ``last_*`` / ``next_*``). These
helpers build the patches that keep the cache in step with the bookings;
they never touch a store.

A booking owns the summary only while the vehicle's ``{type}_booking_id``
equals the booking id. Cancel and delete only write when that link holds,
so a stale booking can never wipe a newer one's summary.
"""

from __future__ import annotations

from typing import Iterable, Optional

from fleetplanner.exceptions import InvalidRangeError
from fleetplanner.models.vehicle import (
    APPOINTMENT_FIELDS,
    SUMMARY_FIELDS,
    last_field,
    linked_field,
    next_field,
    normalize_maintenance_type,
    summary_field,
)
from fleetplanner.services.status_policy import normalize_status
from fleetplanner.utils.constants import MaintenanceStatus, TERMINAL_MAINTENANCE_STATUSES
from fleetplanner.utils.dates import add_weeks, day_key

_TERMINAL = frozenset(s.lower() for s in TERMINAL_MAINTENANCE_STATUSES)


def _day_or_blank(value, tz_name: Optional[str] = None) -> str:
    if value is None or str(value).strip() == "":
        return ""
    try:
        return day_key(value, tz_name)
    except InvalidRangeError:
        return ""


def _text(value) -> str:
    return "" if value is None else str(value).strip()


def is_completed(status) -> bool:
    return normalize_status(status) == MaintenanceStatus.COMPLETED.lower()


def is_terminal(status) -> bool:
    """Completed and Cancelled bookings are closed."""
    return normalize_status(status) in _TERMINAL


def is_linked(vehicle: Optional[dict], mtype: str, booking_id: str) -> bool:
    """True iff the vehicle's summary for mtype still points at booking_id."""
    if not vehicle or not booking_id:
        return False
    return str(vehicle.get(linked_field(mtype)) or "") == str(booking_id)


def completion_date(booking: dict, tz_name: Optional[str] = None) -> str:
    """
    Day a maintenance booking counts as done: the appointment date for a
    single-day booking, the end date (else the start date) for a multi-day one.
    """
    if not booking.get("is_multi_day"):
        return _day_or_blank(booking.get("appointment_date"), tz_name)
    return _day_or_blank(booking.get("end_date"), tz_name) or _day_or_blank(booking.get("start_date"), tz_name)


def next_due(completed, weeks) -> str:
    """completed + weeks * 7 days; blank when either is missing or invalid."""
    try:
        return add_weeks(completed, weeks)
    except InvalidRangeError:
        return ""


def summary_patch(mtype: str, booking: dict, booked_on: str) -> dict:
    """The vehicle's summary block mirroring one booking (links it)."""
    multi = bool(booking.get("is_multi_day"))
    values = {
        "booked_status": _text(booking.get("status")),
        "booked_on": booked_on,
        "appointment_date": "" if multi else _day_or_blank(booking.get("appointment_date")),
        "booking_start_date": _day_or_blank(booking.get("start_date")) if multi else "",
        "booking_end_date": _day_or_blank(booking.get("end_date")) if multi else "",
        "provider": _text(booking.get("provider")),
        "booking_ref": _text(booking.get("booking_ref")),
        "location": _text(booking.get("location")),
        "cost": _text(booking.get("cost")),
        "booking_notes": _text(booking.get("notes")),
        "booking_id": str(booking.get("booking_id") or ""),
    }
    return {summary_field(mtype, k): v for k, v in values.items()}


def history_patch(mtype: str, booking: dict, current_last, freq_weeks,
                  tz_name: Optional[str] = None) -> dict:
    """last/next for a Completed booking, only when it moves last forward."""
    if not is_completed(booking.get("status")):
        return {}
    done = completion_date(booking, tz_name)
    if not done or done <= _day_or_blank(current_last, tz_name):
        return {}
    return {last_field(mtype): done, next_field(mtype): next_due(done, freq_weeks)}


def completion_patch(mtype: str, booking: dict, booked_on: str, freq_weeks,
                     tz_name: Optional[str] = None, current_last=None) -> dict:
    """
    Summary for a Completed booking: status, booked-on and link survive, the
    appointment details are cleared, last/next move to the completion date.
    """
    patch = summary_patch(mtype, booking, booked_on)
    for name in APPOINTMENT_FIELDS:
        patch[summary_field(mtype, name)] = ""
    patch.update(history_patch(mtype, booking, current_last, freq_weeks, tz_name))
    return patch


def owns_summary(vehicle: Optional[dict], mtype: str, booking_id: str) -> bool:
    """A booking may rewrite the summary block while it is linked or nothing is."""
    if not vehicle:
        return False
    return not _text(vehicle.get(linked_field(mtype))) or is_linked(vehicle, mtype, booking_id)


def booking_patch(vehicle: dict, booking: dict, booked_on: str, freq_weeks,
                  tz_name: Optional[str] = None, take_over: bool = False) -> dict:
    """
    Patch written after a booking is created or edited.

    A booking that does not own the summary (the vehicle links a newer one)
    can only move last/next forward. A newly created booking always takes
    over. An owner that is already linked keeps the booked-on date it was
    first given.
    """
    mtype = normalize_maintenance_type(booking.get("type"))
    bid = str(booking.get("booking_id") or "")
    current_last = vehicle.get(last_field(mtype))
    if not (take_over or owns_summary(vehicle, mtype, bid)):
        return history_patch(mtype, booking, current_last, freq_weeks, tz_name)
    if is_linked(vehicle, mtype, bid):
        booked_on = _text(vehicle.get(summary_field(mtype, "booked_on"))) or booked_on
    if is_completed(booking.get("status")):
        return completion_patch(mtype, booking, booked_on, freq_weeks, tz_name, current_last)
    return summary_patch(mtype, booking, booked_on)


def cancel_patch(mtype: str) -> dict:
    return {summary_field(mtype, "booked_status"): MaintenanceStatus.CANCELLED}


def clear_patch(mtype: str) -> dict:
    """Blank the whole summary block (last/next are history and stay)."""
    patch = {summary_field(mtype, name): "" for name in SUMMARY_FIELDS}
    patch[summary_field(mtype, "booking_files")] = []
    return patch


def _latest(bookings: list[dict]) -> Optional[dict]:
    if not bookings:
        return None
    indexed = list(enumerate(bookings))
    return max(indexed, key=lambda p: (str(p[1].get("created_at") or ""), p[0]))[1]


def derive_summary(vehicle: dict, mtype: str, bookings: Iterable[dict], freq_weeks,
                   tz_name: Optional[str] = None) -> dict:
    """
    Recompute the summary block for one maintenance type from the vehicle's
    bookings (in store order).

    The most recently created booking of the type that is not cancelled
    owns the summary (the latest cancelled one when all are). last/next
    come from the latest completion date across Completed bookings, and are
    left out entirely when there is none (hand-entered dates survive).
    """
    mtype = normalize_maintenance_type(mtype)
    typed = [b for b in bookings if normalize_maintenance_type(b.get("type")) == mtype]
    live = [b for b in typed if normalize_status(b.get("status")) != MaintenanceStatus.CANCELLED.lower()]
    latest = _latest(live) or _latest(typed)

    if latest is None:
        derived = clear_patch(mtype)
    else:
        bid = str(latest.get("booking_id") or "")
        if is_linked(vehicle, mtype, bid):
            booked_on = _text(vehicle.get(summary_field(mtype, "booked_on")))
            files = vehicle.get(summary_field(mtype, "booking_files")) or []
        else:
            booked_on = _day_or_blank(latest.get("created_at") or latest.get("updated_at"), tz_name)
            files = []
        derived = summary_patch(mtype, latest, booked_on)
        if is_completed(latest.get("status")):
            for name in APPOINTMENT_FIELDS:
                derived[summary_field(mtype, name)] = ""
        derived[summary_field(mtype, "booking_files")] = list(files)

    done = [completion_date(b, tz_name) for b in typed if is_completed(b.get("status"))]
    done = [d for d in done if d]
    if done:
        last = max(done)
        derived[last_field(mtype)] = last
        derived[next_field(mtype)] = next_due(last, freq_weeks)
    return derived


def _blank(value) -> bool:
    return value is None or value == "" or value == []


def diff(vehicle: dict, derived: dict) -> dict:
    """Fields of derived that differ from the vehicle (missing and blank are equal)."""
    out = {}
    for k, v in derived.items():
        cur = vehicle.get(k)
        if _blank(cur) and _blank(v):
            continue
        if cur != v:
            out[k] = v
    return out
