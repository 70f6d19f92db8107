from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from fleetplanner.utils.constants import ID_FIELDS, Kind, ResourceType
from fleetplanner.utils.dates import normalize_window, window_bounds

_WS = re.compile(r"\s+")

# Fields that may identify a vehicle inside a booking's `vehicles` list
VEHICLE_REF_FIELDS = ("id", "vehicle_id", "registration", "reg", "name")


def resource_key(value) -> str:
    """Trim, lower-case and collapse whitespace: 'Ford  Transit ' -> 'ford transit'."""
    return _WS.sub(" ", str(value or "")).strip().lower()


def entry_aliases(entry, fields=("name",)) -> list[str]:
    """Raw identifiers of one resource entry (a plain string or a dict)."""
    if isinstance(entry, dict):
        return [str(entry[f]).strip() for f in fields if str(entry.get(f) or "").strip()]
    s = str(entry or "").strip()
    return [s] if s else []


def as_list(value) -> list:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def document_refs(kind: str, doc: dict) -> dict[str, list[list[str]]]:
    """
    Resource entries referenced by a stored reservation, per resource type.
    Each entry is the list of raw aliases it can be matched by.
    """
    refs: dict[str, list[list[str]]] = {}

    def add(rtype, aliases):
        if aliases:
            refs.setdefault(rtype, []).append(aliases)

    if kind == Kind.JOB_BOOKING:
        for v in as_list(doc.get("vehicles")):
            add(ResourceType.VEHICLE, entry_aliases(v, VEHICLE_REF_FIELDS))
        for e in as_list(doc.get("equipment")):
            add(ResourceType.EQUIPMENT, entry_aliases(e))
        for p in as_list(doc.get("employees")):
            add(ResourceType.EMPLOYEE, entry_aliases(p))
    elif kind == Kind.MAINTENANCE_BOOKING:
        aliases = entry_aliases(doc, ("vehicle_id", "registration", "vehicle_label"))
        add(ResourceType.VEHICLE, aliases)
    elif kind == Kind.HOLIDAY:
        emp = doc.get("employee")
        add(ResourceType.EMPLOYEE, entry_aliases(emp))
    return refs


def document_ref_keys(kind: str, doc: dict) -> set[str]:
    """Every normalised alias a reservation references (store-side filtering)."""
    out = set()
    for entries in document_refs(kind, doc).values():
        for aliases in entries:
            out.update(resource_key(a) for a in aliases)
    return out


def day_set_from_document(kind: str, doc: dict, tz_name: Optional[str] = None) -> frozenset[str]:
    """
    Days occupied by a stored reservation.

    Job bookings: ``booking_dates`` list, else ``date``, else
    ``start_date``..``end_date``. Maintenance bookings: the appointment date,
    or the start..end range when ``is_multi_day``. Holidays: start..end.
    """
    if kind == Kind.JOB_BOOKING:
        listed = doc.get("booking_dates")
        if listed:
            return normalize_window(list(listed), tz_name)
        if doc.get("date"):
            return normalize_window(doc["date"], tz_name)
        return normalize_window({"start": doc.get("start_date"), "end": doc.get("end_date")}, tz_name)

    if kind == Kind.MAINTENANCE_BOOKING:
        if not doc.get("is_multi_day") and doc.get("appointment_date"):
            return normalize_window(doc["appointment_date"], tz_name)
        start = doc.get("start_date") or doc.get("appointment_date") or doc.get("date")
        return normalize_window({"start": start, "end": doc.get("end_date")}, tz_name)

    if kind == Kind.HOLIDAY:
        start = doc.get("start_date") or doc.get("date")
        return normalize_window({"start": start, "end": doc.get("end_date")}, tz_name)

    raise ValueError(f"Unknown reservation kind: {kind!r}")


def document_id(kind: str, doc: dict) -> str:
    return str(doc.get(ID_FIELDS[kind]) or doc.get("id") or "")


@dataclass(frozen=True)
class Reservation:
    """
    A booking, maintenance booking or holiday reduced to what the overlap
    detector needs: a day-set, the resources it holds and its status.
    """
    id: str
    kind: str
    status: str
    days: frozenset
    resources: frozenset  # {(resource_type, canonical_key)}
    label: str = ""
    # per-resource narrowing: crew booked on some dates only, per-vehicle status
    resource_days: dict = field(default_factory=dict, compare=False)
    resource_status: dict = field(default_factory=dict, compare=False)

    def days_for(self, resource: tuple[str, str]) -> frozenset:
        return self.resource_days.get(resource, self.days)

    def status_for(self, resource: tuple[str, str]) -> str:
        return self.resource_status.get(resource) or self.status

    @property
    def window_start(self) -> Optional[str]:
        return window_bounds(self.days)[0]

    @property
    def window_end(self) -> Optional[str]:
        return window_bounds(self.days)[1]

