"""Availability checks and conflict-guarded writes for bookings and holidays."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from fleetplanner.exceptions import (
    ConflictError,
    InvalidRangeError,
    ReservationNotFoundError,
    StoreUnavailableError,
    UnresolvedResourceError,
)
from fleetplanner.models.reservation import (
    Reservation,
    as_list,
    day_set_from_document,
    document_refs,
)
from fleetplanner.models.store import Store
from fleetplanner.services import overlap, status_policy
from fleetplanner.services.common import (
    ResourceDirectory,
    _store,
    _transaction,
    _tz,
    build_reservation,
    reservation_from_dict,
)
from fleetplanner.utils.constants import (
    CONFLICT_SOURCES,
    FIRM_JOB_STATUSES,
    HolidayStatus,
    JobStatus,
    Kind,
    MaintenanceStatus,
    ResourceType,
)
from fleetplanner.utils.dates import normalize_window

logger = logging.getLogger(__name__)

_KIND_ALIASES = {
    "JOB": Kind.JOB_BOOKING,
    "BOOKING": Kind.JOB_BOOKING,
    "JOB_BOOKING": Kind.JOB_BOOKING,
    "MAINTENANCE": Kind.MAINTENANCE_BOOKING,
    "MAINTENANCE_BOOKING": Kind.MAINTENANCE_BOOKING,
    "HOLIDAY": Kind.HOLIDAY,
}

_DEFAULT_STATUS = {
    Kind.JOB_BOOKING: JobStatus.CONFIRMED,
    Kind.MAINTENANCE_BOOKING: MaintenanceStatus.BOOKED,
    Kind.HOLIDAY: HolidayStatus.REQUESTED,
}

_RESOURCE_TYPES = (ResourceType.VEHICLE, ResourceType.EQUIPMENT, ResourceType.EMPLOYEE)


def normalize_kind(value) -> str:
    key = str(value or Kind.JOB_BOOKING).strip().upper().replace(" ", "_").replace("-", "_")
    try:
        return _KIND_ALIASES[key]
    except KeyError:
        raise ValueError(f"Unknown reservation kind: {value!r}") from None


@dataclass
class Candidate:
    """A prospective reservation: what would be held, on which days, with which status."""
    kind: str
    days: frozenset
    refs: dict  # {resource_type: [[alias, ...], ...]}
    status: str
    exclude_id: Optional[str] = None
    employees_by_date: dict = field(default_factory=dict)
    vehicle_status: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict, kind: Optional[str] = None, exclude_id: Optional[str] = None,
                  tz_name: Optional[str] = None) -> "Candidate":
        """
        Build a candidate from a request body or a booking document.

        Resources come from ``resource_type`` + ``resource_keys`` and/or the
        document fields (``vehicles``/``equipment``/``employees``,
        ``vehicle_id``, ``employee``). Days come from ``window`` when given,
        else from the document's own date fields.

        Raises InvalidRangeError for malformed dates or start > end.
        """
        kind = normalize_kind(kind or data.get("kind"))

        refs = document_refs(kind, data)
        rtype = data.get("resource_type")
        if rtype:
            rtype = str(rtype).strip().lower()
            if rtype not in _RESOURCE_TYPES:
                raise ValueError(f"Unknown resource type: {data.get('resource_type')!r}")
            for key in as_list(data.get("resource_keys")):
                if str(key or "").strip():
                    refs.setdefault(rtype, []).append([str(key).strip()])

        if "window" in data:
            days = normalize_window(data.get("window"), tz_name)
        else:
            days = day_set_from_document(kind, data, tz_name)

        status = data.get("status")
        if status is None or str(status).strip() == "":
            status = _DEFAULT_STATUS[kind]

        return cls(
            kind=kind,
            days=days,
            refs=refs,
            status=str(status),
            exclude_id=exclude_id or data.get("exclude_id") or None,
            employees_by_date=dict(data.get("employees_by_date") or {}),
            vehicle_status=dict(data.get("vehicle_status") or {}),
        )

    def to_reservation(self, directory: ResourceDirectory, tz_name: Optional[str] = None) -> Reservation:
        return build_reservation(
            self.kind, self.exclude_id or "", self.status, self.days, self.refs, directory,
            employees_by_date=self.employees_by_date, vehicle_status=self.vehicle_status,
            tz_name=tz_name,
        )

    def blocks(self) -> bool:
        """Whether the candidate itself would hold anything (a declined holiday does not)."""
        if self.kind == Kind.JOB_BOOKING and self.vehicle_status:
            return True
        return any(status_policy.is_blocking(self.kind, self.status, t) for t in self.refs)


@dataclass
class AvailabilityResult:
    conflicts: list = field(default_factory=list)
    holds: list = field(default_factory=list)
    warnings: list = field(default_factory=list)

    @property
    def conflict(self) -> Optional[overlap.Conflict]:
        return self.conflicts[0] if self.conflicts else None

    @property
    def available(self) -> bool:
        return not self.conflicts

    def to_dict(self) -> dict:
        c = self.conflict
        return {
            "available": self.available,
            "conflict": c.to_dict() if c else None,
            "message": c.describe() if c else "",
            "conflicts": [x.to_dict() for x in self.conflicts],
            "holds": [x.to_dict() for x in self.holds],
            "warnings": list(self.warnings),
        }


def _fetch(st, kind: str, keys: Optional[set] = None) -> list[dict]:
    """Read reservations; any storage failure surfaces as StoreUnavailableError."""
    try:
        return st.list_reservations(kind, keys)
    except StoreUnavailableError:
        logger.error("Reading %s reservations failed: store unavailable", kind)
        raise
    except OSError as e:
        logger.error("Reading %s reservations failed: %s", kind, e)
        raise StoreUnavailableError() from e


def _directory(st) -> ResourceDirectory:
    try:
        return ResourceDirectory.from_store(st)
    except StoreUnavailableError:
        raise
    except OSError as e:
        logger.error("Reading resources failed: %s", e)
        raise StoreUnavailableError() from e


def _reservations(kind: str, docs: list[dict], directory: ResourceDirectory, tz_name: str) -> list[Reservation]:
    out = []
    for doc in docs:
        try:
            out.append(reservation_from_dict(kind, doc, directory, tz_name))
        except InvalidRangeError as e:
            # Skip malformed records to avoid false positives
            logger.warning("Skipping malformed %s record %s: %s", kind,
                           doc.get("booking_id") or doc.get("holiday_id"), e)
    return out


def _is_hold(res: Reservation, resource: tuple) -> bool:
    return not overlap.default_blocking(res, resource)


def _order(c: overlap.Conflict) -> tuple:
    return c.window_start or "", c.resource_type, c.resource_key, c.conflicting_id


class ConflictService:
    """
    Answers "is this resource free on these days?" across job bookings,
    maintenance bookings and holidays.
    """

    @staticmethod
    def check_availability(candidate, store: Optional[Store] = None) -> AvailabilityResult:
        """
        Every blocking reservation that overlaps the candidate on a shared
        resource, sorted by start date (``result.conflict`` is the first),
        plus overlapping non-blocking job bookings as ``holds``.

        Never reports available when the store cannot be read: storage
        failures raise StoreUnavailableError.
        """
        st = store or _store()
        tz_name = _tz()
        if isinstance(candidate, dict):
            candidate = Candidate.from_dict(candidate, tz_name=tz_name)

        result = AvailabilityResult()
        if not candidate.days or not candidate.refs or not candidate.blocks():
            return result

        directory = _directory(st)

        for rtype, entries in candidate.refs.items():
            for aliases in entries:
                if not any(directory.resolve(rtype, a) for a in aliases):
                    err = UnresolvedResourceError(rtype, aliases[0])
                    logger.warning(err.message)
                    result.warnings.append(err.message)

        cand = candidate.to_reservation(directory, tz_name)
        # unknown resources cannot be checked; neither can ones the candidate does not block on
        cand = replace(cand, resources=frozenset(
            r for r in cand.resources
            if directory.resolve(*r) and status_policy.is_blocking(cand.kind, cand.status_for(r), r[0])
        ))
        labels = {r: directory.label(*r) for r in cand.resources}

        sources = CONFLICT_SOURCES.get(candidate.kind, {})
        seen_holds = set()
        for rtype in _RESOURCE_TYPES:
            mine = frozenset(r for r in cand.resources if r[0] == rtype)
            if not mine:
                continue
            keys = set()
            for _, key in mine:
                keys |= directory.aliases(rtype, key)
            sub = replace(cand, resources=mine)

            for source_kind in sources.get(rtype, ()):
                existing = _reservations(source_kind, _fetch(st, source_kind, keys), directory, tz_name)
                exclude = candidate.exclude_id if source_kind == candidate.kind else None

                result.conflicts.extend(
                    overlap.find_conflicts_by_resource(sub, existing, exclude, None, labels).values()
                )
                if source_kind == Kind.JOB_BOOKING:
                    for h in overlap.iter_conflicts(sub, existing, exclude, _is_hold, labels):
                        ident = (h.conflicting_id, h.resource_type, h.resource_key)
                        if ident not in seen_holds:
                            seen_holds.add(ident)
                            result.holds.append(h)

        result.conflicts.sort(key=_order)
        result.holds.sort(key=_order)
        return result

    @staticmethod
    def try_reserve(kind: str, fields: dict, reservation_id: Optional[str] = None,
                    store: Optional[Store] = None) -> str:
        """
        Check and write in one transaction: create the reservation (or apply
        ``fields`` to ``reservation_id``) only if nothing blocks it.

        Returns the reservation id. Raises ConflictError, InvalidRangeError,
        ReservationNotFoundError or StoreUnavailableError; nothing is
        written in any of those cases.
        """
        st = store or _store()
        kind = normalize_kind(kind)
        with _transaction(st):
            merged = dict(fields)
            if reservation_id:
                current = st.get_reservation(kind, reservation_id)
                if current is None:
                    raise ReservationNotFoundError()
                merged = {**current, **fields}

            candidate = Candidate.from_dict(merged, kind=kind, exclude_id=reservation_id, tz_name=_tz())
            result = ConflictService.check_availability(candidate, st)
            if not result.available:
                logger.info("Rejected %s for %s: %s", kind, reservation_id or "new reservation",
                            result.conflict.describe())
                raise ConflictError(result.conflict)

            if reservation_id:
                st.update_reservation(kind, reservation_id, fields)
                return str(reservation_id)
            return st.create_reservation(kind, fields)

    @staticmethod
    def second_pencil_clashes(store: Optional[Store] = None) -> list[dict]:
        """
        Second Pencil job bookings whose vehicle is also held by a Confirmed
        or First Pencil booking on an overlapping day.
        """
        st = store or _store()
        tz_name = _tz()
        directory = _directory(st)
        bookings = _reservations(Kind.JOB_BOOKING, _fetch(st, Kind.JOB_BOOKING), directory, tz_name)

        firm_statuses = {status_policy.normalize_status(s) for s in FIRM_JOB_STATUSES}
        second = status_policy.normalize_status(JobStatus.SECOND_PENCIL)
        firm = [b for b in bookings if status_policy.normalize_status(b.status) in firm_statuses]

        clashes = []
        for b in sorted(bookings, key=lambda r: (r.window_start or "", r.id)):
            if status_policy.normalize_status(b.status) != second:
                continue
            vehicles = frozenset(r for r in b.resources if r[0] == ResourceType.VEHICLE)
            sub = replace(b, resources=vehicles)
            for c in overlap.iter_conflicts(sub, firm, b.id, lambda res, resource: True):
                clashes.append({
                    "vehicle_id": c.resource_key,
                    "vehicle_label": directory.label(ResourceType.VEHICLE, c.resource_key),
                    "second_pencil_id": b.id,
                    "second_pencil_label": b.label,
                    "second_pencil_start": b.window_start,
                    "second_pencil_end": b.window_end,
                    "firm_id": c.conflicting_id,
                    "firm_label": c.label,
                    "firm_status": c.status,
                    "firm_start": c.window_start,
                    "firm_end": c.window_end,
                })
        return clashes
