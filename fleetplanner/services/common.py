"""Shared service helpers and factories."""

from __future__ import annotations

from collections import defaultdict
from contextlib import nullcontext
from datetime import date
from typing import Iterable, Optional

from flask import current_app, has_app_context

from fleetplanner.config import Config
from fleetplanner.models.reservation import (
    Reservation,
    as_list,
    day_set_from_document,
    document_id,
    document_refs,
    entry_aliases,
    resource_key,
)
from fleetplanner.models.store import Store
from fleetplanner.utils.constants import Kind, ResourceType
from fleetplanner.utils.dates import day_key, local_today


def _store() -> Store:
    """Get the singleton store instance."""
    return Store.instance()


def _tz() -> str:
    if has_app_context():
        return current_app.config.get("TIMEZONE") or Config.TIMEZONE
    return Config.TIMEZONE


def _today() -> date:
    """Wrapper for easier testing/mocking."""
    return local_today(_tz())


def _transaction(st):
    """The store's transaction, or a no-op context for stores without one."""
    tx = getattr(st, "transaction", None)
    return tx() if callable(tx) else nullcontext(st)


def _list(st, method: str, attr: str) -> list[dict]:
    fn = getattr(st, method, None)
    if callable(fn):
        return fn()
    return list((getattr(st, attr, None) or {}).values())


# -------- resource directory --------
class ResourceDirectory:
    """
    Resolves the many ways a resource is written (vehicle id, registration,
    display name, differently spaced or cased) to one canonical key.

    Vehicles resolve to their vehicle_id; equipment and employees to their
    normalised name.
    """

    def __init__(self, vehicles: Iterable[dict] = (), equipment: Iterable[dict] = (),
                 employees: Iterable[dict] = ()):
        self._alias: dict[str, dict[str, str]] = {t: {} for t in
                                                  (ResourceType.VEHICLE, ResourceType.EQUIPMENT,
                                                   ResourceType.EMPLOYEE)}
        self._labels: dict[tuple, str] = {}

        for v in vehicles:
            vid = str(v.get("vehicle_id") or v.get("id") or "")
            if not vid:
                continue
            self._register(ResourceType.VEHICLE, vid, (vid, v.get("registration"), v.get("name")),
                           v.get("name") or v.get("registration") or vid)
        for e in equipment:
            name = e.get("name")
            if name:
                self._register(ResourceType.EQUIPMENT, resource_key(name), (name, e.get("equipment_id")), name)
        for p in employees:
            name = p.get("name")
            if name:
                self._register(ResourceType.EMPLOYEE, resource_key(name), (name, p.get("employee_id")), name)

    def _register(self, rtype, canonical, aliases, label):
        for alias in aliases:
            key = resource_key(alias)
            if key:
                self._alias[rtype].setdefault(key, canonical)
        self._labels[(rtype, canonical)] = str(label).strip()

    @classmethod
    def from_store(cls, st) -> "ResourceDirectory":
        return cls(
            vehicles=_list(st, "list_vehicles", "vehicles"),
            equipment=_list(st, "list_equipment", "equipment"),
            employees=_list(st, "list_employees", "employees"),
        )

    def resolve(self, rtype: str, raw) -> Optional[str]:
        """Canonical key for a raw reference, or None if nothing matches."""
        key = resource_key(raw)
        return self._alias.get(rtype, {}).get(key) if key else None

    def canonical(self, rtype: str, aliases: Iterable) -> str:
        """First alias that resolves, else the normalised first alias."""
        aliases = list(aliases)
        for a in aliases:
            found = self.resolve(rtype, a)
            if found:
                return found
        return resource_key(aliases[0]) if aliases else ""

    def aliases(self, rtype: str, canonical: str) -> set[str]:
        """Every normalised spelling that refers to the canonical resource."""
        out = {k for k, c in self._alias.get(rtype, {}).items() if c == canonical}
        out.add(resource_key(canonical))
        return out

    def label(self, rtype: str, canonical: str) -> str:
        return self._labels.get((rtype, canonical)) or canonical


# -------- dict -> reservation mapper --------
def _label_for(kind: str, doc: dict) -> str:
    if kind == Kind.JOB_BOOKING:
        parts = [f"Job {doc['job_number']}" if doc.get("job_number") else "", doc.get("client") or ""]
    elif kind == Kind.MAINTENANCE_BOOKING:
        parts = [doc.get("type") or "Maintenance", doc.get("provider") or ""]
    else:
        parts = []
    return " · ".join(str(p).strip() for p in parts if str(p).strip())


def build_reservation(kind: str, rid: str, status: str, days: frozenset, refs: dict,
                      directory: ResourceDirectory, label: str = "",
                      employees_by_date: Optional[dict] = None,
                      vehicle_status: Optional[dict] = None,
                      tz_name: Optional[str] = None) -> Reservation:
    """
    Assemble a Reservation with canonical resource keys.

    ``employees_by_date`` ({day: [names]}) narrows each crew member to the
    days they are rostered on; ``vehicle_status`` ({vehicle ref: status})
    overrides the booking status for one vehicle.
    """
    resources = set()
    for rtype, entries in refs.items():
        for aliases in entries:
            key = directory.canonical(rtype, aliases)
            if key:
                resources.add((rtype, key))

    resource_days = {}
    if employees_by_date:
        per_employee = defaultdict(set)
        for raw_day, names in employees_by_date.items():
            day = day_key(raw_day, tz_name)
            for name in as_list(names):
                key = directory.canonical(ResourceType.EMPLOYEE, entry_aliases(name))
                if key:
                    per_employee[(ResourceType.EMPLOYEE, key)].add(day)
        for res in resources | set(per_employee):
            if res[0] != ResourceType.EMPLOYEE:
                continue
            resources.add(res)
            resource_days[res] = frozenset(per_employee.get(res, ())) & days

    resource_status = {}
    for ref, vstatus in (vehicle_status or {}).items():
        key = directory.canonical(ResourceType.VEHICLE, [ref])
        if key and vstatus:
            resource_status[(ResourceType.VEHICLE, key)] = str(vstatus)

    return Reservation(
        id=str(rid or ""),
        kind=kind,
        status=str(status or ""),
        days=frozenset(days),
        resources=frozenset(resources),
        label=label,
        resource_days=resource_days,
        resource_status=resource_status,
    )


def reservation_from_dict(kind: str, doc: dict, directory: ResourceDirectory,
                          tz_name: Optional[str] = None) -> Reservation:
    """Map a stored booking/holiday dict to a Reservation."""
    return build_reservation(
        kind,
        document_id(kind, doc),
        doc.get("status") or "",
        day_set_from_document(kind, doc, tz_name),
        document_refs(kind, doc),
        directory,
        label=_label_for(kind, doc),
        employees_by_date=doc.get("employees_by_date"),
        vehicle_status=doc.get("vehicle_status"),
        tz_name=tz_name,
    )
