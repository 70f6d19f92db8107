"""
Overlap detection on day-sets.

Every window shape (single day, inclusive range, explicit list) is already a
set of day keys, so one set-intersection test covers range/range,
range/single and list/list overlaps alike.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Callable, Iterable, Iterator, Optional

from fleetplanner.models.reservation import Reservation
from fleetplanner.services import status_policy
from fleetplanner.utils.constants import Kind
from fleetplanner.utils.filters import fmt_window

BlockingPredicate = Callable[[Reservation, tuple], bool]

KIND_LABELS = {
    Kind.JOB_BOOKING: "booking",
    Kind.MAINTENANCE_BOOKING: "maintenance booking",
    Kind.HOLIDAY: "holiday",
}


@dataclass(frozen=True)
class Conflict:
    """One existing reservation that collides with a candidate on one resource."""
    resource_type: str
    resource_key: str
    conflicting_id: str
    kind: str
    window_start: Optional[str]
    window_end: Optional[str]
    status: str
    label: str = ""
    resource_label: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    def describe(self) -> str:
        """Human-readable message for the booking forms."""
        who = self.resource_label or self.resource_key
        what = KIND_LABELS.get(self.kind, "reservation")
        msg = (
            f"Conflict: {who} already has a {what} overlapping "
            f"{fmt_window(self.window_start, self.window_end)} ({self.status or 'no status'})"
        )
        if self.label:
            msg += f" - {self.label}"
        return msg + "."


def day_sets_intersect(a: Optional[Iterable[str]], b: Optional[Iterable[str]]) -> bool:
    """True iff the two day-sets share at least one day."""
    if not a or not b:
        return False
    return not set(a).isdisjoint(b)


def default_blocking(reservation: Reservation, resource: tuple) -> bool:
    """Status policy of the reservation's kind, using any per-resource status."""
    return status_policy.is_blocking(reservation.kind, reservation.status_for(resource), resource[0])


def _ordered(existing: Iterable[Reservation]) -> list[Reservation]:
    # deterministic: earliest window first, id breaks ties
    return sorted(existing, key=lambda r: (r.window_start or "", r.id))


def iter_conflicts(
        candidate: Reservation,
        existing: Iterable[Reservation],
        exclude_id: Optional[str] = None,
        is_blocking: Optional[BlockingPredicate] = None,
        resource_labels: Optional[dict] = None,
) -> Iterator[Conflict]:
    """
    Yield a Conflict for every (existing reservation, shared resource) pair
    that blocks and overlaps the candidate on that resource's days.
    """
    blocking = is_blocking or default_blocking
    labels = resource_labels or {}
    skip = str(exclude_id) if exclude_id else None

    for res in _ordered(existing):
        if skip is not None and res.id == skip:
            continue
        for resource in sorted(candidate.resources & res.resources):
            if not blocking(res, resource):
                continue
            if not day_sets_intersect(candidate.days_for(resource), res.days_for(resource)):
                continue
            yield Conflict(
                resource_type=resource[0],
                resource_key=resource[1],
                conflicting_id=res.id,
                kind=res.kind,
                window_start=res.window_start,
                window_end=res.window_end,
                status=res.status_for(resource),
                label=res.label,
                resource_label=labels.get(resource, ""),
            )


def find_conflict(candidate, existing, exclude_id=None, is_blocking=None, resource_labels=None) -> Optional[Conflict]:
    """First conflict in start-date order, or None."""
    return next(iter_conflicts(candidate, existing, exclude_id, is_blocking, resource_labels), None)


def find_conflicts(candidate, existing, exclude_id=None, is_blocking=None, resource_labels=None) -> list[Conflict]:
    return list(iter_conflicts(candidate, existing, exclude_id, is_blocking, resource_labels))


def find_conflicts_by_resource(candidate, existing, exclude_id=None, is_blocking=None,
                               resource_labels=None) -> dict[tuple, Conflict]:
    """First conflict per resource."""
    out: dict[tuple, Conflict] = {}
    for c in iter_conflicts(candidate, existing, exclude_id, is_blocking, resource_labels):
        out.setdefault((c.resource_type, c.resource_key), c)
    return out
