"""
Status policy: which statuses count toward a resource being unavailable.

Job bookings use an allow-list (only confirmed-ish statuses block), while
maintenance bookings and holidays use an exclude-list (everything blocks
except the cancelled/declined family). All comparisons are made on the
normalised status so 'first  pencil ' and 'First Pencil' agree.
"""

import re
from typing import Optional

from fleetplanner.utils.constants import (
    BLOCKING_JOB_STATUSES,
    HolidayStatus,
    JobStatus,
    Kind,
    ResourceType,
)

_WS = re.compile(r"\s+")

_BLOCKING_JOB = frozenset(s.lower() for s in BLOCKING_JOB_STATUSES)


def normalize_status(status: Optional[str]) -> str:
    """Trim, lower-case and collapse internal whitespace."""
    return _WS.sub(" ", str(status or "")).strip().lower()


def is_blocking_job_status(status: Optional[str]) -> bool:
    """Confirmed, First Pencil and Second Pencil block; Enquiry, Cancelled etc. do not."""
    return normalize_status(status) in _BLOCKING_JOB


def is_blocking_vehicle_status(status: Optional[str]) -> bool:
    """A job booking's vehicle is also blocked while it is marked 'Maintenance'."""
    return is_blocking_job_status(status) or normalize_status(status) == JobStatus.MAINTENANCE.lower()


def is_blocking_maintenance_status(status: Optional[str]) -> bool:
    s = normalize_status(status)
    return not ("cancel" in s or "declin" in s)


def is_blocking_holiday_status(status: Optional[str]) -> bool:
    # requested/pending holidays block until someone declines them
    return normalize_status(status) != HolidayStatus.DECLINED


def is_blocking(kind: str, status: Optional[str], resource_type: Optional[str] = None) -> bool:
    """Dispatch to the predicate for a reservation kind (and resource type)."""
    if kind == Kind.JOB_BOOKING:
        if resource_type == ResourceType.VEHICLE:
            return is_blocking_vehicle_status(status)
        return is_blocking_job_status(status)
    if kind == Kind.MAINTENANCE_BOOKING:
        return is_blocking_maintenance_status(status)
    if kind == Kind.HOLIDAY:
        return is_blocking_holiday_status(status)
    raise ValueError(f"Unknown reservation kind: {kind!r}")
