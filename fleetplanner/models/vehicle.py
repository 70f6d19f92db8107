from dataclasses import dataclass
from typing import Optional

from fleetplanner.utils.constants import MaintenanceType

# Summary block kept on the vehicle per maintenance type, e.g. "mot_provider".
SUMMARY_FIELDS = (
    "booked_status",
    "booked_on",
    "appointment_date",
    "booking_start_date",
    "booking_end_date",
    "provider",
    "booking_ref",
    "location",
    "cost",
    "booking_notes",
    "booking_files",
    "booking_id",
)

# The part of the summary that describes the appointment itself; cleared on completion.
APPOINTMENT_FIELDS = (
    "appointment_date",
    "booking_start_date",
    "booking_end_date",
    "provider",
    "booking_ref",
    "location",
    "cost",
    "booking_notes",
)


def normalize_maintenance_type(value: Optional[str]) -> str:
    """'service' -> 'SERVICE'; anything else is an MOT (as the booking forms do)."""
    return MaintenanceType.SERVICE if str(value or "").strip().upper() == MaintenanceType.SERVICE else MaintenanceType.MOT


def _prefix(mtype: str) -> str:
    return "service" if normalize_maintenance_type(mtype) == MaintenanceType.SERVICE else "mot"


def summary_field(mtype: str, name: str) -> str:
    return f"{_prefix(mtype)}_{name}"


def linked_field(mtype: str) -> str:
    return summary_field(mtype, "booking_id")


def last_field(mtype: str) -> str:
    return f"last_{_prefix(mtype)}"


def next_field(mtype: str) -> str:
    return f"next_{_prefix(mtype)}"


@dataclass
class Vehicle:
    """
    Vehicle fields this package reads. The Store keeps raw dicts; the
    summary block stays in the dict and is addressed with summary_field().
    """
    vehicle_id: str
    name: str
    registration: str
    mot_freq: int = 0  # weeks
    service_freq: int = 0  # weeks

    @property
    def label(self) -> str:
        return self.name or self.registration or self.vehicle_id

    def freq_weeks(self, mtype: str) -> int:
        if normalize_maintenance_type(mtype) == MaintenanceType.SERVICE:
            return self.service_freq
        return self.mot_freq


def _weeks(value) -> int:
    try:
        return max(0, int(float(value or 0)))
    except (TypeError, ValueError):
        return 0


def vehicle_from_dict(d: Optional[dict]) -> Optional[Vehicle]:
    """Map a stored vehicle dict to a Vehicle."""
    if not d:
        return None
    return Vehicle(
        vehicle_id=str(d.get("vehicle_id") or d.get("id") or ""),
        name=str(d.get("name") or "").strip(),
        registration=str(d.get("registration") or d.get("reg") or "").strip(),
        mot_freq=_weeks(d.get("mot_freq")),
        service_freq=_weeks(d.get("service_freq")),
    )
