# fleetplanner/utils/constants.py

"""
Global constants for reservation kinds, resource types and statuses.
These constants are imported by both models and services.
"""

# Date format (used for every stored day key)
DATE_FMT = "%Y-%m-%d"


class Kind:
    JOB_BOOKING = "JOB_BOOKING"
    MAINTENANCE_BOOKING = "MAINTENANCE_BOOKING"
    HOLIDAY = "HOLIDAY"


class ResourceType:
    VEHICLE = "vehicle"
    EQUIPMENT = "equipment"
    EMPLOYEE = "employee"


class JobStatus:
    CONFIRMED = "Confirmed"
    FIRST_PENCIL = "First Pencil"
    SECOND_PENCIL = "Second Pencil"
    ENQUIRY = "Enquiry"
    MAINTENANCE = "Maintenance"
    CANCELLED = "Cancelled"
    COMPLETE = "Complete"


class MaintenanceStatus:
    REQUESTED = "Requested"
    BOOKED = "Booked"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class HolidayStatus:
    REQUESTED = "requested"
    APPROVED = "approved"
    DECLINED = "declined"


class MaintenanceType:
    MOT = "MOT"
    SERVICE = "SERVICE"


# --- Status groups ---
BLOCKING_JOB_STATUSES = (JobStatus.CONFIRMED, JobStatus.FIRST_PENCIL, JobStatus.SECOND_PENCIL)
FIRM_JOB_STATUSES = (JobStatus.CONFIRMED, JobStatus.FIRST_PENCIL)
TERMINAL_MAINTENANCE_STATUSES = (MaintenanceStatus.COMPLETED, MaintenanceStatus.CANCELLED)

# --- Store layout ---
COLLECTIONS = {
    Kind.JOB_BOOKING: "bookings",
    Kind.MAINTENANCE_BOOKING: "maintenance_bookings",
    Kind.HOLIDAY: "holidays",
}
ID_FIELDS = {
    Kind.JOB_BOOKING: "booking_id",
    Kind.MAINTENANCE_BOOKING: "booking_id",
    Kind.HOLIDAY: "holiday_id",
}

# Which existing kinds are checked for each (candidate kind, resource type)
CONFLICT_SOURCES = {
    Kind.JOB_BOOKING: {
        ResourceType.VEHICLE: (Kind.JOB_BOOKING, Kind.MAINTENANCE_BOOKING),
        ResourceType.EQUIPMENT: (Kind.JOB_BOOKING,),
        ResourceType.EMPLOYEE: (Kind.JOB_BOOKING, Kind.HOLIDAY),
    },
    Kind.MAINTENANCE_BOOKING: {
        ResourceType.VEHICLE: (Kind.MAINTENANCE_BOOKING,),
    },
    Kind.HOLIDAY: {
        ResourceType.EMPLOYEE: (Kind.JOB_BOOKING,),
    },
}
