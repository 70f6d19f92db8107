from .booking_service import BookingService
from .conflict_service import AvailabilityResult, Candidate, ConflictService
from .maintenance_service import MaintenanceService

__all__ = [
    "AvailabilityResult",
    "BookingService",
    "Candidate",
    "ConflictService",
    "MaintenanceService",
]
