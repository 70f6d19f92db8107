"""
Custom exception classes for the fleet planner.

These exceptions provide precise error types that controllers can catch
to render friendly messages instead of generic 500 errors.
"""


class VehicleNotFoundError(Exception):
    """Raised when a vehicle ID cannot be found in the system."""

    def __init__(self, message: str = "Error: vehicle not found") -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class ReservationNotFoundError(Exception):
    """Raised when a booking or holiday record cannot be found."""

    def __init__(self, message: str = "Error: reservation not found") -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class InvalidRangeError(Exception):
    """Raised when start date is after end date or an invalid date is provided."""

    def __init__(self, message: str = "Error: invalid date range") -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class UnresolvedResourceError(Exception):
    """
    A resource key matches no known vehicle, equipment item or employee.

    The engine never lets this escape: it is turned into a warning entry on
    the availability result because an unknown resource cannot be checked.
    """

    def __init__(self, resource_type: str, key: str, message: str | None = None) -> None:
        self.resource_type = resource_type
        self.key = key
        self.message = message or f"Unknown {resource_type} '{key}'; availability not checked"
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class StoreUnavailableError(Exception):
    """Raised when the document store cannot be read or written. Retryable."""

    retryable = True

    def __init__(self, message: str = "Error: storage is unavailable, please retry") -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class PartialWriteInconsistencyError(Exception):
    """
    The booking document was written but the vehicle summary was not.

    Carries enough context (booking id, vehicle id, intended patch) to run
    ``MaintenanceService.rebuild_summary`` or to fix the record by hand.
    """

    def __init__(self, booking_id: str, vehicle_id: str, patch: dict, message: str | None = None) -> None:
        self.booking_id = booking_id
        self.vehicle_id = vehicle_id
        self.patch = dict(patch)
        self.message = message or (
            f"Error: booking {booking_id} was saved but vehicle {vehicle_id} was not updated"
        )
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class ConflictError(Exception):
    """Raised when a reservation would double-book a resource."""

    def __init__(self, conflict, message: str | None = None) -> None:
        self.conflict = conflict
        self.message = message or conflict.describe()
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover
        return self.message
