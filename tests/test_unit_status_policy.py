import pytest

from fleetplanner.services import status_policy
from fleetplanner.utils.constants import Kind, ResourceType


@pytest.mark.parametrize("status, blocks", [
    ("Confirmed", True),
    ("First Pencil", True),
    ("Second Pencil", True),
    ("  first   pencil ", True),
    ("CONFIRMED", True),
    ("Enquiry", False),
    ("Cancelled", False),
    ("Complete", False),
    ("Maintenance", False),
    ("", False),
    (None, False),
])
def test_job_status(status, blocks):
    assert status_policy.is_blocking_job_status(status) is blocks


def test_maintenance_status_blocks_a_job_vehicle_only():
    assert status_policy.is_blocking(Kind.JOB_BOOKING, "Maintenance", ResourceType.VEHICLE)
    assert not status_policy.is_blocking(Kind.JOB_BOOKING, "Maintenance", ResourceType.EMPLOYEE)
    assert not status_policy.is_blocking(Kind.JOB_BOOKING, "Maintenance", ResourceType.EQUIPMENT)


@pytest.mark.parametrize("status, blocks", [
    ("Booked", True),
    ("Requested", True),
    ("Completed", True),
    ("", True),
    ("Cancelled", False),
    ("canceled", False),
    ("Declined", False),
    ("declined by garage", False),
])
def test_maintenance_status(status, blocks):
    assert status_policy.is_blocking_maintenance_status(status) is blocks


@pytest.mark.parametrize("status, blocks", [
    ("requested", True),
    ("approved", True),
    ("Approved", True),
    ("declined", False),
    (" Declined ", False),
])
def test_holiday_status(status, blocks):
    assert status_policy.is_blocking_holiday_status(status) is blocks


def test_unknown_kind_raises():
    with pytest.raises(ValueError):
        status_policy.is_blocking("RENTAL", "Confirmed")
