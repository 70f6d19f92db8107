from fleetplanner.models.reservation import Reservation
from fleetplanner.services.overlap import (
    day_sets_intersect,
    find_conflict,
    find_conflicts,
    find_conflicts_by_resource,
)
from fleetplanner.utils.constants import Kind, ResourceType
from fleetplanner.utils.dates import expand_range

VAN = (ResourceType.VEHICLE, "v1")
CRANE = (ResourceType.EQUIPMENT, "camera crane")


def job(rid, start, end, status="Confirmed", resources=(VAN,), **kw):
    return Reservation(
        id=rid, kind=Kind.JOB_BOOKING, status=status,
        days=frozenset(expand_range(start, end)), resources=frozenset(resources), **kw,
    )


def test_day_sets_intersect():
    assert day_sets_intersect({"2024-03-01", "2024-03-02"}, {"2024-03-02"})
    assert not day_sets_intersect({"2024-03-01"}, {"2024-03-02"})
    assert not day_sets_intersect(set(), {"2024-03-02"})
    assert not day_sets_intersect(None, None)


def test_overlap_is_symmetric():
    a = job("a", "2024-03-01", "2024-03-03")
    b = job("b", "2024-03-03", "2024-03-05")
    c = job("c", "2024-03-04", "2024-03-06")
    assert (find_conflict(a, [b]) is None) == (find_conflict(b, [a]) is None)
    assert find_conflict(a, [b]) is not None
    assert (find_conflict(a, [c]) is None) == (find_conflict(c, [a]) is None)
    assert find_conflict(a, [c]) is None


def test_reservation_never_conflicts_with_itself_when_excluded():
    a = job("a", "2024-03-01", "2024-03-03")
    assert find_conflict(a, [a]) is not None
    assert find_conflict(a, [a], exclude_id="a") is None


def test_non_blocking_existing_is_ignored():
    cand = job("new", "2024-03-01", "2024-03-01")
    assert find_conflict(cand, [job("x", "2024-03-01", "2024-03-02", status="Enquiry")]) is None
    assert find_conflict(cand, [job("x", "2024-03-01", "2024-03-02", status="cancelled")]) is None


def test_first_conflict_is_earliest_start_regardless_of_input_order():
    cand = job("new", "2024-03-01", "2024-03-10")
    late = job("late", "2024-03-08", "2024-03-09")
    early = job("early", "2024-03-02", "2024-03-03")
    tie = job("a-tie", "2024-03-08", "2024-03-08")
    assert find_conflict(cand, [late, early, tie]).conflicting_id == "early"
    assert [c.conflicting_id for c in find_conflicts(cand, [late, tie, early])] == ["early", "a-tie", "late"]


def test_conflict_reports_existing_window():
    c = find_conflict(job("new", "2024-03-03", "2024-03-05"), [job("old", "2024-03-01", "2024-03-03")])
    assert (c.window_start, c.window_end) == ("2024-03-01", "2024-03-03")
    assert c.resource_key == "v1"
    assert c.status == "Confirmed"


def test_only_shared_resources_conflict():
    cand = job("new", "2024-03-01", "2024-03-01", resources=(CRANE,))
    assert find_conflict(cand, [job("old", "2024-03-01", "2024-03-01")]) is None


def test_per_resource_days_narrow_the_overlap():
    john = (ResourceType.EMPLOYEE, "john smith")
    old = job("old", "2024-06-01", "2024-06-02", resources=(john,),
              resource_days={john: frozenset({"2024-06-01"})})
    assert find_conflict(job("new", "2024-06-02", "2024-06-02", resources=(john,)), [old]) is None
    assert find_conflict(job("new", "2024-06-01", "2024-06-01", resources=(john,)), [old]) is not None


def test_per_resource_status_override():
    old = job("old", "2024-06-01", "2024-06-01", status="Enquiry", resource_status={VAN: "Maintenance"})
    c = find_conflict(job("new", "2024-06-01", "2024-06-01"), [old])
    assert c is not None and c.status == "Maintenance"


def test_conflicts_by_resource_keeps_first_per_resource():
    cand = job("new", "2024-03-01", "2024-03-05", resources=(VAN, CRANE))
    existing = [
        job("v-late", "2024-03-04", "2024-03-04"),
        job("v-early", "2024-03-01", "2024-03-01"),
        job("crane", "2024-03-02", "2024-03-02", resources=(CRANE,)),
    ]
    out = find_conflicts_by_resource(cand, existing)
    assert out[VAN].conflicting_id == "v-early"
    assert out[CRANE].conflicting_id == "crane"


def test_describe_mentions_resource_window_and_status():
    c = find_conflict(
        job("new", "2024-03-03", "2024-03-03"),
        [job("old", "2024-03-01", "2024-03-03", label="Job 12 · ACME")],
        resource_labels={VAN: "Ford Transit"},
    )
    msg = c.describe()
    assert msg.startswith("Conflict: Ford Transit already has a booking")
    assert "Fri 01 Mar 2024 → Sun 03 Mar 2024" in msg
    assert "(Confirmed)" in msg
    assert "Job 12 · ACME" in msg
