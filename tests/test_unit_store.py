import pytest

from fleetplanner.exceptions import StoreUnavailableError
from fleetplanner.models.store import Store
from fleetplanner.utils.constants import Kind


def test_transaction_rolls_back_on_error(store):
    store.create_vehicle({"name": "Kept", "registration": "K1"})
    with pytest.raises(RuntimeError):
        with store.transaction():
            store.create_vehicle({"name": "Lost", "registration": "L1"})
            store.create_reservation(Kind.HOLIDAY, {"employee": "John Smith", "start_date": "2024-01-01"})
            raise RuntimeError("boom")
    assert [v["name"] for v in store.list_vehicles()] == ["Kept"]
    assert store.list_reservations(Kind.HOLIDAY) == []


def test_create_reservation_assigns_id_and_timestamps(store):
    bid = store.create_reservation(Kind.JOB_BOOKING, {"status": "Confirmed"})
    doc = store.get_reservation(Kind.JOB_BOOKING, bid)
    assert doc["booking_id"] == bid
    assert doc["created_at"] == doc["updated_at"]

    hid = store.create_reservation(Kind.HOLIDAY, {"employee": "Jane Doe"})
    assert store.get_reservation(Kind.HOLIDAY, hid)["holiday_id"] == hid


def test_reservation_copies_are_detached(store):
    bid = store.create_reservation(Kind.JOB_BOOKING, {"status": "Confirmed"})
    store.get_reservation(Kind.JOB_BOOKING, bid)["status"] = "Cancelled"
    assert store.get_reservation(Kind.JOB_BOOKING, bid)["status"] == "Confirmed"


def test_list_reservations_filters_by_resource_alias(store):
    hit = store.create_reservation(Kind.JOB_BOOKING, {"vehicles": [{"registration": "AB12 CDE"}]})
    store.create_reservation(Kind.JOB_BOOKING, {"vehicles": ["Other Van"]})
    found = store.list_reservations(Kind.JOB_BOOKING, ["ab12  cde"])
    assert [d["booking_id"] for d in found] == [hit]


def test_update_and_delete_missing_reservation(store):
    assert store.update_reservation(Kind.JOB_BOOKING, "missing", {"status": "x"}) is False
    assert store.delete_reservation(Kind.JOB_BOOKING, "missing") is False


def test_unknown_kind_is_rejected(store):
    with pytest.raises(ValueError):
        store.list_reservations("RENTAL")


def test_update_vehicle_ignores_none(store):
    vid = store.create_vehicle({"name": "Van", "registration": "ab12 cde", "mot_freq": 52})
    assert store.get_vehicle(vid)["registration"] == "AB12 CDE"
    assert store.update_vehicle(vid, {"mot_freq": None, "name": "Big Van"})
    v = store.get_vehicle(vid)
    assert (v["name"], v["mot_freq"]) == ("Big Van", 52)
    assert store.update_vehicle("missing", {"name": "x"}) is False


def test_persists_to_pickle(tmp_path):
    path = tmp_path / "data.pkl"
    st = Store(path, persist=True)
    vid = st.create_vehicle({"name": "Van", "registration": "V1"})

    reloaded = Store(path, persist=True)
    assert reloaded.get_vehicle(vid)["name"] == "Van"


def test_incompatible_file_is_backed_up(tmp_path):
    import pickle
    path = tmp_path / "data.pkl"
    path.write_bytes(pickle.dumps(["not", "a", "dict"]))
    st = Store(path, persist=True)
    assert st.list_vehicles() == []
    assert (tmp_path / "data.pkl.bak").exists()


def test_unwritable_path_raises_store_unavailable_and_rolls_back(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    st = Store(blocker / "data.pkl", persist=True)
    with pytest.raises(StoreUnavailableError):
        st.create_vehicle({"name": "Van"})
    assert st.list_vehicles() == []
