from reset_data import reset
from seeds import seed


def test_seed_is_idempotent(store):
    first = seed(store)
    second = seed(store)
    assert first == second
    assert len(store.list_vehicles()) == 3
    assert len(store.list_equipment()) == 3
    assert len(store.list_employees()) == 3


def test_seeded_vehicles_carry_maintenance_frequencies(store):
    ids = seed(store)
    v = store.get_vehicle(ids["Ford Transit"])
    assert (v["registration"], v["mot_freq"], v["service_freq"]) == ("AB12 CDE", 52, 26)


def test_reset_empties_every_collection(store):
    seed(store)
    reset(store)
    assert store.list_vehicles() == []
    assert store.list_employees() == []
