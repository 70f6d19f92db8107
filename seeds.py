from fleetplanner import create_app
from fleetplanner.models.store import Store


def ensure_named(store: Store, collection: str, create, data: dict) -> str:
    """
    Ensure a record with data["name"] exists in the collection.
    - If exists: return its id (idempotent).
    - If not:   create it.
    """
    wanted = data["name"].strip().lower()
    for rid, doc in getattr(store, collection).items():
        if str(doc.get("name") or "").strip().lower() == wanted:
            return rid
    return create(data)


def seed(store: Store) -> dict:
    """Demo fleet, kit and crew. Returns {name: id}."""
    ids = {}

    # ---- Vehicles (MOT yearly, service half-yearly) ----
    for v in (
        {"name": "Ford Transit", "registration": "AB12 CDE", "mot_freq": 52, "service_freq": 26},
        {"name": "Mercedes Sprinter", "registration": "FG34 HIJ", "mot_freq": 52, "service_freq": 26},
        {"name": "Iveco Daily", "registration": "KL56 MNO", "mot_freq": 52, "service_freq": 13},
    ):
        ids[v["name"]] = ensure_named(store, "vehicles", store.create_vehicle, v)

    # ---- Equipment ----
    for name in ("Camera Crane", "Lighting Rig", "Generator"):
        ids[name] = ensure_named(store, "equipment", store.create_equipment, {"name": name})

    # ---- Employees ----
    for name, role in (("John Smith", "Driver"), ("Jane Doe", "Technician"), ("Sam Patel", "Driver")):
        ids[name] = ensure_named(store, "employees", store.create_employee, {"name": name, "role": role})

    return ids


def main():
    app = create_app()
    with app.app_context():
        store = Store.instance()
        ids = seed(store)
        store.save()

        print("✅ Seed complete.")
        for name, rid in ids.items():
            print(f"   {name}: {rid}")


if __name__ == "__main__":
    main()
