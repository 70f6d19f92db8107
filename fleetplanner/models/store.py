import atexit
import copy
import logging
import os
import pickle
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from fleetplanner.exceptions import StoreUnavailableError
from fleetplanner.models.reservation import document_ref_keys, resource_key
from fleetplanner.utils.constants import COLLECTIONS, ID_FIELDS

logger = logging.getLogger(__name__)

# ---- Paths ----
BASE_DIR = Path(__file__).resolve().parents[2]
DEFAULT_DATA_PATH = BASE_DIR / "data.pkl"

COLLECTION_NAMES = ("vehicles", "equipment", "employees", "bookings", "maintenance_bookings", "holidays")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class Store:
    """
    Document store: one dict of documents per collection, keyed by id.

    Every write runs inside ``transaction()``: the collections are snapshotted,
    restored if anything inside raises, and persisted once when the outermost
    transaction succeeds. Callers group a check and its writes in one
    transaction to make the check binding.
    """
    _inst = None
    _inst_lock = threading.Lock()
    _atexit_registered = False

    def __init__(self, path: str | os.PathLike | None = None, persist: bool = True):
        self.path = str(path or DEFAULT_DATA_PATH)
        self.persist = persist
        self.vehicles: dict[str, dict] = {}
        self.equipment: dict[str, dict] = {}
        self.employees: dict[str, dict] = {}
        self.bookings: dict[str, dict] = {}
        self.maintenance_bookings: dict[str, dict] = {}
        self.holidays: dict[str, dict] = {}
        self._rw = threading.RLock()
        self._tx_depth = 0

        if self.persist:
            logger.info("[Store] Using file: %s", self.path)
            self._load()

            # Automatically save on exit (skipped in test environments)
            if not Store._atexit_registered and os.getenv("APP_ENV") != "test":
                atexit.register(self.save)
                Store._atexit_registered = True

    # ---------- Singleton ----------
    @classmethod
    def instance(cls, path: str | os.PathLike | None = None, persist: bool = True):
        """Return the global singleton instance of Store."""
        with cls._inst_lock:
            if cls._inst is None:
                cls._inst = Store(path or DEFAULT_DATA_PATH, persist=persist)
        return cls._inst

    # ---------- Persistence ----------
    def _load(self):
        """Load data from the pickle file, or start empty if unavailable or invalid."""
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, "rb") as f:
                data = pickle.load(f)
        except (OSError, pickle.UnpicklingError, EOFError) as e:
            logger.warning("[Store] Load failed (%s); starting empty.", e)
            return

        if isinstance(data, dict):
            for name in COLLECTION_NAMES:
                setattr(self, name, data.get(name, {}) or {})
            logger.info(
                "[Store] Loaded: %s",
                ", ".join(f"{name}={len(getattr(self, name))}" for name in COLLECTION_NAMES),
            )
        else:
            # Handle incompatible data format: backup the old file and start empty
            bak = self.path + ".bak"
            try:
                os.replace(self.path, bak)
                logger.warning("[Store] Incompatible store (%s); backed up to %s. Starting empty.",
                               type(data).__name__, bak)
            except OSError as e:
                logger.error("[Store] Backup failed: %s", e)

    def _dump(self):
        """Write the in-memory data to the pickle file safely (atomic replace)."""
        if not self.persist:
            return
        tmp = self.path + ".tmp"
        payload = {name: getattr(self, name) for name in COLLECTION_NAMES}
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(tmp, "wb") as f:
                pickle.dump(payload, f, protocol=pickle.HIGHEST_PROTOCOL)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except (OSError, pickle.PicklingError) as e:
            logger.error("[Store] Write to %s failed: %s", self.path, e)
            raise StoreUnavailableError(f"Error: could not write to storage ({e})") from e

    def save(self):
        """Thread-safe save method."""
        with self._rw:
            logger.info("[Store] Saving to %s ...", self.path)
            self._dump()

    # ---------- Transactions ----------
    def _snapshot(self) -> dict:
        return {name: copy.deepcopy(getattr(self, name)) for name in COLLECTION_NAMES}

    def _restore(self, snapshot: dict):
        for name, data in snapshot.items():
            setattr(self, name, data)

    @contextmanager
    def transaction(self):
        """
        Serialise a unit of work. Nested transactions join the outermost one;
        only the outermost rolls back or persists.
        """
        with self._rw:
            outer = self._tx_depth == 0
            snapshot = self._snapshot() if outer else None
            self._tx_depth += 1
            try:
                yield self
                if outer:
                    self._dump()
            except Exception:
                if outer:
                    self._restore(snapshot)
                    logger.info("[Store] Transaction rolled back")
                raise
            finally:
                self._tx_depth -= 1

    # ---------- Reservations ----------
    def _reservations(self, kind: str) -> dict[str, dict]:
        try:
            return getattr(self, COLLECTIONS[kind])
        except KeyError:
            raise ValueError(f"Unknown reservation kind: {kind!r}") from None

    def list_reservations(self, kind: str, resource_keys: Optional[Iterable[str]] = None) -> list[dict]:
        """
        Copies of all reservations of a kind, in insertion order. With
        resource_keys, only those referencing at least one of the keys
        (compared after resource_key() normalisation).
        """
        with self._rw:
            docs = list(self._reservations(kind).values())
            if resource_keys is not None:
                wanted = {resource_key(k) for k in resource_keys}
                docs = [d for d in docs if document_ref_keys(kind, d) & wanted]
            return [dict(d) for d in docs]

    def get_reservation(self, kind: str, reservation_id: str) -> dict | None:
        with self._rw:
            doc = self._reservations(kind).get(str(reservation_id))
            return dict(doc) if doc is not None else None

    def create_reservation(self, kind: str, fields: dict) -> str:
        """Create a booking/holiday document and return its ID."""
        with self.transaction():
            rid = str(uuid.uuid4())
            doc = dict(fields)
            doc[ID_FIELDS[kind]] = rid
            doc.setdefault("created_at", _now_iso())
            doc["updated_at"] = doc["created_at"]
            self._reservations(kind)[rid] = doc
            return rid

    def update_reservation(self, kind: str, reservation_id: str, patch: dict) -> bool:
        """Update an existing reservation by ID."""
        with self.transaction():
            doc = self._reservations(kind).get(str(reservation_id))
            if doc is None:
                return False
            doc.update(patch)
            doc["updated_at"] = _now_iso()
            return True

    def delete_reservation(self, kind: str, reservation_id: str) -> bool:
        with self.transaction():
            coll = self._reservations(kind)
            if str(reservation_id) not in coll:
                return False
            del coll[str(reservation_id)]
            return True

    # ---------- Vehicles ----------
    def create_vehicle(self, data: dict) -> str:
        """Create a new vehicle record and return its ID."""
        with self.transaction():
            vid = str(data.get("vehicle_id") or uuid.uuid4())
            self.vehicles[vid] = {
                **data,
                "vehicle_id": vid,
                "name": (data.get("name") or "").strip(),
                "registration": (data.get("registration") or "").strip().upper(),
                "mot_freq": data.get("mot_freq") or 0,
                "service_freq": data.get("service_freq") or 0,
            }
            return vid

    def get_vehicle(self, vehicle_id: str) -> dict | None:
        """Get a copy of the vehicle document by ID."""
        with self._rw:
            v = self.vehicles.get(str(vehicle_id))
            return copy.deepcopy(v) if v is not None else None

    def list_vehicles(self) -> list[dict]:
        with self._rw:
            return [dict(v) for v in self.vehicles.values()]

    def update_vehicle(self, vehicle_id: str, patch: dict) -> bool:
        """Update vehicle attributes; return True if updated successfully."""
        with self.transaction():
            v = self.vehicles.get(str(vehicle_id))
            if v is None:
                return False
            v.update({k: val for k, val in patch.items() if val is not None})
            return True

    # ---------- Equipment / employees ----------
    def create_equipment(self, data: dict) -> str:
        with self.transaction():
            eid = str(data.get("equipment_id") or uuid.uuid4())
            self.equipment[eid] = {**data, "equipment_id": eid, "name": (data.get("name") or "").strip()}
            return eid

    def list_equipment(self) -> list[dict]:
        with self._rw:
            return [dict(e) for e in self.equipment.values()]

    def create_employee(self, data: dict) -> str:
        with self.transaction():
            eid = str(data.get("employee_id") or uuid.uuid4())
            self.employees[eid] = {**data, "employee_id": eid, "name": (data.get("name") or "").strip()}
            return eid

    def list_employees(self) -> list[dict]:
        with self._rw:
            return [dict(e) for e in self.employees.values()]

