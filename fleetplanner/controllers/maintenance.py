from flask import Blueprint, jsonify

from ..exceptions import VehicleNotFoundError
from ..services.common import _store
from ..services.maintenance_service import MaintenanceService
from ..services.vehicle_sync import diff
from .availability import _json_body, _outcome

bp = Blueprint("maintenance", __name__, url_prefix="/api")


@bp.post("/vehicles/<vid>/maintenance")
def create_maintenance(vid):
    """Book an MOT or service for a vehicle."""
    ok, msg, bid = MaintenanceService.create_booking(vid, _json_body())
    return _outcome(ok, msg, bid, created=True)


@bp.put("/maintenance/<bid>")
def update_maintenance(bid):
    ok, msg, _ = MaintenanceService.update_booking(bid, _json_body())
    return _outcome(ok, msg, bid)


@bp.post("/maintenance/<bid>/cancel")
def cancel_maintenance(bid):
    ok, msg, _ = MaintenanceService.cancel_booking(bid)
    return _outcome(ok, msg, bid)


@bp.delete("/maintenance/<bid>")
def delete_maintenance(bid):
    ok, msg, _ = MaintenanceService.delete_booking(bid)
    return _outcome(ok, msg, bid)


@bp.get("/vehicles/<vid>/maintenance/<mtype>/summary")
def maintenance_summary(vid, mtype):
    """Summary derived from the bookings, and whether the vehicle's cached copy has drifted."""
    vehicle = _store().get_vehicle(vid)
    if not vehicle:
        raise VehicleNotFoundError()
    derived = MaintenanceService.derive_summary(vid, mtype)
    return jsonify({
        "vehicle_id": vehicle["vehicle_id"],
        "summary": derived,
        "stale": bool(diff(vehicle, derived)),
    })


@bp.post("/vehicles/<vid>/reconcile")
def reconcile(vid):
    changed = MaintenanceService.rebuild_summary(vid)
    return jsonify({"vehicle_id": vid, "changed": changed})
