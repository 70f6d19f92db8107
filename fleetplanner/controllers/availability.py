from flask import Blueprint, abort, jsonify, request

from ..services.booking_service import BookingService
from ..services.conflict_service import Candidate, ConflictService
from ..services.common import _tz

bp = Blueprint("availability", __name__, url_prefix="/api")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description="Expected a JSON object")
    return data


def _outcome(ok: bool, msg: str, rid, created: bool = False):
    """Turn a service (ok, message, id) tuple into a JSON response."""
    if ok:
        return jsonify({"ok": True, "id": rid}), 201 if created else 200
    if msg.startswith("Conflict"):
        code = 409
    elif msg.lower().endswith("not found"):
        code = 404
    else:
        code = 400
    return jsonify({"ok": False, "error": msg}), code


@bp.post("/availability")
def check_availability():
    """Check a candidate booking/holiday window against everything already held."""
    body = _json_body()
    try:
        candidate = Candidate.from_dict(body, tz_name=_tz())
    except ValueError as e:
        abort(400, description=str(e))
    result = ConflictService.check_availability(candidate)
    return jsonify(result.to_dict())


@bp.post("/bookings")
def create_booking():
    ok, msg, bid = BookingService.create_booking(_json_body())
    return _outcome(ok, msg, bid, created=True)


@bp.put("/bookings/<bid>")
def update_booking(bid):
    ok, msg, _ = BookingService.update_booking(bid, _json_body())
    return _outcome(ok, msg, bid)


@bp.post("/holidays")
def create_holiday():
    ok, msg, hid = BookingService.create_holiday(_json_body())
    return _outcome(ok, msg, hid, created=True)


@bp.get("/clashes")
def second_pencil_clashes():
    """Second Pencil bookings whose vehicle is already firmly booked."""
    return jsonify({"clashes": ConflictService.second_pencil_clashes()})
