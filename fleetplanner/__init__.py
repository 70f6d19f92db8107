import logging
import os

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .config import config
from .controllers.availability import bp as availability_bp
from .controllers.maintenance import bp as maintenance_bp
from .exceptions import (
    ConflictError,
    InvalidRangeError,
    PartialWriteInconsistencyError,
    ReservationNotFoundError,
    StoreUnavailableError,
    VehicleNotFoundError,
)
from .models.store import Store
from .utils.filters import fmt_day, fmt_window

logger = logging.getLogger(__name__)


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(InvalidRangeError)
    def invalid_range(e):
        return jsonify({"ok": False, "error": e.message}), 400

    @app.errorhandler(VehicleNotFoundError)
    @app.errorhandler(ReservationNotFoundError)
    def not_found(e):
        return jsonify({"ok": False, "error": e.message}), 404

    @app.errorhandler(ConflictError)
    def conflict(e):
        return jsonify({"ok": False, "error": e.message, "conflict": e.conflict.to_dict()}), 409

    @app.errorhandler(StoreUnavailableError)
    def store_unavailable(e):
        logger.error("Store unavailable: %s", e.message)
        return jsonify({"ok": False, "error": e.message, "retryable": True}), 503

    @app.errorhandler(PartialWriteInconsistencyError)
    def partial_write(e):
        return jsonify({
            "ok": False,
            "error": e.message,
            "booking_id": e.booking_id,
            "vehicle_id": e.vehicle_id,
            "patch": e.patch,
        }), 500

    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify({"ok": False, "error": e.description}), e.code


def create_app(config_name=None):
    config_name = config_name or os.getenv("APP_ENV") or "default"
    cfg = config[config_name]
    if hasattr(cfg, "validate"):
        cfg.validate()

    app = Flask(__name__)
    app.config.from_object(cfg)

    logging.basicConfig(
        level=getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    Store.instance(app.config.get("DATA_PATH"), persist=app.config.get("PERSIST", True))  # load data.pkl or start empty
    app.register_blueprint(availability_bp)
    app.register_blueprint(maintenance_bp)
    app.jinja_env.filters["fmt_day"] = fmt_day
    app.jinja_env.filters["fmt_window"] = fmt_window
    _register_error_handlers(app)

    return app
