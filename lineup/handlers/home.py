import time

from flask import Blueprint, current_app, jsonify

from lineup.utils.helpers.clock import isoformat, utcnow

home_bp = Blueprint("home_bp", __name__)

STARTED_AT = time.monotonic()


@home_bp.route("/", methods=["GET"])
def home():
    return jsonify({
        "success": True,
        "message": "Khana Line-up API",
        "endpoints": {
            "auth": "/api/auth",
            "menu": "/api/menu",
            "orders": "/api/orders",
            "health": "/health",
        },
    }), 200


@home_bp.route("/health", methods=["GET"])
def health():
    return jsonify({
        "status": "OK",
        "timestamp": isoformat(utcnow()),
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "environment": current_app.config.get("ENVIRONMENT", "development"),
    }), 200
