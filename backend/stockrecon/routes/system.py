# backend/stockrecon/routes/system.py
"""
System health and reference-data endpoints.
"""

import time
from flask import Blueprint, current_app, jsonify
from ..extensions import db
from ..models import Product, StockSnapshot, TransferLogEntry
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        product_count = db.session.query(Product).count()
        snapshot_count = db.session.query(StockSnapshot).count()
        transfer_count = db.session.query(TransferLogEntry).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "products": product_count,
                "snapshots": snapshot_count,
                "transfers": transfer_count,
            }
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: database reachable
    - 503: database unhealthy
    """
    database_health = check_database_health()
    http_status = 200 if database_health["status"] == "healthy" else 503

    return {
        "status": database_health["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {
            "database": database_health,
        }
    }, http_status


@system_bp.get("/api/warehouses")
def list_warehouses():
    """Configured warehouses, in grid column order."""
    return jsonify({"warehouses": list(current_app.config["WAREHOUSES"])}), 200
