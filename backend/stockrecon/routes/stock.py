# Overview: Flask API routes for monthly stock grids, purges and audits.

from flask import Blueprint, current_app, jsonify

from ..decorators import require_month
from ..extensions import db
from ..services import audit_service, snapshot_service
from ..time_utils import month_key


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.get("")
@require_month
def get_stock_grid(month):
    """
    Grid data for one month.

    Query params:
        month: YYYY-MM

    Returns:
        200: {"month", "warehouses", "rows": [...]}
        400: Invalid month
    """
    try:
        rows = snapshot_service.build_grid(month)
        return jsonify({
            "month": month_key(month),
            "warehouses": list(current_app.config["WAREHOUSES"]),
            "rows": rows,
        }), 200
    except Exception:
        current_app.logger.exception("Failed to build stock grid")
        return jsonify({"error": "Failed to load stock data"}), 500


@stock_bp.delete("")
@require_month
def purge_stock(month):
    """Delete every snapshot of a month. Transfers are left untouched."""
    try:
        deleted = snapshot_service.purge_month(month)
        return jsonify({"month": month_key(month), "deleted": deleted}), 200
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to purge stock month")
        return jsonify({"error": "Failed to purge stock data"}), 500


@stock_bp.get("/audit")
@require_month
def audit_stock(month):
    try:
        report = audit_service.audit_month(month)
        return jsonify(report), 200
    except Exception:
        current_app.logger.exception("Stock audit failed")
        return jsonify({"error": "Stock audit failed"}), 500
