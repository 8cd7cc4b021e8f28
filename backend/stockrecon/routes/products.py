# backend/stockrecon/routes/products.py
from flask import Blueprint, current_app, jsonify

from ..services.catalog_service import list_products


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products_route():
    try:
        products = list_products()
        return jsonify({"products": [p.to_dict() for p in products]}), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Failed to list products"}), 500
