# backend/stockrecon/routes/transfers.py
"""
Theoretical-stock transfer API routes.
"""
from flask import Blueprint, Response, current_app, jsonify, request

from ..decorators import require_month
from ..services import transfer_service
from ..time_utils import month_key, parse_month_key
from ..validation import NotFoundError, PartialFailureError, ValidationError, require_fields


transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfers")


@transfers_bp.get("")
@require_month
def list_transfers_route(month):
    try:
        transfers = transfer_service.list_transfers(month)
        return jsonify({
            "month": month_key(month),
            "transfers": [t.to_dict() for t in transfers],
        }), 200
    except Exception:
        current_app.logger.exception("Failed to list transfers")
        return jsonify({"error": "Failed to list transfers"}), 500


@transfers_bp.post("")
def create_transfer():
    """
    Move theoretical stock between two warehouses for one month.

    Request body:
    {
        "from_wh": str,
        "to_wh": str,
        "product_id": int,
        "qty": number (> 0),
        "month": "YYYY-MM",
        "user": str (optional)
    }

    Returns:
        201: Transfer recorded and both cells adjusted
        400: Invalid request
        404: Product not found
        500: Ledger row written but a cell adjustment failed
    """
    try:
        data = require_fields(
            request.get_json(silent=True),
            ("from_wh", "to_wh", "product_id", "qty", "month"),
        )
        entry = transfer_service.execute_transfer(
            from_wh=data["from_wh"],
            to_wh=data["to_wh"],
            product_id=data["product_id"],
            qty=data["qty"],
            month=parse_month_key(data["month"]),
            actor=data.get("user"),
        )
        return jsonify(entry.to_dict()), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PartialFailureError as e:
        current_app.logger.error("Transfer partially applied: %s", e)
        return jsonify({"error": str(e)}), 500
    except Exception:
        current_app.logger.exception("Transfer failed")
        return jsonify({"error": "Transfer failed"}), 500


@transfers_bp.delete("/<int:transfer_id>")
def undo_transfer_route(transfer_id: int):
    """
    Undo a transfer: remove it from the ledger and reverse both adjustments.

    Returns:
        200: {"undone": <removed ledger row>}
        404: Transfer not found
        500: Ledger row removed but a reversal failed
    """
    try:
        removed = transfer_service.undo_transfer(transfer_id)
        return jsonify({"undone": removed}), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PartialFailureError as e:
        current_app.logger.error("Undo partially applied: %s", e)
        return jsonify({"error": str(e)}), 500
    except Exception:
        current_app.logger.exception("Undo failed")
        return jsonify({"error": "Undo failed"}), 500


@transfers_bp.get("/export")
@require_month
def export_transfers_route(month):
    try:
        body = transfer_service.export_transfers(month)
    except Exception:
        current_app.logger.exception("Transfer export failed")
        return jsonify({"error": "Transfer export failed"}), 500

    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename=transfers-{month_key(month)}.csv"},
    )


@transfers_bp.post("/import")
def import_transfers_route():
    """
    Restore ledger rows from an exported CSV (multipart `file` or raw body).

    Snapshot cells are not adjusted.
    """
    try:
        if "file" in request.files:
            text = request.files["file"].read().decode("utf-8-sig")
        else:
            text = request.get_data(as_text=True)
        if not text or not text.strip():
            raise ValidationError("CSV content is required")

        entries = transfer_service.import_transfers(text)
        return jsonify({
            "imported": len(entries),
            "transfers": [e.to_dict() for e in entries],
        }), 201

    except UnicodeDecodeError:
        return jsonify({"error": "file is not valid UTF-8"}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Transfer import failed")
        return jsonify({"error": "Transfer import failed"}), 500
