# Overview: Flask API routes for monthly count uploads; parses multipart input and returns JSON responses.

"""
Upload Routes

Both layouts replace the whole month. Which layout a request uses is decided
by the endpoint, never by inspecting the file.
"""

from flask import Blueprint, current_app, jsonify, request

from ..services.catalog_service import CatalogError, get_catalog
from ..services.ingest_schemas import decode_upload
from ..services.ingest_service import UploadFile, ingest_per_warehouse, ingest_unified
from ..time_utils import parse_month_key
from ..validation import ConflictError, PartialFailureError, ValidationError


uploads_bp = Blueprint("uploads", __name__, url_prefix="/api/uploads")


def _read_upload(storage, warehouse=None) -> UploadFile:
    filename = storage.filename or "upload.csv"
    return UploadFile(
        filename=filename,
        content=decode_upload(storage.read(), filename),
        warehouse=warehouse,
    )


@uploads_bp.post("/per-warehouse")
def upload_per_warehouse_route():
    """
    Full-month upload, one CSV per warehouse.

    Multipart form:
        month: YYYY-MM
        files: one file per warehouse
        warehouses: warehouse name per file, same order as files

    Returns:
        201: IngestResult
        400: Invalid request or unusable file (nothing written)
        409: Catalog conflict could not be resolved
        500: Partial failure (message names the month)
    """
    try:
        month = parse_month_key(request.form.get("month"))
        storages = request.files.getlist("files")
        warehouses = request.form.getlist("warehouses")
        if not storages:
            raise ValidationError("files is required")

        files = [
            _read_upload(storage, warehouses[i] if i < len(warehouses) else None)
            for i, storage in enumerate(storages)
        ]
        result = ingest_per_warehouse(files, month, get_catalog())
        return jsonify(result.to_dict()), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except (PartialFailureError, CatalogError) as e:
        current_app.logger.error("Per-warehouse upload failed: %s", e)
        return jsonify({"error": str(e)}), 500
    except Exception:
        current_app.logger.exception("Per-warehouse upload failed")
        return jsonify({"error": "Upload failed"}), 500


@uploads_bp.post("/unified")
def upload_unified_route():
    """
    Full-month upload from the single unified export.

    Multipart form:
        month: YYYY-MM
        file: the unified CSV
    """
    try:
        month = parse_month_key(request.form.get("month"))
        if "file" not in request.files:
            raise ValidationError("file is required")

        upload = _read_upload(request.files["file"])
        result = ingest_unified(upload, month, get_catalog())
        return jsonify(result.to_dict()), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except (PartialFailureError, CatalogError) as e:
        current_app.logger.error("Unified upload failed: %s", e)
        return jsonify({"error": str(e)}), 500
    except Exception:
        current_app.logger.exception("Unified upload failed")
        return jsonify({"error": "Upload failed"}), 500
