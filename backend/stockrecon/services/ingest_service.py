# Overview: Service-layer operations for monthly count uploads.

"""
Upload pipeline (authoritative ordering)

1. Validate the request shape (file count, warehouse assignment).
2. Parse EVERY file. Any fatal parse error stops here: no catalog or
   snapshot mutation has happened yet.
3. Resolve product names to ids (may create catalog rows).
4. Collapse duplicate (product, warehouse) keys, last row wins.
5. replace_month: delete the month, then insert the new rows.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from flask import current_app

from ..time_utils import month_key
from ..validation import ParseError, ValidationError
from .catalog_service import CatalogCache, normalize_product_name, resolve_product_ids
from .ingest_schemas import ParseResult, PerWarehouseParser, UnifiedParser, parser_for
from .snapshot_service import SnapshotRow, replace_month

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadFile:
    filename: str
    content: str
    warehouse: str | None = None


@dataclass
class IngestResult:
    month: date
    layout: str
    rows_written: int = 0
    products_seen: int = 0
    products_created: int = 0
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "month": month_key(self.month),
            "layout": self.layout,
            "rows_written": self.rows_written,
            "products_seen": self.products_seen,
            "products_created": self.products_created,
            "warnings": self.warnings,
        }


def _validate_assignments(files: list[UploadFile], warehouses: tuple[str, ...]) -> None:
    if len(files) != len(warehouses):
        raise ValidationError(f"Select exactly {len(warehouses)} CSV files, one per warehouse (got {len(files)})")

    unassigned = [f.filename for f in files if not f.warehouse]
    if unassigned:
        raise ValidationError(f"Every file must be assigned to a warehouse: {', '.join(unassigned)}")

    unknown = [f.warehouse for f in files if f.warehouse not in warehouses]
    if unknown:
        raise ValidationError(f"Unknown warehouses: {', '.join(unknown)}")

    assigned = {f.warehouse for f in files}
    if len(assigned) != len(warehouses):
        missing = [wh for wh in warehouses if wh not in assigned]
        raise ValidationError(
            "Each warehouse needs exactly one file; duplicate or missing assignment for: "
            + ", ".join(missing)
        )


def _store_rows(parsed: ParseResult, month: date, layout: str, catalog: CatalogCache) -> IngestResult:
    result = IngestResult(month=month, layout=layout, warnings=list(parsed.warnings))

    if not parsed.rows:
        raise ParseError("No valid stock rows could be extracted from the upload")

    known_before = len(catalog.initialize())
    ids = resolve_product_ids((r.product_name for r in parsed.rows), catalog)
    result.products_created = max(len(catalog) - known_before, 0)

    cells: dict[tuple[int, str], SnapshotRow] = {}
    for r in parsed.rows:
        product_id = ids.get(normalize_product_name(r.product_name))
        if product_id is None:
            result.warnings.append(f"No product id for '{r.product_name}'; row skipped")
            continue
        key = (product_id, r.warehouse)
        if key in cells:
            result.warnings.append(
                f"'{r.product_name}' appears more than once for {r.warehouse}; the last row was kept"
            )
        cells[key] = SnapshotRow(
            product_id=product_id,
            warehouse=r.warehouse,
            theoretical=r.theoretical,
            actual=r.actual,
        )

    if not cells:
        raise ParseError("No valid stock rows remained after product resolution")

    result.products_seen = len({pid for pid, _ in cells})
    result.rows_written = replace_month(month, cells.values())

    for w in result.warnings:
        logger.warning("Upload %s (%s): %s", month_key(month), layout, w)
    logger.info(
        "Upload %s (%s): %d rows for %d products (%d new), %d warnings",
        month_key(month), layout, result.rows_written, result.products_seen,
        result.products_created, len(result.warnings),
    )
    return result


def parse_files(parser, files: Iterable[UploadFile], month: date) -> ParseResult:
    """Parse all files before anything is written; the first fatal error aborts."""
    combined = ParseResult()
    for f in files:
        combined.extend(parser.parse(f.content, month, source=f.filename, warehouse=f.warehouse))
    return combined


def ingest_per_warehouse(
    files: list[UploadFile],
    month: date,
    catalog: CatalogCache,
    parser: PerWarehouseParser | None = None,
) -> IngestResult:
    """
    Full-month upload from one file per warehouse.

    Raises:
        ValidationError: wrong file count or assignment
        ParseError: any file unusable (nothing written)
        PartialFailureError: month deleted but new rows not inserted
    """
    warehouses = tuple(current_app.config["WAREHOUSES"])
    _validate_assignments(files, warehouses)

    parser = parser or parser_for(PerWarehouseParser.layout, current_app.config)
    parsed = parse_files(parser, files, month)
    return _store_rows(parsed, month, PerWarehouseParser.layout, catalog)


def ingest_unified(
    upload: UploadFile,
    month: date,
    catalog: CatalogCache,
    parser: UnifiedParser | None = None,
) -> IngestResult:
    """
    Full-month upload from the single unified export.

    Raises:
        ParseError: unusable file or a warehouse without any rows (nothing written)
        PartialFailureError: month deleted but new rows not inserted
    """
    parser = parser or parser_for(UnifiedParser.layout, current_app.config)
    parsed = parse_files(parser, [upload], month)
    return _store_rows(parsed, month, UnifiedParser.layout, catalog)
