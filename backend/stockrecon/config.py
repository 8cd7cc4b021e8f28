# backend/stockrecon/config.py
from __future__ import annotations
import os


def _column_layout(raw: str) -> tuple[int, int, int]:
    """Parse "name,theoretical,actual" column indexes, e.g. "0,2,3"."""
    parts = [p.strip() for p in raw.split(",") if p.strip()]
    if len(parts) != 3:
        raise ValueError(f"PER_WAREHOUSE_COLUMNS must list 3 column indexes, got {raw!r}")
    name_col, theoretical_col, actual_col = (int(p) for p in parts)
    return name_col, theoretical_col, actual_col


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///stockrecon.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # No authentication: every mutation is attributed to this actor
    DEFAULT_ACTOR = os.environ.get("DEFAULT_ACTOR", "admin")

    # Page size used when scanning a month of snapshots
    SNAPSHOT_PAGE_SIZE = int(os.environ.get("SNAPSHOT_PAGE_SIZE", "1000"))

    CATALOG_CREATE_ATTEMPTS = int(os.environ.get("CATALOG_CREATE_ATTEMPTS", "3"))

    # Fixed set of warehouses (grid column order)
    WAREHOUSES = (
        "Központi raktár",
        "Ital raktár",
        "Galopp",
        "Ügető",
        "Mázsa",
        "Mobil1",
    )

    # Per-warehouse export files: name/theoretical/actual column indexes.
    # Deployments differ (0,2,3 or 0,3,4); neither is canonical.
    PER_WAREHOUSE_COLUMNS = _column_layout(os.environ.get("PER_WAREHOUSE_COLUMNS", "0,2,3"))
    PER_WAREHOUSE_MIN_COLUMNS = int(os.environ.get("PER_WAREHOUSE_MIN_COLUMNS", "5"))

    # Unified export: absolute (theoretical, actual) column indexes, stride of 10
    UNIFIED_WAREHOUSE_COLUMNS = {
        "Ital raktár": (12, 13),
        "Galopp": (22, 23),
        "Mobil1": (32, 33),
        "Központi raktár": (42, 43),
        "Ügető": (52, 53),
        "Mázsa": (62, 63),
    }
