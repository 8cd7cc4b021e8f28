from __future__ import annotations

import math
from typing import Any, Iterable


class ValidationError(ValueError):
    """400-level input problem."""


class ParseError(ValidationError):
    """An uploaded file cannot be used at all; the whole upload is rejected."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., unresolvable catalog race)."""


class NotFoundError(ValueError):
    """404-level lookup failure."""


class PartialFailureError(RuntimeError):
    """
    A sequence of independently committed statements stopped partway.

    The statements already committed are NOT undone; the message names the
    affected month/entities so an operator can correct them by hand.
    """


def require_fields(payload: dict | None, fields: Iterable[str]) -> dict:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    return payload


def require_warehouse(value: Any, warehouses: Iterable[str], field: str = "warehouse") -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    name = value.strip()
    if name not in tuple(warehouses):
        raise ValidationError(f"{field} is not a known warehouse: {name!r}")
    return name


def coerce_positive_quantity(value: Any, field: str = "qty") -> float:
    """
    Accepts ints, floats and numeric strings; rejects bools, blanks,
    non-finite and non-positive values.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, str):
        stripped = value.strip().replace(",", ".")
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        try:
            value = float(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be a number")
    if not isinstance(value, (int, float)):
        raise ValidationError(f"{field} must be a number")
    qty = float(value)
    if not math.isfinite(qty):
        raise ValidationError(f"{field} must be a finite number")
    if qty <= 0:
        raise ValidationError(f"{field} must be > 0")
    return qty


def coerce_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    raise ValidationError(f"{field} must be an integer")
