# backend/stockrecon/services/catalog_service.py
"""
Product catalog resolution.

WHY: Count files identify products only by free-text name. Every ingestion
pass maps those names to stable product ids, creating catalog rows for names
never seen before.

CONCURRENCY:
Two operators uploading at once may both try to create the same name. The
UNIQUE constraint on products.normalized_name decides; the creation primitive
reports the loss as Conflict (not an exception) and the resolver re-reads the
authoritative catalog.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Union

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import Product
from ..validation import ConflictError
from .concurrency import run_statement

logger = logging.getLogger(__name__)


class CatalogError(RuntimeError):
    """Raised when catalog rows cannot be created for a non-conflict reason."""


class CatalogNotLoadedError(RuntimeError):
    """Raised when a CatalogCache is used before initialize()."""


def normalize_product_name(raw: str | None) -> str:
    """Trim, collapse internal whitespace runs, case-fold."""
    if raw is None:
        return ""
    return " ".join(str(raw).split()).casefold()


@dataclass(frozen=True)
class Created:
    products: list[Product]


@dataclass(frozen=True)
class Conflict:
    names: list[str]


CreateResult = Union[Created, Conflict]


@dataclass
class CatalogCache:
    """
    Client-side name -> id map.

    Rebuilt from the store on initialize()/refresh(); never authoritative.
    """
    _ids: dict[str, int] = field(default_factory=dict)
    _loaded: bool = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def initialize(self) -> "CatalogCache":
        if not self._loaded:
            self.refresh()
        return self

    def refresh(self) -> "CatalogCache":
        rows = db.session.query(Product.id, Product.normalized_name).all()
        self._ids = {normalized: product_id for product_id, normalized in rows}
        self._loaded = True
        return self

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise CatalogNotLoadedError("Catalog cache used before initialize()")

    def __contains__(self, normalized_name: str) -> bool:
        self._require_loaded()
        return normalized_name in self._ids

    def __len__(self) -> int:
        self._require_loaded()
        return len(self._ids)

    def id_for(self, raw_name: str) -> int | None:
        self._require_loaded()
        return self._ids.get(normalize_product_name(raw_name))

    def add(self, products: Iterable[Product]) -> None:
        self._require_loaded()
        for p in products:
            self._ids[p.normalized_name] = p.id


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) == "23505":
        return True
    return "unique" in str(orig).lower()


def create_products(names: list[str]) -> CreateResult:
    """
    Bulk-create catalog rows in one statement.

    Returns Created with the new rows, or Conflict when another writer already
    holds one of the normalized names (the whole statement is rolled back).

    Raises:
        CatalogError: on any other persistence failure
    """
    if not names:
        return Created(products=[])

    def _op():
        products = [
            Product(name=" ".join(n.split()), normalized_name=normalize_product_name(n))
            for n in names
        ]
        db.session.add_all(products)
        db.session.flush()
        return products

    try:
        products = run_statement(_op)
    except IntegrityError as e:
        if _is_unique_violation(e):
            return Conflict(names=list(names))
        raise CatalogError(f"Failed to create products: {e.orig}") from e
    except SQLAlchemyError as e:
        raise CatalogError(f"Failed to create products: {e}") from e

    return Created(products=products)


def resolve_product_ids(raw_names: Iterable[str], catalog: CatalogCache) -> dict[str, int]:
    """
    Map every observed product name to a product id, creating missing ones.

    Args:
        raw_names: names as they appear in the input (any casing/spacing)
        catalog: state object; initialized here if it has not been loaded

    Returns:
        dict: normalized name -> product id, for every non-blank input name

    Raises:
        ConflictError: names still unresolved after the configured attempts
        CatalogError: non-conflict creation failure
    """
    catalog.initialize()

    # First-seen spelling wins within the batch
    wanted: dict[str, str] = {}
    for raw in raw_names:
        key = normalize_product_name(raw)
        if key and key not in wanted:
            wanted[key] = raw

    attempts = current_app.config.get("CATALOG_CREATE_ATTEMPTS", 3)
    for _ in range(attempts):
        pending = [original for key, original in wanted.items() if key not in catalog]
        if not pending:
            break

        result = create_products(pending)
        if isinstance(result, Created):
            catalog.add(result.products)
            logger.info("Created %d catalog products", len(result.products))
        else:
            logger.warning(
                "Catalog insert conflict for %d names, likely a concurrent upload; re-reading catalog",
                len(result.names),
            )
            catalog.refresh()

    unresolved = [original for key, original in wanted.items() if key not in catalog]
    if unresolved:
        raise ConflictError(
            f"Could not resolve {len(unresolved)} product names after {attempts} attempts: "
            + ", ".join(sorted(unresolved)[:10])
        )

    return {key: catalog.id_for(key) for key in wanted}


def list_products() -> list[Product]:
    return db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()


def get_catalog() -> CatalogCache:
    """The application's shared catalog cache (created unloaded on first use)."""
    return current_app.extensions.setdefault("stockrecon.catalog", CatalogCache())
