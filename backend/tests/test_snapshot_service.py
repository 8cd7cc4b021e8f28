# Overview: Pytest coverage for the monthly snapshot store.

from datetime import date

import pytest

from stockrecon.models import StockSnapshot
from stockrecon.services.snapshot_service import (
    SnapshotRow,
    apply_delta,
    build_grid,
    purge_month,
    read_cell,
    read_month,
    replace_month,
)
from stockrecon.validation import PartialFailureError

MAY = date(2024, 5, 1)
JUNE = date(2024, 6, 1)


@pytest.fixture
def products(make_product):
    return [make_product(name) for name in ("Alma", "Körte", "Szilva")]


def _rows(products, warehouse="Galopp", theoretical=10, actual=10):
    return [SnapshotRow(p.id, warehouse, theoretical, actual) for p in products]


class TestReplaceMonth:

    def test_replace_twice_keeps_one_copy(self, db_session, products):
        rows = _rows(products)
        replace_month(MAY, rows)
        replace_month(MAY, rows)
        assert len(read_month(MAY)) == len(rows)

    def test_other_months_untouched(self, db_session, products):
        replace_month(JUNE, _rows(products))
        replace_month(MAY, _rows(products[:1]))
        replace_month(MAY, _rows(products[1:]))
        assert len(read_month(JUNE)) == 3
        assert {s.product_id for s in read_month(MAY)} == {products[1].id, products[2].id}

    def test_insert_failure_after_delete(self, db_session, products):
        """The delete stays committed; the month is left empty."""
        replace_month(MAY, _rows(products))

        broken = _rows(products) + [SnapshotRow(None, "Galopp", 1, 1)]
        with pytest.raises(PartialFailureError) as exc:
            replace_month(MAY, broken)

        assert "2024-05" in str(exc.value)
        assert read_month(MAY) == []


class TestReadMonth:

    def test_pagination_reads_everything(self, db_session, products):
        rows = _rows(products, "Galopp") + _rows(products, "Mobil1")
        replace_month(MAY, rows)

        assert len(read_month(MAY, page_size=2)) == 6
        assert len(read_month(MAY, page_size=3)) == 6
        assert len(read_month(MAY, page_size=100)) == 6

    def test_empty_month(self, db_session):
        assert read_month(MAY, page_size=2) == []

    def test_invalid_page_size(self, db_session):
        with pytest.raises(ValueError):
            read_month(MAY, page_size=0)


class TestCells:

    def test_missing_cell_reads_zero(self, db_session, products):
        cell = read_cell(MAY, "Galopp", products[0].id)
        assert (cell.theoretical, cell.actual, cell.exists) == (0, 0, False)

    def test_apply_delta_updates_theoretical_only(self, db_session, products):
        replace_month(MAY, [SnapshotRow(products[0].id, "Galopp", 100, 95)])

        apply_delta(MAY, "Galopp", products[0].id, -10)

        cell = read_cell(MAY, "Galopp", products[0].id)
        assert (cell.theoretical, cell.actual) == (90, 95)

    def test_apply_delta_creates_missing_cell(self, db_session, products):
        apply_delta(MAY, "Mázsa", products[0].id, 7)

        cell = read_cell(MAY, "Mázsa", products[0].id)
        assert cell.exists
        assert (cell.theoretical, cell.actual) == (7, 0)

    def test_purge_month(self, db_session, products):
        replace_month(MAY, _rows(products))
        replace_month(JUNE, _rows(products))

        assert purge_month(MAY) == 3
        assert read_month(MAY) == []
        assert db_session.query(StockSnapshot).count() == 3


class TestBuildGrid:

    def test_grid_includes_every_product(self, db_session, products):
        replace_month(MAY, [
            SnapshotRow(products[0].id, "Galopp", 100, 95),
            SnapshotRow(products[1].id, "Galopp", 50, 30),
        ])

        grid = {row["product_name"]: row for row in build_grid(MAY)}

        assert set(grid) == {"Alma", "Körte", "Szilva"}
        assert grid["Alma"]["warehouses"]["Galopp"] == {
            "theoretical": 100,
            "actual": 95,
            "difference": -5,
            "highlight": False,
        }
        assert grid["Körte"]["warehouses"]["Galopp"]["highlight"] is True
        assert grid["Szilva"]["warehouses"] == {}

    def test_unknown_warehouse_skipped(self, db_session, products):
        replace_month(MAY, [
            SnapshotRow(products[0].id, "Pince", 1, 1),
            SnapshotRow(products[0].id, "Galopp", 1, 1),
        ])

        grid = {row["product_name"]: row for row in build_grid(MAY)}
        assert list(grid["Alma"]["warehouses"]) == ["Galopp"]
