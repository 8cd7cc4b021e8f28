# Overview: Pytest coverage for the reconciliation audit.

from datetime import date

import pytest

from stockrecon.services.audit_service import audit_month
from stockrecon.services.snapshot_service import SnapshotRow, purge_month, replace_month
from stockrecon.services.transfer_service import execute_transfer

MAY = date(2024, 5, 1)


@pytest.fixture
def product(make_product):
    return make_product("Alma")


def _full_month(product_id, warehouses, theoretical=10):
    return [SnapshotRow(product_id, wh, theoretical, theoretical) for wh in warehouses]


class TestAuditMonth:

    def test_consistent_month(self, db_session, warehouses, product):
        replace_month(MAY, _full_month(product.id, warehouses))
        execute_transfer(warehouses[0], warehouses[1], product.id, 5, MAY)

        report = audit_month(MAY)

        assert report["status"] == "ok"
        assert report["month"] == "2024-05"
        assert report["snapshot_count"] == 6
        assert all(count == 1 for count in report["per_warehouse"].values())

    def test_empty_month_after_failed_insert(self, db_session, warehouses, product):
        report = audit_month(MAY)
        assert report["status"] == "inconsistent"
        assert report["missing_warehouses"] == warehouses

    def test_missing_warehouse(self, db_session, warehouses, product):
        replace_month(MAY, _full_month(product.id, warehouses[:-1]))

        report = audit_month(MAY)

        assert report["status"] == "inconsistent"
        assert report["missing_warehouses"] == [warehouses[-1]]

    def test_negative_theoretical(self, db_session, warehouses, product):
        replace_month(MAY, _full_month(product.id, warehouses, theoretical=3))
        execute_transfer(warehouses[0], warehouses[1], product.id, 5, MAY)

        report = audit_month(MAY)

        assert report["status"] == "inconsistent"
        assert report["negative_theoretical"] == [
            {"product_id": product.id, "warehouse": warehouses[0], "theoretical": -2}
        ]

    def test_transfer_without_cells(self, db_session, warehouses, product):
        replace_month(MAY, _full_month(product.id, warehouses))
        entry = execute_transfer(warehouses[0], warehouses[1], product.id, 5, MAY)
        purge_month(MAY)

        report = audit_month(MAY)

        assert report["transfers_missing_cells"] == [
            {"transfer_id": entry.id, "product_id": product.id, "missing_cells": warehouses[:2]}
        ]
        assert report["duplicate_keys"] == []
