# Overview: Pytest coverage for the two count-file layouts.

from datetime import date

import pytest

from stockrecon.services.ingest_schemas import (
    PerWarehouseParser,
    UnifiedParser,
    decode_upload,
    parse_decimal,
    parse_integer,
    parser_for,
)
from stockrecon.validation import ParseError

MONTH = date(2024, 5, 1)


class TestNumberParsing:

    def test_integer_strips_thousands_spacing(self):
        assert parse_integer(" 1 200 ") == 1200
        assert parse_integer("1 200") == 1200

    def test_integer_takes_leading_digits(self):
        assert parse_integer("12,5") == 12
        assert parse_integer("10,00") == 10
        assert parse_integer("12.5") == 12
        assert parse_integer("-5db") == -5

    def test_integer_rejects_text(self):
        assert parse_integer("abc") is None
        assert parse_integer("-") is None
        assert parse_integer("") is None

    def test_decimal_accepts_comma(self):
        assert parse_decimal("12,5") == 12.5
        assert parse_decimal(" -3 ") == -3

    def test_decimal_rejects_non_finite(self):
        assert parse_decimal("inf") is None
        assert parse_decimal("nan") is None


class TestPerWarehouseParser:

    def test_default_layout(self, per_warehouse_csv):
        content = per_warehouse_csv([("Alma", 10, 8), ("Körte", "1 200", "1 150")])
        result = PerWarehouseParser().parse(content, MONTH, source="ital.csv", warehouse="Ital raktár")

        assert [(r.product_name, r.theoretical, r.actual) for r in result.rows] == [
            ("Alma", 10, 8),
            ("Körte", 1200, 1150),
        ]
        assert all(r.warehouse == "Ital raktár" and r.month == MONTH for r in result.rows)
        assert result.warnings == []

    def test_comma_delimiter_detected(self, per_warehouse_csv):
        content = per_warehouse_csv([("Alma", 10, 8), ("Körte", 3, 3)], delimiter=",")
        result = PerWarehouseParser().parse(content, MONTH, source="a.csv", warehouse="Galopp")
        assert len(result.rows) == 2

    def test_alternate_column_layout(self):
        content = "\n".join([
            "Export;;;;;",
            "Név;Kód;Csoport;Elméleti;Tényleges;Egység",
            "Alma;A1;Gyümölcs;10;9;db",
        ])
        parser = PerWarehouseParser(0, 3, 4, delimiter=";")
        result = parser.parse(content, MONTH, source="a.csv", warehouse="Galopp")
        assert [(r.product_name, r.theoretical, r.actual) for r in result.rows] == [("Alma", 10, 9)]

    def test_blank_info_row_still_counts_as_header(self):
        content = "\n".join([
            ";;;;",
            "Megnevezés;Kód;Elméleti;Tényleges;Egység",
            "Alma;A1;10;8;db",
            "Körte;K1;5;5;db",
        ])
        result = PerWarehouseParser(delimiter=";").parse(content, MONTH, source="a.csv", warehouse="Galopp")
        assert [r.product_name for r in result.rows] == ["Alma", "Körte"]
        assert result.warnings == []

    def test_decimal_cells_keep_integer_part(self):
        content = "\n".join([
            "Export;;;;",
            "Megnevezés;Kód;Elméleti;Tényleges;Egység",
            "Alma;A1;10,00;8,00;db",
        ])
        result = PerWarehouseParser(delimiter=";").parse(content, MONTH, source="a.csv", warehouse="Galopp")
        assert [(r.theoretical, r.actual) for r in result.rows] == [(10, 8)]

    def test_negative_theoretical_clamped(self, per_warehouse_csv):
        content = per_warehouse_csv([("Alma", -5, 2)])
        result = PerWarehouseParser().parse(content, MONTH, source="a.csv", warehouse="Galopp")
        assert result.rows[0].theoretical == 0
        assert result.rows[0].actual == 2
        assert any("negative theoretical" in w for w in result.warnings)

    def test_malformed_rows_become_warnings(self, per_warehouse_csv):
        content = per_warehouse_csv([("Alma", 10, 8), ("Körte", "sok", 3), ("", 1, 1)])
        content += "Rövid;sor\n"
        result = PerWarehouseParser().parse(content, MONTH, source="a.csv", warehouse="Galopp")
        assert [r.product_name for r in result.rows] == ["Alma"]
        assert len(result.warnings) == 3

    def test_headers_only_is_fatal(self, per_warehouse_csv):
        with pytest.raises(ParseError):
            PerWarehouseParser().parse(per_warehouse_csv([]), MONTH, source="a.csv", warehouse="Galopp")

    def test_headers_then_blank_rows_is_fatal(self):
        content = "Leltár;;;;\nMegnevezés;Kód;Elméleti;Tényleges;Egység\n;;;;\n;;;;\n"
        with pytest.raises(ParseError):
            PerWarehouseParser(delimiter=";").parse(content, MONTH, source="a.csv", warehouse="Galopp")

    def test_warehouse_required(self, per_warehouse_csv):
        with pytest.raises(ParseError):
            PerWarehouseParser().parse(per_warehouse_csv([("Alma", 1, 1)]), MONTH, source="a.csv")


class TestUnifiedParser:

    def _all(self, app, theoretical, actual):
        return {wh: (theoretical, actual) for wh in app.config["UNIFIED_WAREHOUSE_COLUMNS"]}

    def test_every_warehouse_populated(self, app, unified_csv):
        content = unified_csv([
            ("Alma", self._all(app, 10, 9)),
            ("Körte", self._all(app, "2,5", "2,5")),
        ])
        result = UnifiedParser(app.config["UNIFIED_WAREHOUSE_COLUMNS"]).parse(content, MONTH, source="u.csv")

        assert len(result.rows) == 12
        pear = [r for r in result.rows if r.product_name == "Körte"]
        assert {r.theoretical for r in pear} == {2.5}

    def test_column_offsets(self, app, unified_csv):
        values = self._all(app, 1, 1)
        values["Mázsa"] = (62, 63)
        content = unified_csv([("Alma", values)])
        result = UnifiedParser(app.config["UNIFIED_WAREHOUSE_COLUMNS"]).parse(content, MONTH, source="u.csv")
        mazsa = [r for r in result.rows if r.warehouse == "Mázsa"]
        assert (mazsa[0].theoretical, mazsa[0].actual) == (62, 63)

    def test_empty_warehouse_block_rejected(self, app, unified_csv):
        values = self._all(app, 10, 9)
        del values["Mázsa"]
        del values["Galopp"]
        content = unified_csv([("Alma", values)])

        with pytest.raises(ParseError) as exc:
            UnifiedParser(app.config["UNIFIED_WAREHOUSE_COLUMNS"]).parse(content, MONTH, source="u.csv")
        assert "Mázsa" in str(exc.value)
        assert "Galopp" in str(exc.value)

    def test_negative_theoretical_clamped(self, app, unified_csv):
        values = self._all(app, 5, 5)
        values["Galopp"] = ("-3,5", 1)
        content = unified_csv([("Alma", values)])
        result = UnifiedParser(app.config["UNIFIED_WAREHOUSE_COLUMNS"]).parse(content, MONTH, source="u.csv")
        galopp = [r for r in result.rows if r.warehouse == "Galopp"]
        assert galopp[0].theoretical == 0
        assert len(result.warnings) == 1

    def test_narrow_rows_skipped(self, app, unified_csv):
        content = unified_csv([("Alma", self._all(app, 1, 1))]) + "Rövid;1;2\n"
        result = UnifiedParser(app.config["UNIFIED_WAREHOUSE_COLUMNS"]).parse(content, MONTH, source="u.csv")
        assert len(result.rows) == 6
        assert len(result.warnings) == 1

    def test_header_only_is_fatal(self, app):
        with pytest.raises(ParseError):
            UnifiedParser(app.config["UNIFIED_WAREHOUSE_COLUMNS"]).parse("Megnevezés;x\n", MONTH, source="u.csv")


class TestLayoutSelection:

    def test_parser_for_uses_configured_columns(self):
        parser = parser_for("per_warehouse", {"PER_WAREHOUSE_COLUMNS": (0, 3, 4)})
        assert (parser.name_col, parser.theoretical_col, parser.actual_col) == (0, 3, 4)

    def test_unknown_layout(self):
        with pytest.raises(ValueError):
            parser_for("auto", {})


class TestDecodeUpload:

    def test_bom_stripped(self):
        assert decode_upload("\ufeffAlma".encode("utf-8"), "a.csv") == "Alma"

    def test_invalid_bytes_fatal(self):
        with pytest.raises(ParseError):
            decode_upload(b"\xff\xfe\x00Alma", "a.csv")
