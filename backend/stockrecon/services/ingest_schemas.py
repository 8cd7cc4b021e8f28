# Overview: CSV layout parsers for monthly count uploads.

"""
Two physical layouts are supported, chosen by the operator:

- per_warehouse: one export per warehouse, two info/header rows, then data.
  The name/theoretical/actual column indexes differ between deployments and
  come from configuration.
- unified: one semicolon-delimited export holding every warehouse side by
  side at fixed absolute offsets, one header row.

Each parser turns raw text into ParsedRow records. Malformed rows are dropped
with a warning; a file that cannot be used at all raises ParseError.
"""
from __future__ import annotations

import csv
import io
import math
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Protocol

from ..validation import ParseError

_WHITESPACE_RE = re.compile(r"\s+")
_LEADING_INT_RE = re.compile(r"^[+-]?\d+")


@dataclass(frozen=True)
class ParsedRow:
    product_name: str
    warehouse: str
    theoretical: float
    actual: float
    month: date


@dataclass
class ParseResult:
    rows: list[ParsedRow] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def extend(self, other: "ParseResult") -> None:
        self.rows.extend(other.rows)
        self.warnings.extend(other.warnings)


class CountFileParser(Protocol):
    layout: str

    def parse(self, content: str, month: date, *, source: str, warehouse: str | None = None) -> ParseResult:
        ...


def decode_upload(data: bytes, source: str) -> str:
    """UTF-8 (optionally BOM-prefixed) only; anything else is a fatal file error."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ParseError(f"{source}: file is not valid UTF-8 ({e.reason} at byte {e.start})")


def _is_blank(row: list[str]) -> bool:
    return not any(cell.strip() for cell in row)


def _read_rows(content: str, delimiter: str, *, greedy: bool = True) -> list[list[str]]:
    """
    Physical CSV rows without empty lines.

    greedy also drops rows holding only delimiters or whitespace; otherwise
    such rows are kept so they still count toward header rows.
    """
    reader = csv.reader(io.StringIO(content), delimiter=delimiter)
    try:
        if greedy:
            return [row for row in reader if not _is_blank(row)]
        return [row for row in reader if row]
    except csv.Error as e:
        raise ParseError(f"Malformed CSV: {e}")


def _sniff_delimiter(content: str, default: str = ";") -> str:
    sample = "\n".join(content.splitlines()[:10])
    try:
        return csv.Sniffer().sniff(sample, delimiters=";,").delimiter
    except csv.Error:
        return default


def parse_integer(raw: str | None) -> int | None:
    """
    Per-warehouse quantities: whitespace (incl. thousands spacing) removed,
    then the leading integer is taken ("10,00" -> 10, "12.5" -> 12).
    """
    if raw is None:
        return None
    m = _LEADING_INT_RE.match(_WHITESPACE_RE.sub("", raw))
    if not m:
        return None
    return int(m.group(0))


def parse_decimal(raw: str | None) -> float | None:
    """Unified quantities: whitespace removed, decimal comma accepted, fractions allowed."""
    if raw is None:
        return None
    cleaned = _WHITESPACE_RE.sub("", raw).replace(",", ".")
    if not cleaned:
        return None
    try:
        value = float(cleaned)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def _clamp_theoretical(value: float, product_name: str, warehouse: str, source: str,
                       warnings: list[str]) -> float:
    if value < 0:
        warnings.append(
            f"{source}: negative theoretical value ({value:g}) for '{product_name}' "
            f"in {warehouse}; stored as 0"
        )
        return 0
    return value


class PerWarehouseParser:
    """One count file per warehouse; the operator says which warehouse."""

    layout = "per_warehouse"
    header_rows = 2

    def __init__(
        self,
        name_col: int = 0,
        theoretical_col: int = 2,
        actual_col: int = 3,
        *,
        min_columns: int = 5,
        delimiter: str | None = None,
    ):
        self.name_col = name_col
        self.theoretical_col = theoretical_col
        self.actual_col = actual_col
        self.min_columns = max(min_columns, name_col + 1, theoretical_col + 1, actual_col + 1)
        self.delimiter = delimiter

    def parse(self, content: str, month: date, *, source: str, warehouse: str | None = None) -> ParseResult:
        if not warehouse:
            raise ParseError(f"{source}: no warehouse assigned to file")

        delimiter = self.delimiter or _sniff_delimiter(content)
        try:
            rows = _read_rows(content, delimiter, greedy=False)
        except ParseError as e:
            raise ParseError(f"{source}: {e}")

        if not any(not _is_blank(row) for row in rows[self.header_rows:]):
            raise ParseError(
                f"{source}: expected {self.header_rows} header rows followed by data, "
                f"found only {len(rows)} rows"
            )

        result = ParseResult()
        for line_no, row in enumerate(rows[self.header_rows:], start=self.header_rows + 1):
            if _is_blank(row):
                continue
            if len(row) < self.min_columns:
                result.warnings.append(
                    f"{source} row {line_no}: {len(row)} columns, need {self.min_columns}; skipped"
                )
                continue

            product_name = row[self.name_col].strip()
            theoretical = parse_integer(row[self.theoretical_col])
            actual = parse_integer(row[self.actual_col])

            if not product_name or theoretical is None or actual is None:
                result.warnings.append(f"{source} row {line_no}: missing or non-numeric fields; skipped")
                continue

            theoretical = _clamp_theoretical(theoretical, product_name, warehouse, source, result.warnings)
            result.rows.append(
                ParsedRow(
                    product_name=product_name,
                    warehouse=warehouse,
                    theoretical=theoretical,
                    actual=actual,
                    month=month,
                )
            )

        if not result.rows:
            result.warnings.append(f"{source}: no valid data rows for {warehouse}")
        return result


class UnifiedParser:
    """All warehouses in one semicolon-delimited file at fixed column offsets."""

    layout = "unified"
    header_rows = 1
    delimiter = ";"

    def __init__(self, columns: Mapping[str, tuple[int, int]], name_col: int = 0):
        if not columns:
            raise ValueError("UnifiedParser needs at least one warehouse column pair")
        self.columns = dict(columns)
        self.name_col = name_col
        self.min_width = max(max(pair) for pair in self.columns.values()) + 1

    def parse(self, content: str, month: date, *, source: str, warehouse: str | None = None) -> ParseResult:
        try:
            rows = _read_rows(content, self.delimiter)
        except ParseError as e:
            raise ParseError(f"{source}: {e}")

        if len(rows) <= self.header_rows:
            raise ParseError(f"{source}: the file does not contain enough rows")

        result = ParseResult()
        seen: dict[str, int] = {wh: 0 for wh in self.columns}

        for line_no, row in enumerate(rows[self.header_rows:], start=self.header_rows + 1):
            if len(row) < self.min_width:
                result.warnings.append(
                    f"{source} row {line_no}: {len(row)} columns, need {self.min_width}; skipped"
                )
                continue

            product_name = row[self.name_col].strip()
            if not product_name:
                continue

            for wh, (theoretical_col, actual_col) in self.columns.items():
                theoretical = parse_decimal(row[theoretical_col])
                actual = parse_decimal(row[actual_col])
                if theoretical is None or actual is None:
                    continue

                theoretical = _clamp_theoretical(theoretical, product_name, wh, source, result.warnings)
                result.rows.append(
                    ParsedRow(
                        product_name=product_name,
                        warehouse=wh,
                        theoretical=theoretical,
                        actual=actual,
                        month=month,
                    )
                )
                seen[wh] += 1

        missing = [wh for wh, count in seen.items() if count == 0]
        if missing:
            raise ParseError(
                f"{source}: no data was loaded for the following warehouses: "
                f"{', '.join(missing)}. Check the CSV column layout."
            )
        return result


def parser_for(layout: str, config: Mapping) -> CountFileParser:
    """Explicit layout selection; there is no auto-detection."""
    if layout == PerWarehouseParser.layout:
        name_col, theoretical_col, actual_col = config["PER_WAREHOUSE_COLUMNS"]
        return PerWarehouseParser(
            name_col,
            theoretical_col,
            actual_col,
            min_columns=config.get("PER_WAREHOUSE_MIN_COLUMNS", 5),
        )
    if layout == UnifiedParser.layout:
        return UnifiedParser(config["UNIFIED_WAREHOUSE_COLUMNS"])
    raise ValueError(f"Unsupported upload layout: {layout}")
