"""Read sheets into header-keyed records.

A sheet starts with one or two header rows. With two rows the labels are
merged per column ("Task" + "Name" -> "Task Name"); everything below the
header block is data. Header text is typed by people and drifts over time,
so column lookups go through ``find_column`` instead of exact keys.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence

from services.sheets import a1_range

logger = logging.getLogger(__name__)

MISSING = "-"
_WS_RE = re.compile(r"\s+")


def flatten_text(value: object) -> str:
    """Collapse newlines and whitespace runs to single spaces."""
    if value is None:
        return ""
    return _WS_RE.sub(" ", str(value)).strip()


def normalize_label(value: object) -> str:
    return _WS_RE.sub("", str(value or "")).casefold()


def column_letter(index: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA."""
    if index < 0:
        raise ValueError(f"column index must be >= 0, got {index}")
    letters = ""
    n = index + 1
    while n:
        n, rem = divmod(n - 1, 26)
        letters = chr(65 + rem) + letters
    return letters


def merge_headers(header_rows: Sequence[Sequence[str]]) -> List[str]:
    if not header_rows:
        return []
    width = max(len(row) for row in header_rows)
    top = [str(row_cell or "").strip() for row_cell in header_rows[0]] + [""] * width
    if len(header_rows) == 1:
        return top[:width]

    sub = [str(row_cell or "").strip() for row_cell in header_rows[1]] + [""] * width
    merged: List[str] = []
    for i in range(width):
        h1, h2 = top[i], sub[i]
        merged.append(f"{h1} {h2}".strip() if h2 else h1)
    return merged


def find_column(headers: Sequence[str], keyword: str) -> Optional[int]:
    """Index of the first header matching ``keyword``.

    Exact match on the normalized label wins, then a suffix match, then a
    substring match. ``None`` when nothing matches.
    """
    needle = normalize_label(keyword)
    if not needle:
        return None
    labels = [normalize_label(h) for h in headers]
    for predicate in (
        lambda label: label == needle,
        lambda label: label.endswith(needle),
        lambda label: needle in label,
    ):
        for i, label in enumerate(labels):
            if label and predicate(label):
                return i
    return None


@dataclass
class Record:
    index: int
    fields: Dict[str, str]
    cells: List[str]

    def get(self, key: str, default: str = "") -> str:
        return self.fields.get(key, default)

    def sheet_row(self, header_rows: int) -> int:
        return self.index + header_rows + 1


@dataclass
class TableData:
    name: str
    headers: List[str] = field(default_factory=list)
    records: List[Record] = field(default_factory=list)
    header_rows: int = 2

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    @property
    def empty(self) -> bool:
        return not self.records

    def column_index(self, keyword: str) -> Optional[int]:
        return find_column(self.headers, keyword)

    def lookup(self, record: Record, keyword: str) -> str:
        idx = self.column_index(keyword)
        if idx is None or idx >= len(record.cells):
            return MISSING
        return flatten_text(record.cells[idx])


def build_records(headers: Sequence[str], data_rows: Sequence[Sequence[str]]) -> List[Record]:
    records: List[Record] = []
    width = len(headers)
    for index, row in enumerate(data_rows):
        cells = [str(c) if c is not None else "" for c in list(row)[:width]]
        cells += [""] * (width - len(cells))
        fields: Dict[str, str] = {}
        for header, cell in zip(headers, cells):
            # Repeated labels keep the first non-empty value.
            if header in fields and (fields[header] or not cell):
                continue
            fields[header] = cell
        records.append(Record(index=index, fields=fields, cells=cells))
    return records


def table_from_rows(name: str, rows: Sequence[Sequence[str]], header_rows: int = 2) -> TableData:
    if not rows or len(rows) < header_rows:
        return TableData(name=name, header_rows=header_rows)
    headers = merge_headers(rows[:header_rows])
    return TableData(
        name=name,
        headers=headers,
        records=build_records(headers, rows[header_rows:]),
        header_rows=header_rows,
    )


def read_table(store, name: str, *, header_rows: int = 2, last_column: str = "Z") -> TableData:
    """Fetch ``name!A1:<last_column>`` and bind every data row to the merged headers."""
    rows = store.read_range(a1_range(name, f"A1:{last_column}"))
    table = table_from_rows(name, rows, header_rows)
    logger.debug("Read sheet %r: %d headers, %d records", name, len(table.headers), len(table.records))
    return table


def read_headers(store, name: str, *, header_rows: int = 2, last_column: str = "Z") -> List[str]:
    rows = store.read_range(a1_range(name, f"A1:{last_column}{header_rows}"))
    if len(rows) < header_rows:
        # A sheet with a blank second header row comes back one row short.
        rows = list(rows) + [[] for _ in range(header_rows - len(rows))]
    if not any(rows):
        return []
    return merge_headers(rows[:header_rows])


def count_data_rows(store, name: str, *, header_rows: int = 2, last_column: str = "Z") -> int:
    rows = store.read_range(a1_range(name, f"A{header_rows + 1}:{last_column}"))
    return len(rows)
