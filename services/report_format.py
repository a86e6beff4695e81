from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from services.tables import Record, TableData, flatten_text


@dataclass(frozen=True)
class ReportField:
    label: str
    key: str
    # Fuzzy fields go through the header lookup; their labels drift between sheets.
    fuzzy: bool = False


# Header keys are the workbook's own (Thai) column labels.
REPORT_LAYOUT: List[List[ReportField]] = [
    [ReportField("📝 Task", "ชื่องาน"), ReportField("🧾 WBS", "WBS")],
    [
        ReportField("💰 Paid/dated", "ชำระเงิน/ลว."),
        ReportField("✅ Approved/dated", "อนุมัติ/ลว."),
        ReportField("📂 File received", "รับแฟ้ม"),
    ],
    [
        ReportField("🔌 Transformer", "หม้อแปลง"),
        ReportField("⚡ HT distance", "HT", fuzzy=True),
        ReportField("⚡ LT distance", "LT", fuzzy=True),
    ],
    [
        ReportField("🪵 Pole 8", "8", fuzzy=True),
        ReportField("🪵 Pole 9", "9", fuzzy=True),
        ReportField("🪵 Pole 12", "12", fuzzy=True),
        ReportField("🪵 Pole 12.20", "12.20", fuzzy=True),
    ],
    [ReportField("👷 Supervisor", "พชง.ควบคุม")],
    [ReportField("📌 Status", "สถานะงาน"), ReportField("📊 Progress", "เปอร์เซ็นงาน")],
    [ReportField("🗒️ Notes", "หมายเหตุ")],
]

NOT_FOUND_TEXT = "❌ No matching data found."


def field_value(table: TableData, record: Record, spec: ReportField) -> str:
    if spec.fuzzy:
        return table.lookup(record, spec.key)
    return flatten_text(record.get(spec.key, ""))


def record_title(table: TableData, record: Record) -> str:
    return (
        f"📄 Sheet: {table.name} (row {record.index + 1}, "
        f"sheet row {record.sheet_row(table.header_rows)})"
    )


def format_record(
    table: TableData,
    record: Record,
    layout: Sequence[Sequence[ReportField]] = REPORT_LAYOUT,
) -> str:
    lines = [record_title(table, record)]
    for group in layout:
        lines.append(" | ".join(f"{spec.label}: {field_value(table, record, spec)}" for spec in group))
    return "\n".join(lines)


def join_blocks(blocks: Iterable[str]) -> str:
    return "\n\n".join(block for block in blocks if block)


def format_projection(table: TableData, column_index: int) -> str:
    header = table.headers[column_index]
    lines = [f"📄 Sheet: {table.name} | column: {header}"]
    for record in table.records:
        value = flatten_text(record.cells[column_index]) if column_index < len(record.cells) else ""
        lines.append(f"row {record.index + 1}: {value or '-'}")
    return "\n".join(lines)
