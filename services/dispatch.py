"""Deliver a reply: inline chunks under the transport cap, or one attachment."""
from __future__ import annotations

import asyncio
import io
import logging
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Font, PatternFill

from services.tables import Record, TableData, column_letter
from sheet_bot.config import Settings

logger = logging.getLogger(__name__)

ATTACHMENT_NOTICE = "📎 The result is too long for a message, sending it as a file instead."
XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"

SENT_TEXT = "text"
SENT_FILE = "file"

AttachmentRow = Tuple[TableData, Record]


def split_message(text: str, limit: int) -> List[str]:
    """Split ``text`` into chunks of at most ``limit`` characters.

    Paragraph breaks are preferred, then line breaks, then spaces; a hard cut
    is the last resort.
    """
    if limit <= 0:
        raise ValueError("limit must be positive")
    content = (text or "").strip()
    if not content:
        return []

    chunks: List[str] = []
    remaining = content
    while len(remaining) > limit:
        cut = remaining.rfind("\n\n", 0, limit + 1)
        if cut < int(limit * 0.40):
            cut = remaining.rfind("\n", 0, limit + 1)
        if cut < int(limit * 0.40):
            cut = remaining.rfind(" ", 0, limit + 1)
        if cut <= 0:
            cut = limit

        piece = remaining[:cut].rstrip()
        if piece:
            chunks.append(piece)
        remaining = remaining[cut:].lstrip()

    if remaining:
        chunks.append(remaining)
    return chunks


def _cell_text(value: object) -> str:
    # openpyxl rejects control characters such as the vertical tab Word pastes in.
    return ILLEGAL_CHARACTERS_RE.sub("", "" if value is None else str(value))


def _column_key(index: int, header: str) -> str:
    return _cell_text(header) or f"Column {column_letter(index)}"


def _column_names(rows: Sequence[AttachmentRow]) -> List[str]:
    seen: Dict[str, None] = {}
    for table, _ in rows:
        for i, header in enumerate(table.headers):
            seen.setdefault(_column_key(i, header), None)
    return list(seen)


def build_workbook(rows: Sequence[AttachmentRow]) -> bytes:
    """One worksheet, one row per record, one column per distinct header."""
    columns = ["Sheet", "Row"] + [c for c in _column_names(rows) if c not in ("Sheet", "Row")]
    data = []
    for table, record in rows:
        item: Dict[str, str] = {"Sheet": _cell_text(table.name), "Row": str(record.sheet_row(table.header_rows))}
        for i, header in enumerate(table.headers):
            key = _column_key(i, header)
            if key in ("Sheet", "Row") or item.get(key):
                continue
            item[key] = _cell_text(record.cells[i]) if i < len(record.cells) else ""
        data.append(item)

    frame = pd.DataFrame(data, columns=columns).fillna("")
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        frame.to_excel(writer, index=False, sheet_name="Results")
        sheet = writer.sheets["Results"]
        for row in sheet.iter_rows():
            for cell in row:
                # Values are display text; a leading "=" must not become a formula.
                if cell.data_type == "f":
                    cell.data_type = "s"
        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="305496", end_color="305496", fill_type="solid")
        for cell in sheet[1]:
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        for i, name in enumerate(columns):
            sheet.column_dimensions[column_letter(i)].width = min(max(len(str(name)) + 4, 10), 40)
        sheet.freeze_panes = "A2"
    return buf.getvalue()


def build_attachment(
    text: str,
    rows: Optional[Sequence[AttachmentRow]],
    settings: Settings,
) -> Tuple[str, bytes, str]:
    if rows and settings.attachment_format == "xlsx":
        return settings.xlsx_filename, build_workbook(rows), XLSX_CONTENT_TYPE
    return settings.text_filename, text.encode("utf-8"), TEXT_CONTENT_TYPE


async def dispatch(
    transport,
    room_id: str,
    text: str,
    *,
    settings: Settings,
    rows: Optional[Sequence[AttachmentRow]] = None,
) -> str:
    """Send ``text`` to ``room_id`` and report which path was taken."""
    if len(text) > settings.attachment_threshold:
        filename, content, content_type = build_attachment(text, rows, settings)
        logger.info(
            "Reply is %d chars (threshold %d); sending %s (%d bytes)",
            len(text),
            settings.attachment_threshold,
            filename,
            len(content),
        )
        await asyncio.to_thread(transport.post_text, room_id, ATTACHMENT_NOTICE)
        await asyncio.to_thread(transport.post_file, room_id, filename, content, content_type)
        return SENT_FILE

    chunks = split_message(text, settings.message_limit)
    for chunk in chunks:
        await asyncio.to_thread(transport.post_text, room_id, chunk)
    logger.info("Sent reply in %d chunk(s)", len(chunks))
    return SENT_TEXT
