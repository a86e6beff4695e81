import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from services.argparse_simple import split_command_line
from services.commands_registry import command_specs, known_roots, resolve_root
from services.dispatch import AttachmentRow
from services.report_format import NOT_FOUND_TEXT, format_projection, format_record, join_blocks
from services.schema import list_tables, resolve_table
from services.sheets import a1_range
from services.tables import (
    TableData,
    column_letter,
    count_data_rows,
    find_column,
    flatten_text,
    read_headers,
    read_table,
)
from sheet_bot.config import Settings

logger = logging.getLogger(__name__)

UNKNOWN_COMMAND_TEXT = '❓ Unknown command. Type "help" to see what I can do.'
SEARCH_USAGE_TEXT = "❗ Usage: search <keyword> | search <sheet name> | search <sheet name> <column>"
UPDATE_USAGE_TEXT = "❗ Wrong format. Usage: update <sheet name> <column> <row> <new value>"


@dataclass
class CommandRequest:
    raw: str
    name: str
    args: List[str] = field(default_factory=list)


@dataclass
class CommandResponse:
    text: str = ""
    rows: Optional[List[AttachmentRow]] = None


@dataclass(frozen=True)
class CellAddress:
    table: str
    column_letter: str
    row_number: int

    @property
    def cells(self) -> str:
        return f"{self.column_letter}{self.row_number}"

    @property
    def label(self) -> str:
        return f"{self.table}!{self.cells}"

    @property
    def range_spec(self) -> str:
        return a1_range(self.table, self.cells)


def parse_command(text: str) -> CommandRequest:
    raw = str(text or "").strip()
    parts = split_command_line(raw)
    if not parts:
        return CommandRequest(raw=raw, name="", args=[])
    return CommandRequest(raw=raw, name=resolve_root(parts[0]), args=parts[1:])


def help_text(bot_name: str = "", header_rows: int = 2) -> str:
    prefix = f"@{bot_name} " if bot_name else ""
    lines = ["📌 Available commands:"]
    for i, spec in enumerate(command_specs(), start=1):
        lines.append(f"{i}. {prefix}{spec.usage} → {spec.description}")
    lines.append("")
    lines.append(
        "Row numbers count data rows only: row 1 is the first row under the "
        f"{header_rows}-row header, i.e. sheet row {header_rows + 1}."
    )
    aliases = sorted({alias for spec in command_specs() for alias in spec.aliases})
    if aliases:
        lines.append("Command words also accepted: " + ", ".join(aliases))
    return "\n".join(lines)


def _matches(value: str, keyword: str, case_sensitive: bool) -> bool:
    text = flatten_text(value)
    if case_sensitive:
        return keyword in text
    return keyword.casefold() in text.casefold()


class CommandExecutor:
    """Runs parsed commands against the grid store. One instance per request."""

    def __init__(self, store, settings: Settings):
        self.store = store
        self.settings = settings
        self._tables: Dict[str, TableData] = {}

    async def _call(self, func, *args, **kwargs):
        return await asyncio.to_thread(func, *args, **kwargs)

    async def table_names(self) -> List[str]:
        return await self._call(list_tables, self.store)

    async def table(self, name: str) -> TableData:
        # Memoized for this request only; every request starts from a fresh read.
        if name not in self._tables:
            self._tables[name] = await self._call(
                read_table,
                self.store,
                name,
                header_rows=self.settings.header_rows,
                last_column=self.settings.last_column,
            )
        return self._tables[name]

    async def execute(self, req: CommandRequest) -> CommandResponse:
        if req.name not in known_roots():
            return CommandResponse(text=UNKNOWN_COMMAND_TEXT)
        if req.name == "help":
            return CommandResponse(text=help_text(self.settings.bot_name, self.settings.header_rows))
        if req.name == "search":
            return await self.search(req.args)
        if req.name == "update":
            return await self.update(req.args)
        return CommandResponse(text=UNKNOWN_COMMAND_TEXT)

    async def search(self, args: List[str]) -> CommandResponse:
        keyword = " ".join(args).strip()
        if not keyword:
            return CommandResponse(text=SEARCH_USAGE_TEXT)

        names = await self.table_names()
        if keyword in names:
            return await self.dump_table(keyword)

        if len(args) >= 2:
            sheet_name = " ".join(args[:-1])
            if sheet_name in names:
                table = await self.table(sheet_name)
                idx = table.column_index(args[-1])
                if idx is not None:
                    if table.empty:
                        return CommandResponse(text=f"ℹ️ Sheet {sheet_name} has no data rows.")
                    return CommandResponse(text=format_projection(table, idx))

        return await self.keyword_search(keyword, names)

    async def dump_table(self, name: str) -> CommandResponse:
        table = await self.table(name)
        if table.empty:
            return CommandResponse(text=f"ℹ️ Sheet {name} has no data rows.")
        text = join_blocks(format_record(table, record) for record in table.records)
        return CommandResponse(text=text, rows=[(table, record) for record in table.records])

    async def keyword_search(self, keyword: str, names: List[str]) -> CommandResponse:
        blocks: List[str] = []
        rows: List[AttachmentRow] = []
        for name in names:
            table = await self.table(name)
            for record in table.records:
                if any(_matches(v, keyword, self.settings.case_sensitive) for v in record.cells):
                    blocks.append(format_record(table, record))
                    rows.append((table, record))
        logger.info("Keyword %r matched %d row(s) across %d sheet(s)", keyword, len(rows), len(names))
        if not blocks:
            return CommandResponse(text=NOT_FOUND_TEXT)
        return CommandResponse(text=join_blocks(blocks), rows=rows)

    async def update(self, args: List[str]) -> CommandResponse:
        if len(args) < 4:
            return CommandResponse(text=UPDATE_USAGE_TEXT)

        names = await self.table_names()
        match = resolve_table(args, names, min_rest=3)
        if match is None:
            tried = " / ".join(f'"{" ".join(args[:n])}"' for n in range(1, min(len(args) - 3, 2) + 1))
            return CommandResponse(text=f"❌ Sheet not found: {tried}")

        column_name, row_text = match.rest[0], match.rest[1]
        new_value = " ".join(match.rest[2:])

        headers = await self._call(
            read_headers,
            self.store,
            match.name,
            header_rows=self.settings.header_rows,
            last_column=self.settings.last_column,
        )
        col_idx = find_column(headers, column_name)
        if col_idx is None:
            return CommandResponse(text=f'❌ Column not found: "{column_name}" in sheet {match.name}')

        try:
            row_number = int(row_text)
        except ValueError:
            return CommandResponse(text=f'❌ Row must be a number, got "{row_text}"')

        data_rows = await self._call(
            count_data_rows,
            self.store,
            match.name,
            header_rows=self.settings.header_rows,
            last_column=self.settings.last_column,
        )
        if row_number < 1 or row_number > data_rows:
            span = f"1-{data_rows}" if data_rows else "none, the sheet has no data rows"
            return CommandResponse(
                text=f"❌ Row {row_number} is out of range for sheet {match.name} (valid rows: {span})"
            )

        address = CellAddress(
            table=match.name,
            column_letter=column_letter(col_idx),
            row_number=row_number + self.settings.header_rows,
        )
        await self._call(self.store.write_cell, address.range_spec, new_value)
        logger.info("Updated %s (column %r, data row %d)", address.label, headers[col_idx], row_number)
        return CommandResponse(text=f"✅ Updated {address.label} ({headers[col_idx]}) → {new_value}")
