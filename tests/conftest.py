import re
from typing import Dict, List, Optional, Tuple

import pytest

from sheet_bot.config import Settings

RANGE_RE = re.compile(
    r"^(?:'(?P<quoted>(?:[^']|'')*)'|(?P<bare>[^!]+))!"
    r"(?P<c1>[A-Z]+)(?P<r1>\d+)(?::(?P<c2>[A-Z]+)(?P<r2>\d*))?$"
)


def _col_index(letters: str) -> int:
    n = 0
    for ch in letters:
        n = n * 26 + (ord(ch) - 64)
    return n - 1


def parse_range(range_spec: str) -> Tuple[str, int, int, int, Optional[int]]:
    m = RANGE_RE.match(range_spec)
    assert m, f"bad range {range_spec!r}"
    name = m.group("quoted").replace("''", "'") if m.group("quoted") is not None else m.group("bare")
    c1, r1 = _col_index(m.group("c1")), int(m.group("r1"))
    c2 = _col_index(m.group("c2")) if m.group("c2") else c1
    r2 = int(m.group("r2")) if m.group("r2") else (None if m.group("c2") else r1)
    return name, c1, r1, c2, r2


class FakeStore:
    """In-memory grid store that honours A1 ranges like the Sheets API."""

    def __init__(self, sheets: Dict[str, List[List[str]]]):
        self.sheets = {name: [list(row) for row in rows] for name, rows in sheets.items()}
        self.reads: List[str] = []
        self.writes: List[Tuple[str, str]] = []

    def list_table_names(self) -> List[str]:
        return list(self.sheets)

    def read_range(self, range_spec: str) -> List[List[str]]:
        self.reads.append(range_spec)
        name, c1, r1, c2, r2 = parse_range(range_spec)
        rows = self.sheets[name]
        end = len(rows) if r2 is None else min(r2, len(rows))
        out = [list(row[c1 : c2 + 1]) for row in rows[r1 - 1 : end]]
        # The API drops trailing empty cells and trailing empty rows.
        out = [self._rstrip(row) for row in out]
        while out and not out[-1]:
            out.pop()
        return out

    def write_cell(self, range_spec: str, value: str) -> dict:
        self.writes.append((range_spec, value))
        name, c1, r1, _, _ = parse_range(range_spec)
        rows = self.sheets[name]
        while len(rows) < r1:
            rows.append([])
        row = rows[r1 - 1]
        while len(row) <= c1:
            row.append("")
        row[c1] = value
        return {"updatedCells": 1}

    @staticmethod
    def _rstrip(row: List[str]) -> List[str]:
        row = list(row)
        while row and row[-1] == "":
            row.pop()
        return row


class FakeTransport:
    def __init__(self, messages: Optional[Dict[str, str]] = None):
        self.messages = messages or {}
        self.texts: List[Tuple[str, str]] = []
        self.files: List[Tuple[str, str, bytes, str]] = []

    def get_message_text(self, message_id: str) -> str:
        return self.messages[message_id]

    def post_text(self, room_id: str, text: str) -> dict:
        self.texts.append((room_id, text))
        return {"id": f"m{len(self.texts)}"}

    def post_file(self, room_id: str, filename: str, content: bytes, content_type: str = "text/plain") -> dict:
        self.files.append((room_id, filename, content, content_type))
        return {"id": f"f{len(self.files)}"}

    @property
    def calls(self) -> int:
        return len(self.texts) + len(self.files)


JOBS_ROWS = [
    ["ชื่องาน", "WBS", "สถานะงาน", "เสา", "เสา", "ระยะทาง", "หมายเหตุ"],
    ["", "", "", "8", "12.20", "HT", ""],
    ["Village road", "W-001", "done", "4", "2", "1.5 km", "Somchai checked"],
    ["School line", "W-002", "planning", "", "", "", ""],
    ["Market feeder", "W-003"],
]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        webex_token="token",
        bot_name="bot_small",
        bot_id="BOT",
        spreadsheet_id="sheet-id",
        header_rows=2,
        message_limit=500,
        attachment_threshold=500,
    )


@pytest.fixture
def jobs_rows() -> List[List[str]]:
    return [list(row) for row in JOBS_ROWS]


@pytest.fixture
def store(jobs_rows) -> FakeStore:
    return FakeStore(
        {
            "Jobs": jobs_rows,
            "July": [["Task", "Owner"], ["Name", ""], ["Pole swap", "Niran"]],
            "July Report": [["Task", "Status"], ["Name", "%"], ["Cable pull", "50"], ["Meter fix", "10"]],
            "Empty": [["Task"], ["Name"]],
        }
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_store():
    return FakeStore
