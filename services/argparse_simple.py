from __future__ import annotations

from typing import List


def split_command_line(text: str) -> List[str]:
    """Split command text on whitespace. No quoting; sheet names are resolved later."""
    raw = str(text or "").strip()
    if not raw:
        return []
    return raw.split()
