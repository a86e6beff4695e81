from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass
class TableMatch:
    name: str
    rest: List[str]


def list_tables(store) -> List[str]:
    """Sheet titles in workbook order. Always fetched fresh."""
    names = store.list_table_names()
    logger.debug("Workbook has %d sheets", len(names))
    return list(names)


def resolve_table(args: Sequence[str], names: Iterable[str], *, min_rest: int = 0) -> Optional[TableMatch]:
    """Longest leading run of ``args`` that names a sheet.

    Sheet titles may contain spaces, so ``["July", "Report", "x"]`` resolves to
    "July Report" when that sheet exists, even if "July" exists too. At least
    ``min_rest`` args are left over for the caller.
    """
    known = set(names)
    longest = len(args) - min_rest
    for n in range(longest, 0, -1):
        candidate = " ".join(args[:n])
        if candidate in known:
            return TableMatch(name=candidate, rest=list(args[n:]))
    return None
