from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Set


@dataclass
class CommandSpec:
    name: str
    usage: str
    description: str
    aliases: List[str] = field(default_factory=list)


# Thai and English command words both map onto the three command roots.
COMMAND_ALIASES: Dict[str, str] = {
    "ค้นหา": "search",
    "แก้ไข": "update",
    "find": "search",
    "edit": "update",
    "commands": "help",
}


def _c(name: str, usage: str, description: str) -> CommandSpec:
    aliases = sorted(alias for alias, root in COMMAND_ALIASES.items() if root == name)
    return CommandSpec(
        name=name,
        usage=usage,
        description=description,
        aliases=aliases,
    )


COMMANDS: Dict[str, CommandSpec] = {
    "search": _c("search", "search <keyword>", "search every sheet for a keyword"),
    "search_sheet": _c("search", "search <sheet name>", "show every row of one sheet (sent as a file when long)"),
    "search_column": _c("search", "search <sheet name> <column>", "show one column of a sheet, row by row"),
    "update": _c("update", "update <sheet name> <column> <row> <new value>", "write one cell"),
    "help": _c("help", "help", "show this help"),
}


def resolve_root(command_name: str) -> str:
    key = str(command_name or "").strip().lower()
    if not key:
        return ""
    return COMMAND_ALIASES.get(key, key)


def command_specs() -> List[CommandSpec]:
    return list(COMMANDS.values())


def known_roots() -> Set[str]:
    return {spec.name for spec in command_specs()}


def validate_registry() -> List[str]:
    issues: List[str] = []
    roots = known_roots()
    for alias, root in COMMAND_ALIASES.items():
        if root not in roots:
            issues.append(f"Alias {alias!r} points at unknown command {root!r}")
        if alias in roots:
            issues.append(f"Alias {alias!r} shadows a command name")
    for spec in command_specs():
        if not spec.usage.startswith(spec.name):
            issues.append(f"Usage for {spec.name!r} must start with the command name")
    if not roots:
        issues.append("No command roots registered")
    return issues
