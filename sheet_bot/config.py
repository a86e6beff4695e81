from __future__ import annotations

import json
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = BASE_DIR / "config.yaml"

DEFAULTS: Dict[str, Any] = {
    "webex": {
        "api_base": "https://webexapis.com/v1",
        "bot_name": "bot_small",
        "bot_id": "",
        "token": "",
        "message_limit": 7000,
        "timeout_seconds": 20,
    },
    "sheets": {
        "spreadsheet_id": "",
        "header_rows": 2,
        "last_column": "Z",
        "timeout_seconds": 20,
    },
    "search": {
        "case_sensitive": True,
    },
    "output": {
        "attachment_threshold": 7000,
        "attachment_format": "xlsx",
        "text_filename": "results.txt",
        "xlsx_filename": "results.xlsx",
    },
    "server": {
        "host": "0.0.0.0",
        "port": 3000,
    },
    "logging": {
        "level": "INFO",
        "json_format": False,
    },
    "paths": {
        "log_file": "logs/sheet-bot.log",
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}

    token = os.getenv("WEBEX_BOT_TOKEN", "").strip()
    if token:
        overrides.setdefault("webex", {})["token"] = token

    bot_name = os.getenv("WEBEX_BOT_NAME", "").strip()
    if bot_name:
        overrides.setdefault("webex", {})["bot_name"] = bot_name

    bot_id = os.getenv("BOT_ID", "").strip()
    if bot_id:
        overrides.setdefault("webex", {})["bot_id"] = bot_id

    sheet_id = os.getenv("GOOGLE_SHEET_FILE_ID", "").strip()
    if sheet_id:
        overrides.setdefault("sheets", {})["spreadsheet_id"] = sheet_id

    port = os.getenv("PORT", "").strip()
    if port:
        try:
            overrides.setdefault("server", {})["port"] = int(port)
        except ValueError:
            pass

    level = os.getenv("SHEET_BOT_LOG_LEVEL", "").strip()
    if level:
        overrides.setdefault("logging", {})["level"] = level

    return overrides


def resolve_path(path_value: str, *, base_dir: Optional[Path] = None) -> Path:
    candidate = Path(path_value)
    if not candidate.is_absolute():
        candidate = (base_dir or BASE_DIR) / candidate
    return candidate.resolve()


@lru_cache(maxsize=1)
def load_config() -> Dict[str, Any]:
    # Load .env once through a single interface.
    load_dotenv(dotenv_path=BASE_DIR / ".env")

    config_path = os.getenv("SHEET_BOT_CONFIG")
    path = resolve_path(config_path, base_dir=Path.cwd()) if config_path else DEFAULT_CONFIG_PATH

    data: Dict[str, Any] = {}
    if path.exists():
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        if isinstance(loaded, dict):
            data = loaded

    return _deep_merge(_deep_merge(DEFAULTS, data), _env_overrides())


def reload_config() -> Dict[str, Any]:
    load_config.cache_clear()
    return load_config()


def get_log_path(config: Optional[Dict[str, Any]] = None) -> Optional[Path]:
    """Rotating log file location, or None to log to the console only."""
    cfg = config or load_config()
    log_path = str(cfg.get("paths", {}).get("log_file") or "").strip()
    return resolve_path(log_path) if log_path else None


def load_google_credentials() -> Optional[Dict[str, Any]]:
    """Parse the service-account JSON held in GOOGLE_CREDENTIALS, if any."""
    raw = os.getenv("GOOGLE_CREDENTIALS", "").strip()
    if not raw:
        return None
    info = json.loads(raw)
    # Keys pasted into env files usually carry literal "\n" sequences.
    if isinstance(info.get("private_key"), str):
        info["private_key"] = info["private_key"].replace("\\n", "\n")
    return info


@dataclass(frozen=True)
class Settings:
    webex_token: str = ""
    webex_api_base: str = "https://webexapis.com/v1"
    bot_name: str = "bot_small"
    bot_id: str = ""
    message_limit: int = 7000
    webex_timeout: float = 20.0
    spreadsheet_id: str = ""
    header_rows: int = 2
    last_column: str = "Z"
    sheets_timeout: float = 20.0
    case_sensitive: bool = True
    attachment_threshold: int = 7000
    attachment_format: str = "xlsx"
    text_filename: str = "results.txt"
    xlsx_filename: str = "results.xlsx"

    def missing(self) -> Tuple[str, ...]:
        names = []
        if not self.webex_token:
            names.append("WEBEX_BOT_TOKEN")
        if not self.spreadsheet_id:
            names.append("GOOGLE_SHEET_FILE_ID")
        if not self.bot_id:
            names.append("BOT_ID")
        return tuple(names)


def get_settings(config: Optional[Dict[str, Any]] = None) -> Settings:
    cfg = config or load_config()
    webex = _deep_merge(DEFAULTS["webex"], cfg.get("webex", {}) or {})
    sheets = _deep_merge(DEFAULTS["sheets"], cfg.get("sheets", {}) or {})
    search = _deep_merge(DEFAULTS["search"], cfg.get("search", {}) or {})
    output = _deep_merge(DEFAULTS["output"], cfg.get("output", {}) or {})

    header_rows = int(sheets.get("header_rows", 2))
    if header_rows not in (1, 2):
        raise ValueError(f"sheets.header_rows must be 1 or 2, got {header_rows}")

    attachment_format = str(output.get("attachment_format", "xlsx")).strip().lower()
    if attachment_format not in ("xlsx", "txt"):
        raise ValueError(f"output.attachment_format must be xlsx or txt, got {attachment_format!r}")

    return Settings(
        webex_token=str(webex.get("token") or "").strip(),
        webex_api_base=str(webex.get("api_base") or DEFAULTS["webex"]["api_base"]).rstrip("/"),
        bot_name=str(webex.get("bot_name") or "").strip(),
        bot_id=str(webex.get("bot_id") or "").strip(),
        message_limit=int(webex.get("message_limit", 7000)),
        webex_timeout=float(webex.get("timeout_seconds", 20)),
        spreadsheet_id=str(sheets.get("spreadsheet_id") or "").strip(),
        header_rows=header_rows,
        last_column=str(sheets.get("last_column") or "Z").strip().upper(),
        sheets_timeout=float(sheets.get("timeout_seconds", 20)),
        case_sensitive=bool(search.get("case_sensitive", True)),
        attachment_threshold=int(output.get("attachment_threshold", 7000)),
        attachment_format=attachment_format,
        text_filename=str(output.get("text_filename") or "results.txt"),
        xlsx_filename=str(output.get("xlsx_filename") or "results.xlsx"),
    )
