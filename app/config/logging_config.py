# =============================================================================
# File: app/config/logging_config.py
# Description: Root logging setup. Rich console on a TTY, JSON lines in
#              production, plain text otherwise; optional rotating file.
# =============================================================================

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from typing import Dict, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

PLAIN_FORMAT = "[%(asctime)s] [%(levelname)-8s] [%(name)-36s] %(message)s"
PLAIN_DATEFMT = "%Y-%m-%d %H:%M:%S"

EVENTHUB_THEME = Theme({
    "logging.level.debug": "dim cyan",
    "logging.level.info": "green",
    "logging.level.warning": "yellow",
    "logging.level.error": "bold red",
    "logging.level.critical": "bold white on red",
})

# Third-party chatter is capped; our own areas are listed so they can be
# tuned one at a time with LOGLEVEL_<NAME>, e.g. LOGLEVEL_EVENTHUB_DUAL_WRITE=DEBUG
DEFAULT_LEVELS: Dict[str, int] = {
    "asyncio": logging.WARNING,
    "asyncpg": logging.WARNING,
    "pymongo": logging.WARNING,
    "redis": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "granian.access": logging.WARNING,
    "eventhub.cqrs.query": logging.INFO,
    "eventhub.ledger": logging.INFO,
    "eventhub.dual_write": logging.INFO,
    "eventhub.reconciliation": logging.INFO,
}

# Attributes passed through logger.x(..., extra={...}) that the JSON output keeps
CONTEXT_FIELDS = ("actor_id", "aggregate_kind", "aggregate_id", "command_id")


def _env_flag(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except ValueError:
        return default


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, for log shippers"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = str(value)
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def level_override(logger_name: str, default: int) -> int:
    """LOGLEVEL_ + the logger name upper-cased with dots as underscores"""
    raw = os.getenv(f"LOGLEVEL_{logger_name.replace('.', '_').upper()}", "").strip().upper()
    resolved = logging.getLevelName(raw) if raw else default
    return resolved if isinstance(resolved, int) else default


def _console_handler(enable_json: bool, rich_tracebacks: bool) -> logging.Handler:
    force_color = _env_flag("FORCE_COLOR")
    if not enable_json and (sys.stdout.isatty() or force_color):
        console = Console(
            theme=EVENTHUB_THEME,
            force_terminal=force_color,
            width=_env_int("LOG_CONSOLE_WIDTH", 0) or None,
        )
        return RichHandler(
            console=console,
            rich_tracebacks=rich_tracebacks,
            show_path=False,
            markup=False,
            log_time_format="[%X]",
        )

    handler = logging.StreamHandler(sys.stdout)
    if enable_json:
        handler.setFormatter(JsonLineFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt=PLAIN_DATEFMT))
    return handler


def setup_logging(
        service_name: str = "eventhub",
        log_level: Optional[str] = None,
        log_file: Optional[str] = None,
        enable_json: Optional[bool] = None,
        rich_tracebacks: bool = True,
) -> None:
    """Replace the root handlers. Safe to call again, e.g. from a worker entry point."""
    level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if enable_json is None:
        enable_json = _env_flag("LOG_JSON_FORMAT")

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    console = _console_handler(enable_json, rich_tracebacks)
    root.addHandler(console)

    log_file = log_file or os.getenv("LOG_FILE")
    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=_env_int("LOG_MAX_SIZE_MB", 100) * 1024 * 1024,
            backupCount=_env_int("LOG_BACKUP_COUNT", 5),
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt=PLAIN_DATEFMT))
        root.addHandler(file_handler)

    for name, default in DEFAULT_LEVELS.items():
        logging.getLogger(name).setLevel(level_override(name, default))

    logging.getLogger("eventhub.logging").info(
        f"{service_name}: level={level} output={type(console).__name__}"
        + (f" file={log_file}" if log_file else "")
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
