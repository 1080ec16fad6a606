"""Logging helpers for the vaultpress runtime."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys
from typing import Optional, Union

from .configuration import RUNTIME_DIRNAME

LOG_SUBPATH = Path(RUNTIME_DIRNAME) / "logs" / "publish.log"
STRUCTURED_LOG_SUBPATH = Path(RUNTIME_DIRNAME) / "logs" / "publish.jsonl"
MAX_BYTES = 5 * 1024 * 1024  # 5 MB per log segment
BACKUP_COUNT = 3
FALLBACK_ROOT = Path.home() / ".cache" / "vaultpress"


class JSONFormatter(logging.Formatter):
    """Format log records as JSON lines for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        if hasattr(record, "extra") and record.extra:
            log_entry["extra"] = record.extra
        return json.dumps(log_entry)


def setup_logging(
    vault_dir: Path,
    level: Union[str, int] = logging.WARNING,
    structured: bool = True,
    console: bool = True,
) -> Path:
    """Configure the ``vaultpress`` logger.

    Args:
        vault_dir: Vault directory; logs go under its runtime directory.
        level: Logging level (string name or int constant).
        structured: Also write JSON lines next to the text log.
        console: Mirror records to stderr.

    Returns:
        Path to the primary (text) log file.
    """
    log_path = _resolve_path(vault_dir, LOG_SUBPATH)

    resolved_level = _resolve_level(level)
    text_formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setFormatter(text_formatter)

    logger = logging.getLogger("vaultpress")
    _reset_handlers(logger)
    logger.setLevel(resolved_level)
    logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(text_formatter)
        logger.addHandler(console_handler)

    if structured:
        json_path = _resolve_path(vault_dir, STRUCTURED_LOG_SUBPATH)
        json_handler = RotatingFileHandler(
            json_path,
            maxBytes=MAX_BYTES,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        json_handler.setFormatter(JSONFormatter())
        logger.addHandler(json_handler)

    logger.propagate = False
    return log_path


def _resolve_level(level: Union[str, int]) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.WARNING)
    return int(level)


def _resolve_path(vault_dir: Path, subpath: Path) -> Path:
    primary = vault_dir / subpath
    try:
        primary.parent.mkdir(parents=True, exist_ok=True)
        return primary
    except PermissionError:
        fallback = FALLBACK_ROOT / subpath.name
        fallback.parent.mkdir(parents=True, exist_ok=True)
        print(
            f"[config] Unable to write logs under '{vault_dir}'; "
            f"falling back to '{fallback.parent}'.",
            file=sys.stderr,
        )
        return fallback


def _reset_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


__all__ = ["setup_logging", "JSONFormatter", "LOG_SUBPATH", "STRUCTURED_LOG_SUBPATH", "FALLBACK_ROOT"]
