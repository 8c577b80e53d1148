# === NAVMAP v1 ===
# {
#   "module": "ModuleRepo.RepoSync.logging_utils",
#   "purpose": "Structured logging helpers for the registry sync engine",
#   "sections": [
#     {"id": "json-formatter", "name": "JSONFormatter", "anchor": "class-json-formatter", "kind": "class"},
#     {"id": "setup-logging", "name": "setup_logging", "anchor": "function-setup-logging", "kind": "function"}
#   ]
# }
# === /NAVMAP ===
"""Structured logging helpers shared across registry sync components."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

from .settings import APP_NAME, ENV_PREFIX

__all__ = ["JSONFormatter", "setup_logging", "LOGGER_NAME", "LOG_FILENAME"]

LOGGER_NAME = "ModuleRepo.RepoSync"
LOG_FILENAME = "reposync.jsonl"

_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {key: value for key, value in vars(record).items() if key not in _RESERVED_ATTRS}


class JSONFormatter(logging.Formatter):
    """Formatter emitting one JSON object per record, including ``extra=`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        payload.update(_extra_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(
    *,
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    max_log_size_mb: int = 10,
    propagate: bool = False,
) -> logging.Logger:
    """Configure registry sync logging: console output plus a rotating JSONL file.

    The file lives in ``log_dir`` when given, else in ``MODREPO_LOG_DIR``, else
    in the platform log directory.  Calling this repeatedly replaces the
    handlers it installed earlier.
    """

    if log_dir is not None:
        resolved_dir = log_dir
    else:
        env_value = os.environ.get(f"{ENV_PREFIX}LOG_DIR", "").strip()
        resolved_dir = Path(env_value) if env_value else Path(platformdirs.user_log_dir(APP_NAME))

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_modrepo_managed", False):
            logger.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    stream_handler._modrepo_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    resolved_dir.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        resolved_dir / LOG_FILENAME,
        maxBytes=int(max_log_size_mb * 1024 * 1024),
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setFormatter(JSONFormatter())
    file_handler._modrepo_managed = True  # type: ignore[attr-defined]
    logger.addHandler(file_handler)

    logger.propagate = propagate
    return logger
