import json
import logging
import os
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = {
            "ts": time.strftime('%Y-%m-%dT%H:%M:%S', time.gmtime(record.created)),
            "lvl": record.levelname.lower(),
            "msg": record.getMessage(),
            "logger": record.name,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            base.update({k: v for k, v in extra.items() if v is not None})
        return json.dumps(base, ensure_ascii=False, default=str)


def level_from(value: Optional[str]) -> int:
    try:
        # Allow numeric `logging` levels as well as names
        return int(value or "")
    except ValueError:
        return getattr(logging, (value or "info").upper(), logging.INFO)


def configure_logger(name: str, logs_dir: Path, filename: Optional[str], level: Optional[str] = None, stream=None) -> logging.Logger:
    """Attach JSON stream and rotating file handlers once per logger."""
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    h = logging.StreamHandler(stream or sys.stderr); h.setFormatter(JSONFormatter()); logger.addHandler(h)
    if filename:
        try:
            logs_dir.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(logs_dir / filename, maxBytes=10_000_000, backupCount=5)
        except OSError as exc:
            logger.warning("log_file_unavailable", extra={"extra": {"file": str(logs_dir / filename), "error": str(exc)}})
        else:
            fh.setFormatter(JSONFormatter()); logger.addHandler(fh)
    logger.setLevel(level_from(level or os.environ.get("LOG_LEVEL")))
    return logger
