"""Logging for crawl runs.

Two sinks hang off the ``crawl`` logger:

- the console, one narrated line per step (``[Visited] ...``,
  ``[Variant] 11oz -> $4.50``), colored by level on a terminal;
- ``logs/crawl_YYYYMMDD.jsonl``, one JSON object per record with the event
  type and its fields flattened in. Several runs on the same day share a
  file; every entry carries the ``run_id`` of the run that wrote it.

Structured events go through ``log_crawl_event`` so the console and the
JSONL file see the same record.
"""

import json
import logging
import sys
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from crawl.config import LOG_DIR

__all__ = [
    "setup_logging",
    "get_logger",
    "log_crawl_event",
]

ROOT_LOGGER = "crawl"


class JSONLFileHandler(logging.Handler):
    """Appends one JSON line per record to the day's crawl log."""

    def __init__(self, log_dir: Path, run_id: str, prefix: str = "crawl"):
        super().__init__()
        self.log_dir = Path(log_dir)
        self.run_id = run_id
        self.prefix = prefix

    def path_for(self, when: datetime) -> Path:
        return self.log_dir / f"{self.prefix}_{when:%Y%m%d}.jsonl"

    def emit(self, record: logging.LogRecord) -> None:
        try:
            now = datetime.now()
            entry: Dict[str, Any] = {
                "timestamp": now.isoformat(),
                "run_id": self.run_id,
                "level": record.levelname,
                "logger": record.name,
                "event_type": getattr(record, "event_type", None),
                "message": record.getMessage(),
            }
            entry.update(getattr(record, "event_data", {}))
            if record.exc_info:
                entry["exception"] = logging.Formatter().formatException(record.exc_info)

            self.log_dir.mkdir(parents=True, exist_ok=True)
            with open(self.path_for(now), "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")
        except Exception:
            self.handleError(record)


class LevelColorFormatter(logging.Formatter):
    """Colors the level name when the console is a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool):
        super().__init__("%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S")
        self.use_color = use_color

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        color = self.COLORS.get(record.levelname)
        if not self.use_color or color is None:
            return line
        # Only the bracketed level, not a level name that appears in the message
        tag = f"[{record.levelname}]"
        return line.replace(tag, f"[{color}{record.levelname}{self.RESET}]", 1)


def setup_logging(
    level: int = logging.INFO,
    log_to_file: bool = True,
    log_to_console: bool = True,
    log_dir: Optional[Union[str, Path]] = None,
    run_id: Optional[str] = None,
) -> str:
    """Attach the console and JSONL handlers to the ``crawl`` logger.

    Safe to call more than once; earlier handlers are replaced.

    Args:
        level: Console level; the JSONL file always receives DEBUG and up
        log_to_file: Write the JSONL run log
        log_to_console: Narrate to stdout
        log_dir: Directory for JSONL files (default: ``LOG_DIR``)
        run_id: Identifier stamped on every JSONL entry (default: random)

    Returns:
        The run id in use
    """
    run_id = run_id or uuid.uuid4().hex[:12]

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG if log_to_file else level)

    if log_to_console:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level)
        console.setFormatter(LevelColorFormatter(use_color=sys.stdout.isatty()))
        logger.addHandler(console)

    if log_to_file:
        jsonl = JSONLFileHandler(Path(log_dir or LOG_DIR), run_id)
        jsonl.setLevel(logging.DEBUG)
        logger.addHandler(jsonl)

    return run_id


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Logger for a crawl module, e.g. ``get_logger("scraper")`` -> ``crawl.scraper``."""
    if name == ROOT_LOGGER:
        return logging.getLogger(ROOT_LOGGER)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def log_crawl_event(
    event_type: str,
    data: Dict[str, Any],
    level: int = logging.INFO,
    logger_name: str = ROOT_LOGGER,
) -> None:
    """Log a structured crawl event.

    Args:
        event_type: e.g. 'category_start', 'product_found', 'variant'
        data: Event fields; a 'message' key becomes the console line
        level: Log level
        logger_name: Module logger name, as for ``get_logger``
    """
    fields = {k: v for k, v in data.items() if k != "message"}
    get_logger(logger_name).log(
        level,
        data.get("message", event_type),
        extra={"event_type": event_type, "event_data": fields},
    )
