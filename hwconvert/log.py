"""
Logging setup for hwconvert
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from .config import LoggingConfig


class JSONFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """Configure the hwconvert logger tree from LoggingConfig."""
    config = config or LoggingConfig()

    if config.format == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    handlers = [logging.StreamHandler()]
    if config.file:
        handlers.append(logging.FileHandler(config.file, encoding="utf-8"))

    root = logging.getLogger("hwconvert")
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    root.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    root.propagate = False
