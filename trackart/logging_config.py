import json
import logging
from typing import List, Optional

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NOISY_LOGGERS = ["urllib3", "pymongo", "PIL", "multipart"]

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def parse_level(level: Optional[str]) -> int:
    """Unknown or empty values fall back to INFO."""
    return _LEVELS.get((level or "").strip().lower(), logging.INFO)


def configure_logging(level: str = "info", fmt: str = "text",
                      noisy_loggers: Optional[List[str]] = None) -> None:
    handler = logging.StreamHandler()
    if (fmt or "").strip().lower() == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, DATE_FORMAT))

    logging.basicConfig(level=parse_level(level), handlers=[handler], force=True)

    for name in NOISY_LOGGERS if noisy_loggers is None else noisy_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured: level=%s format=%s", logging.getLevelName(parse_level(level)), fmt
    )
