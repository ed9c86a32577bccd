"""
Logging configuration for the application.

Levels come from settings:
- LOG_LEVEL: Global log level (default: INFO)
- LOG_FORMAT: simple or structured (default: structured)
- LOG_LEVEL_<MODULE>: Per-module override (e.g., LOG_LEVEL_STORE=DEBUG)
- LOG_PERF: Emit performance lines (default: true)

Performance lines go to the "speaking_coach.perf" logger as
"PERF | <operation> | key=value ..." so they can be filtered separately.
"""

import logging
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from speaking_coach.config import Settings


PERF_LOGGER_NAME = "speaking_coach.perf"

# Settings field suffix -> logger name
MODULE_LOGGERS = {
    "ai_client": "speaking_coach.services.ai_clients",
    "pipeline": "speaking_coach.services.pipeline",
    "store": "speaking_coach.services.analysis_store",
    "api": "speaking_coach.api",
}

# Prefixes stripped from logger names in structured output, first match wins
SHORT_NAME_PREFIXES = (
    ("speaking_coach.services.", ""),
    ("speaking_coach.api.", "api."),
    ("speaking_coach.", ""),
)

NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "google_genai", "aiosqlite")


def short_logger_name(name: str) -> str:
    """Drop the package prefix from a logger name."""
    for prefix, replacement in SHORT_NAME_PREFIXES:
        if name.startswith(prefix):
            return replacement + name[len(prefix):]
    return name


class StructuredFormatter(logging.Formatter):
    """
    Structured log formatter for easy parsing.

    Format: timestamp | level | logger | message
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")
        message = (
            f"{timestamp} | {record.levelname:8} | "
            f"{short_logger_name(record.name):24} | {record.getMessage()}"
        )
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


def _parse_level(value: str | None, default: int) -> int:
    if not value:
        return default
    return getattr(logging, value.upper(), default)


def setup_logging(settings: "Settings") -> None:
    """
    Configure logging based on settings.

    Replaces existing root handlers with a single stdout handler.

    Args:
        settings: Application settings with log configuration
    """
    root_level = _parse_level(settings.log_level, logging.INFO)

    if settings.log_format == "structured":
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(root_level)

    for module_key, logger_name in MODULE_LOGGERS.items():
        override = getattr(settings, f"log_level_{module_key}", None)
        if override:
            logging.getLogger(logger_name).setLevel(_parse_level(override, root_level))

    perf_logger = logging.getLogger(PERF_LOGGER_NAME)
    perf_logger.disabled = not settings.log_perf

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
