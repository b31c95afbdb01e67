"""Logger configuration for boxmatch.

Structured fields passed as keyword arguments land in ``record["extra"]``.
Fields that may carry credentials or private club notes are masked before
any sink sees them.
"""

import sys
from pathlib import Path

from loguru import logger

REDACTED = "[redacted]"
REDACTED_FIELDS = frozenset({"api_key", "openai_api_key", "anthropic_api_key", "authorization", "notes"})

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level> {extra}"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message} {extra}"


def redact_record(record) -> None:
    extra = record["extra"]
    for key in REDACTED_FIELDS.intersection(extra):
        extra[key] = REDACTED


def setup_logger(
    level: str = "INFO",
    log_file: str | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> None:
    """Configure loguru with a console sink and an optional rotating file sink.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file. If None, only console logging.
        rotation: Log rotation size (e.g., "10 MB", "1 day")
        retention: Log retention period (e.g., "7 days", "1 month")
        serialize: Emit one JSON object per record instead of formatted text
    """
    console = {"sink": sys.stderr, "level": level}
    if serialize:
        console["serialize"] = True
    else:
        console.update(format=CONSOLE_FORMAT, colorize=True)
    handlers = [console]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            {
                "sink": log_path,
                "level": level,
                "format": FILE_FORMAT,
                "serialize": serialize,
                "rotation": rotation,
                "retention": retention,
                "compression": "zip",
                "backtrace": True,
                # diagnose would dump local variables, including request bodies
                "diagnose": False,
            }
        )

    logger.configure(handlers=handlers, patcher=redact_record)
    logger.info(f"Logger initialized with level={level}", serialize=serialize, log_file=log_file)
