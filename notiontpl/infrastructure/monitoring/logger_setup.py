"""Logging for the notion-template CLI and action backend.

Replication progress (nodes copied, append batches, retry attempts and
backoff delays) and deploy steps are logged under the ``notiontpl``
namespace. Everything goes to stderr so that ``to-json`` output on stdout
can be piped straight into a file or ``jq``.

The Notion SDK talks through httpx, which logs one INFO line per request.
A single clone issues hundreds of those, so the HTTP loggers are held at
WARNING unless the CLI runs at DEBUG.
"""

import logging
import sys
from typing import Optional

DEFAULT_LOG_LEVEL = logging.WARNING
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
HTTP_LOGGERS = ("httpx", "httpcore", "notion_client")


def setup_logging(
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None,
) -> None:
    """Points the root logger at stderr and, optionally, a log file.

    Args:
        log_level: Minimum level for the ``notiontpl`` loggers.
        log_format: Format string shared by every handler.
        log_file: Extra file that receives the same records.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # setup_logging runs once per command; drop handlers from a previous run
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(log_format)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    root_logger.addHandler(stderr_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            logging.error(f"Failed to open log file {log_file}: {e}", exc_info=True)

    http_level = logging.DEBUG if log_level <= logging.DEBUG else max(log_level, logging.WARNING)
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)

    logging.debug(f"Logging configured. Level={logging.getLevelName(log_level)}, file={log_file or '-'}")


def level_from_name(name: Optional[str], default: int = DEFAULT_LOG_LEVEL) -> int:
    """Maps a level name such as 'info' onto a logging constant."""
    if not name:
        return default
    level = getattr(logging, str(name).upper(), None)
    return level if isinstance(level, int) else default
