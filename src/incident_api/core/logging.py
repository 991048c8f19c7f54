"""Loguru sink configuration shared by the API server and the CLI.

Every record carries a ``component`` extra naming the process role ("api"
or "cli") so server and command-line output can share one collector.
"""

import sys
from pathlib import Path

from loguru import logger

_TEXT_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level:<8}</level> | "
    "{extra[component]:<9} | <cyan>{name}</cyan>:{line} - {message}"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {extra[component]} | {name}:{function}:{line} | {message}"
LOG_FILE_NAME = "incident-api.log"


def setup_logging(
    log_level: str = "INFO",
    log_dir: str | None = None,
    *,
    json_output: bool = False,
    component: str = "api",
) -> None:
    """(Re)configure the process-wide Loguru sinks.

    Args:
        log_level: Minimum level, case-insensitive.
        log_dir: When set, also write a plain-text file there, rotated daily
            and kept for a week.
        json_output: Emit serialized JSON records on stderr instead of the
            colored text format (for log shippers).
        component: Default ``component`` extra for records that do not
            bind one (the CLI passes ``"cli"``).
    """
    level = log_level.upper()
    logger.remove()
    logger.configure(extra={"component": component})

    if json_output:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, level=level, format=_TEXT_FORMAT, colorize=None)

    if not log_dir:
        return
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_path / LOG_FILE_NAME,
        level=level,
        format=_FILE_FORMAT,
        rotation="1 day",
        retention="7 days",
        enqueue=False,
    )
