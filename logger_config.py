"""
Logging Configuration for the FleetGuard risk engine

Repositories, orchestrators and routers log through stdlib `logging`;
the domain services log key/value events through structlog. Both end up
in the same handlers once setup_logging() has run:

    console                 colored, HH:MM:SS
    logs/<name>.log         everything at `level`, size-rotated
    logs/<name>_errors.log  ERROR and above
    logs/<name>_daily.log   rotated at midnight, 7 days kept
"""

import logging
import sys
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Union

import structlog

LOGS_DIR = Path(__file__).parent / "logs"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"

# Chatty third-party loggers kept at WARNING
QUIET_LOGGERS = ("uvicorn.access", "asyncio")


class ColoredFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def _file_handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def configure_structlog() -> None:
    """Send structlog events to stdlib logging as 'event key=value ...' lines"""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=["event"], sort_keys=True),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def setup_logging(
    name: str = "fleetguard",
    level: Union[int, str] = logging.INFO,
    log_to_file: bool = True,
    log_to_console: bool = True,
) -> logging.Logger:
    """
    Configure a logger ("" for the root logger) and route structlog into it.

    Args:
        name: Logger name, also the log file stem
        level: Level number or name ("INFO", "DEBUG", ...)
        log_to_file: Write rotating files under logs/
        log_to_console: Write colored output to stdout
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers = []

    if log_to_file:
        LOGS_DIR.mkdir(exist_ok=True)
        stem = name or "fleetguard"

        logger.addHandler(
            _file_handler(
                RotatingFileHandler(
                    LOGS_DIR / f"{stem}.log",
                    maxBytes=10 * 1024 * 1024,
                    backupCount=5,
                    encoding="utf-8",
                ),
                level,
            )
        )
        logger.addHandler(
            _file_handler(
                RotatingFileHandler(
                    LOGS_DIR / f"{stem}_errors.log",
                    maxBytes=5 * 1024 * 1024,
                    backupCount=3,
                    encoding="utf-8",
                ),
                logging.ERROR,
            )
        )
        logger.addHandler(
            _file_handler(
                TimedRotatingFileHandler(
                    LOGS_DIR / f"{stem}_daily.log",
                    when="midnight",
                    backupCount=7,
                    encoding="utf-8",
                ),
                level,
            )
        )

    if log_to_console:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level)
        console.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        logger.addHandler(console)

    for noisy in QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    configure_structlog()
    return logger
