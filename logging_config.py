"""
Centralized logging configuration for the kitchen print system.

Both processes (the kitchen board app and the print service) log through
this module. Every record carries the name of the thread that produced it,
which is what makes the print pipeline readable: the request thread that
advanced an order, the job thread that rendered and dispatched the ticket,
and the print service worker all show up under their own names.

Log Format:
    2025-12-03 10:15:30 [INFO    ] [board/MainThread] kitchen_print.app - Starting kitchen board
    2025-12-03 10:15:31 [INFO    ] [board/Thread-4] kitchen_print.services.order_store - Order 003 -> ready
    2025-12-03 10:15:31 [INFO    ] [board/Print-a1b2c3d4] kitchen_print.job.a1b2c3d4 - Rendering

Usage:
    from logging_config import setup_logging, get_logger

    setup_logging("print_service", log_level=logging.INFO, enable_file_logging=True)

    logger = get_logger(__name__)
    job_logger = get_job_logger("a1b2c3d4")
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


ROOT_LOGGER_NAME = "kitchen_print"


# =============================================================================
# THREAD CONTEXT FILTER
# =============================================================================

class ThreadContextFilter(logging.Filter):
    """
    Stamps each record with the process label and the emitting thread.

    Print job threads are named ``Print-<id8>``, so a job's lines can be
    found by thread as well as by the job logger name.
    """

    def __init__(self, process_label: str = "board"):
        super().__init__()
        self.process_label = process_label

    def filter(self, record: logging.LogRecord) -> bool:
        record.process_label = self.process_label
        record.thread_name = threading.current_thread().name
        return True


# =============================================================================
# LOGGING SETUP
# =============================================================================

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] [%(process_label)s/%(thread_name)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def _rotating_handler(
    path: Path,
    level: int,
    formatter: logging.Formatter,
    context_filter: logging.Filter,
) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=path,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(context_filter)
    return handler


def setup_logging(
    process_label: str = "board",
    log_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = True,
) -> logging.Logger:
    """
    Configure the ``kitchen_print`` logger tree for one process.

    The console always gets every record at ``log_level``. With file
    logging on, ``<log_dir>/kitchen_print_<process_label>.log`` rotates at
    10 MB and a separate ``..._error.log`` keeps ERROR and above, so the
    board and the print service can share a log directory.

    Args:
        process_label: "board" or "print_service"; shown in every line
        log_level: Minimum log level (default: INFO)
        log_dir: Directory for log files (default: ./logs next to this file)
        enable_file_logging: Whether to write to log files

    Returns:
        The ``kitchen_print`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(log_level)
    logger.propagate = False

    # Each app factory call reconfigures (tests build several apps)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    context_filter = ThreadContextFilter(process_label)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(context_filter)
    logger.addHandler(console_handler)

    if enable_file_logging:
        log_dir = log_dir or Path(__file__).parent / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        base_name = f"{ROOT_LOGGER_NAME}_{process_label}"
        app_log_file = log_dir / f"{base_name}.log"
        logger.addHandler(_rotating_handler(app_log_file, log_level, formatter, context_filter))
        logger.addHandler(_rotating_handler(
            log_dir / f"{base_name}_error.log", logging.ERROR, formatter, context_filter
        ))
        logger.info(f"File logging enabled: {app_log_file}")

    logger.debug(f"Logging configured at level {logging.getLevelName(log_level)}")
    return logger


# =============================================================================
# LOGGER FACTORY FUNCTIONS
# =============================================================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger under the ``kitchen_print`` namespace.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance, e.g. "kitchen_print.services.order_store"
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def get_job_logger(job_id: str) -> logging.Logger:
    """
    Get a logger for a specific print job.

    Only the first 8 characters of the job ID are used in the logger name,
    which makes it easy to grep a single job out of the log.
    """
    short_id = job_id[:8] if len(job_id) >= 8 else job_id
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.job.{short_id}")


def set_thread_name(name: str) -> None:
    """Set the name of the current thread (shown in the [thread_name] field)."""
    threading.current_thread().name = name
