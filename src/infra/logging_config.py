"""
Logging configuration module.

One log file per process run, rolled over at midnight:
logs/jobcontrol_<YYYYMMDD>_<HHMMSS>.log
"""

import logging
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional, Union

# Package root logger; modules log through logging.getLogger(__name__)
LOGGER_NAME = "src"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def create_file_handler(log_dir: Union[str, Path]) -> TimedRotatingFileHandler:
    """Open this run's log file in log_dir, creating the directory if needed."""
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    started = datetime.now().strftime("%Y%m%d_%H%M%S")
    return TimedRotatingFileHandler(
        log_dir / f"jobcontrol_{started}.log", when="midnight", encoding="utf-8"
    )


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[Union[str, Path]] = "logs",
) -> logging.Logger:
    """
    Configure logging and return the package logger.

    Args:
        log_level (str): Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files. None logs to console only.

    Returns:
        logging.Logger: Configured logger instance
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)
    logger.propagate = False

    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()

    handlers = [logging.StreamHandler()]
    if log_dir is not None:
        handlers.append(create_file_handler(log_dir))

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if log_dir is not None:
        logger.info(f"Logging started - level: {log_level}, log file: {handlers[1].baseFilename}")
    else:
        logger.info(f"Logging started - level: {log_level}, console only")
    return logger
