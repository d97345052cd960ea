"""
Runtime settings read from environment variables.

Entry points call load_dotenv() first, so values may also come from a
.env file in the working directory.

Environment Variables:
- JOBCONTROL_POLL_INTERVAL: Seconds between ticks of a free-running loop (default: 5.0)
- JOBCONTROL_WAIT_INTERVAL: Seconds between ticks in wait_for_completion (default: 1.0)
- JOBCONTROL_GROUP: Default group name / job ID prefix (default: job)
- JOBCONTROL_LOG_DIR: Log file directory, empty for console only (default: logs)
- JOBCONTROL_COMMAND_LOG_DIR: Output log directory for command jobs (default: system temp)
- JOBCONTROL_API_HOST: API bind host (default: 127.0.0.1)
- JOBCONTROL_API_PORT: API bind port (default: 8000)
- LOG_LEVEL: Logging level (default: INFO)
"""

import logging
import os
from typing import Optional

from src.jobcontrol.control import DEFAULT_POLL_INTERVAL, DEFAULT_WAIT_INTERVAL

logger = logging.getLogger(__name__)


def _get_env_int(key: str, default: int) -> int:
    """Get integer value from environment variable."""
    val = os.getenv(key)
    if val is not None:
        try:
            return int(val)
        except ValueError:
            logger.warning(f"[Settings] Invalid integer for {key}: {val}, using default: {default}")
    return default


def _get_env_float(key: str, default: float) -> float:
    """Get positive float value from environment variable."""
    val = os.getenv(key)
    if val is not None:
        try:
            parsed = float(val)
        except ValueError:
            logger.warning(f"[Settings] Invalid number for {key}: {val}, using default: {default}")
            return default
        if parsed <= 0:
            logger.warning(f"[Settings] {key} must be positive, got {val}, using default: {default}")
            return default
        return parsed
    return default


def get_poll_interval() -> float:
    return _get_env_float("JOBCONTROL_POLL_INTERVAL", DEFAULT_POLL_INTERVAL)


def get_wait_interval() -> float:
    return _get_env_float("JOBCONTROL_WAIT_INTERVAL", DEFAULT_WAIT_INTERVAL)


def get_group_name() -> str:
    return os.getenv("JOBCONTROL_GROUP") or "job"


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_log_dir() -> Optional[str]:
    """Log directory, or None when JOBCONTROL_LOG_DIR is set but empty."""
    val = os.getenv("JOBCONTROL_LOG_DIR")
    if val is None:
        return "logs"
    return val or None


def get_command_log_dir() -> Optional[str]:
    return os.getenv("JOBCONTROL_COMMAND_LOG_DIR") or None


def get_api_host() -> str:
    return os.getenv("JOBCONTROL_API_HOST", "127.0.0.1")


def get_api_port() -> int:
    return _get_env_int("JOBCONTROL_API_PORT", 8000)
