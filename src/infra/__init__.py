"""
Infrastructure module - logging and runtime settings.
"""

from .logging_config import setup_logging, create_file_handler

from .settings import (
    get_poll_interval,
    get_wait_interval,
    get_group_name,
    get_log_level,
    get_log_dir,
    get_command_log_dir,
    get_api_host,
    get_api_port,
)
