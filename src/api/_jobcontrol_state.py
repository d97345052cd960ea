"""
JobControl state management for API integration.

Holds the single JobGroup / JobControl pair the API serves.
Initialized during FastAPI lifespan, NOT auto-started.

Usage:
    # In lifespan:
    init_job_control(group_name, poll_interval)

    # In routers:
    control = get_job_control()
"""

import logging
from typing import Optional

from src.jobcontrol import JobControl, JobGroup, ThreadState


logger = logging.getLogger(__name__)

_job_control: Optional[JobControl] = None


def init_job_control(group_name: str, poll_interval: float) -> JobControl:
    """
    Create the JobGroup and its JobControl.

    Does NOT start the loop; an explicit /jobcontrol/start is required.
    Returns the existing instance if already initialized.
    """
    global _job_control

    if _job_control is not None:
        return _job_control

    _job_control = JobControl(JobGroup(group_name), poll_interval=poll_interval)
    logger.info(f"JobControl initialized for group {group_name}")
    return _job_control


def get_job_control() -> JobControl:
    """
    Get the JobControl instance.

    Raises:
        RuntimeError: If not initialized
    """
    if _job_control is None:
        raise RuntimeError(
            "JobControl not initialized. "
            "Ensure init_job_control() is called during startup."
        )
    return _job_control


def replace_job_control(control: Optional[JobControl]) -> None:
    """
    Swap in a new JobControl (or clear it).

    A STOPPED loop cannot be restarted; the API replaces it with a fresh
    JobControl over the same group instead.
    """
    global _job_control
    _job_control = control


def shutdown_job_control() -> None:
    """
    Stop the loop if running and drop the instance.

    In-flight jobs are not killed.
    """
    global _job_control

    if _job_control is not None:
        if _job_control.state not in (ThreadState.READY, ThreadState.STOPPED):
            _job_control.stop()
            _job_control.join(timeout=_job_control.poll_interval + 1.0)
        _job_control = None
