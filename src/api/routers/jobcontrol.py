"""
JobControl router.

Endpoints under /jobcontrol/*:
- GET  /status           - loop state and bucket counts
- GET  /jobs             - list jobs (optionally one bucket)
- GET  /jobs/{job_id}    - job details
- POST /plans            - register a plan's jobs
- POST /start            - start (or restart a STOPPED) loop
- POST /suspend          - pause ticking
- POST /resume           - resume ticking
- POST /stop             - request the loop to stop
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException

from src.infra.settings import get_command_log_dir
from src.jobcontrol import (
    Bucket,
    JobControl,
    JobNotFoundError,
    PlanSpec,
    ThreadState,
    register_plan,
)
from src.jobcontrol.errors import InvalidOperationError

from ..schemas.jobcontrol import (
    ControlResponse,
    JobDetail,
    JobListResponse,
    JobSummary,
    PlanRegisterResponse,
    StatusResponse,
)
from .._jobcontrol_state import get_job_control, replace_job_control


logger = logging.getLogger(__name__)

router = APIRouter()


def _control_response(control: JobControl, success: bool, message: str) -> ControlResponse:
    return ControlResponse(success=success, message=message, thread_state=control.state.value)


@router.get("/status", response_model=StatusResponse)
async def get_status():
    """Get loop state, completed ticks and per-bucket job counts."""
    return StatusResponse(**get_job_control().status())


@router.get("/jobs", response_model=JobListResponse)
async def list_jobs(bucket: Optional[Bucket] = None):
    """
    List jobs.

    Without `bucket`, every job in registration order; with it, a
    snapshot of that bucket.
    """
    group = get_job_control().group
    jobs = group.all_jobs() if bucket is None else group.snapshot(bucket)
    return JobListResponse(
        jobs=[JobSummary.from_job(job) for job in jobs],
        total=len(jobs),
    )


@router.get("/jobs/{job_id}", response_model=JobDetail)
async def get_job(job_id: str):
    """Get one job with its config and metrics."""
    try:
        job = get_job_control().group.get_job(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return JobDetail.from_job(job)


@router.post("/plans", response_model=PlanRegisterResponse)
async def register(plan: PlanSpec):
    """
    Register a plan's jobs with the group.

    Invalid plans are rejected with 422 by request validation. The plan's
    own `group` field is ignored; jobs join the served group.
    """
    group = get_job_control().group
    jobs = register_plan(group, plan, logs_dir=get_command_log_dir())
    logger.info(f"Registered plan with {len(jobs)} jobs in group {group.name}")
    return PlanRegisterResponse(
        group=group.name,
        job_ids={name: job.job_id for name, job in jobs.items()},
    )


@router.post("/start", response_model=ControlResponse)
async def start():
    """
    Start the loop.

    Idempotent while running or suspended. A STOPPED loop is replaced by
    a new JobControl over the same group.
    """
    control = get_job_control()

    if control.state in (ThreadState.RUNNING, ThreadState.SUSPENDED):
        return _control_response(control, True, "JobControl is already running")

    if control.state == ThreadState.STOPPED:
        control = JobControl(control.group, poll_interval=control.poll_interval)
        replace_job_control(control)

    try:
        control.start()
    except InvalidOperationError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return _control_response(control, True, "JobControl started")


@router.post("/suspend", response_model=ControlResponse)
async def suspend():
    """Pause ticking. Running jobs keep running in their backends."""
    control = get_job_control()
    if control.state != ThreadState.RUNNING:
        return _control_response(control, False, f"JobControl is {control.state.value}")
    control.suspend()
    return _control_response(control, True, "JobControl suspended")


@router.post("/resume", response_model=ControlResponse)
async def resume():
    """Resume a suspended loop."""
    control = get_job_control()
    if control.state != ThreadState.SUSPENDED:
        return _control_response(control, False, f"JobControl is {control.state.value}")
    control.resume()
    return _control_response(control, True, "JobControl resumed")


@router.post("/stop", response_model=ControlResponse)
async def stop():
    """
    Request the loop to stop.

    Returns immediately; running jobs are not killed.
    """
    control = get_job_control()
    if control.state == ThreadState.STOPPED:
        return _control_response(control, True, "JobControl is already stopped")
    control.stop()
    return _control_response(control, True, "Stop requested")
