"""
JobControl API schemas.

Supports /jobcontrol/* status, job listing, plan registration and loop
control endpoints.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from src.jobcontrol import ControlledJob


# =============================================================================
# Job Schemas
# =============================================================================


class JobSummary(BaseModel):
    """Response representing a ControlledJob."""

    job_id: str = Field(..., description="Group-assigned job identifier")
    name: str = Field(..., description="Job name")
    kind: str = Field(..., description="Execution kind (command, rename, ...)")
    state: str = Field(..., description="Job state (WAITING/READY/RUNNING/SUCCESS/FAILED/DEPENDENT_FAILED)")
    message: str = Field(default="", description="Last diagnostic message")
    dependencies: List[str] = Field(default_factory=list, description="Dependency job IDs, in order")

    @classmethod
    def from_job(cls, job: ControlledJob) -> "JobSummary":
        return cls(
            job_id=job.job_id,
            name=job.name,
            kind=job.adapter.kind,
            state=job.state.value,
            message=job.message,
            dependencies=[dep.job_id for dep in job.dependencies],
        )


class JobDetail(JobSummary):
    """A job with its configuration and metrics."""

    config: Dict[str, str] = Field(default_factory=dict)
    metrics: Dict[str, Dict[str, int]] = Field(default_factory=dict)

    @classmethod
    def from_job(cls, job: ControlledJob) -> "JobDetail":
        summary = JobSummary.from_job(job)
        return cls(
            **summary.model_dump(),
            config=dict(job.config),
            metrics=job.adapter.counters.as_dict(),
        )


class JobListResponse(BaseModel):
    """Response for job list endpoint."""

    jobs: List[JobSummary] = Field(default_factory=list)
    total: int = Field(..., description="Number of jobs returned")


class PlanRegisterResponse(BaseModel):
    """Response from plan registration."""

    group: str
    job_ids: Dict[str, str] = Field(
        default_factory=dict, description="Assigned job ID per plan job name"
    )


# =============================================================================
# Control Schemas
# =============================================================================


class ControlResponse(BaseModel):
    """Response from a loop control operation."""

    success: bool
    message: str
    thread_state: str


class StatusResponse(BaseModel):
    """Response from the status endpoint."""

    group: str
    thread_state: str = Field(..., description="READY/RUNNING/SUSPENDED/STOPPING/STOPPED")
    ticks: int = Field(default=0, description="Completed ticks")
    counts: Dict[str, int] = Field(default_factory=dict, description="Jobs per bucket")
    all_finished: bool = Field(..., description="Waiting, ready and running buckets are empty")
    error: Optional[str] = Field(default=None, description="Error that stopped the loop")
