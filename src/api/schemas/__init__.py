"""
API Schemas package.

Pydantic models for request/response validation.
"""

from .jobcontrol import (
    JobSummary,
    JobDetail,
    JobListResponse,
    PlanRegisterResponse,
    ControlResponse,
    StatusResponse,
)

__all__ = [
    "JobSummary",
    "JobDetail",
    "JobListResponse",
    "PlanRegisterResponse",
    "ControlResponse",
    "StatusResponse",
]
