"""
Job control exceptions.

Per-job failures never surface as exceptions to callers: they are
recorded as the job's FAILED / DEPENDENT_FAILED state. These exceptions
cover adapter-level failures (caught by the job), misuse of the loop
lifecycle, and invalid plan documents.
"""


class JobControlError(Exception):
    """Base exception for all job control errors."""
    pass


class ExecutionError(JobControlError):
    """
    Raised by an execution adapter when its work fails.

    Caught by ControlledJob and recorded as FAILED. Any other exception
    escaping an adapter's poll is treated as fatal to the loop.
    """
    pass


class InvalidOperationError(JobControlError):
    """
    Raised when a loop operation is not allowed in the current state.

    Examples:
    - Starting a JobControl that is not READY
    """
    pass


class JobNotFoundError(JobControlError):
    """Raised when a requested job does not exist in a group."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class PlanError(JobControlError):
    """
    Raised when a plan document cannot be turned into jobs.

    Examples:
    - Duplicate job names
    - depends_on referring to an unknown job
    - metric link producer referring to an unknown job
    """
    pass
