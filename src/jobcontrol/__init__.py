"""
Job Control Core Module.

Dependency-aware job scheduling:
- ControlledJob: per-job state machine and dependency walk
- JobGroup: state buckets and group-unique job IDs
- JobControl: background loop that polls, promotes and submits jobs
- ExecutionAdapter: submit/poll/kill contract every job kind implements
"""

from .entities import (
    JobState,
    ThreadState,
    Bucket,
    Completion,
    ValuePropagationLink,
)
from .errors import (
    JobControlError,
    ExecutionError,
    InvalidOperationError,
    JobNotFoundError,
    PlanError,
)
from .adapters import Counters, ExecutionAdapter
from .actions import (
    FileSystemAction,
    RenameAction,
    DeleteAction,
    CopyAction,
    OptionalRename,
    OptionalDelete,
)
from .compute import ComputeAdapter, CommandAdapter, CREATE_DIR_KEY
from .job import ControlledJob
from .group import JobGroup
from .control import JobControl, DEFAULT_POLL_INTERVAL, DEFAULT_WAIT_INTERVAL
from .plan import (
    JobSpec,
    MetricLinkSpec,
    PlanSpec,
    parse_plan,
    load_plan,
    build_jobs,
    register_plan,
)

__all__ = [
    # Entities
    "JobState",
    "ThreadState",
    "Bucket",
    "Completion",
    "ValuePropagationLink",
    # Errors
    "JobControlError",
    "ExecutionError",
    "InvalidOperationError",
    "JobNotFoundError",
    "PlanError",
    # Adapters
    "Counters",
    "ExecutionAdapter",
    "FileSystemAction",
    "RenameAction",
    "DeleteAction",
    "CopyAction",
    "OptionalRename",
    "OptionalDelete",
    "ComputeAdapter",
    "CommandAdapter",
    "CREATE_DIR_KEY",
    # Core
    "ControlledJob",
    "JobGroup",
    "JobControl",
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_WAIT_INTERVAL",
    # Plans
    "JobSpec",
    "MetricLinkSpec",
    "PlanSpec",
    "parse_plan",
    "load_plan",
    "build_jobs",
    "register_plan",
]
