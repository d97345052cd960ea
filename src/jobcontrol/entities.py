"""
Job Control Domain Entities.

- JobState: lifecycle of a single controlled job
- ThreadState: lifecycle of the JobControl polling loop
- Bucket: registry bucket names (materialized view of JobState)
- Completion: outcome reported by an execution adapter
- ValuePropagationLink: metric pulled from a producer job at submit time

State graph:
    WAITING -> READY | DEPENDENT_FAILED
    READY   -> RUNNING
    RUNNING -> SUCCESS | FAILED
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .job import ControlledJob


class JobState(str, Enum):
    """
    Controlled job states.

    - WAITING: Registered, dependencies not yet satisfied
    - READY: All dependencies succeeded, awaiting submit
    - RUNNING: Submitted to the execution backend
    - SUCCESS: Execution finished successfully
    - FAILED: Submit or execution failed
    - DEPENDENT_FAILED: A dependency ended in FAILED or DEPENDENT_FAILED
    """

    WAITING = "WAITING"
    READY = "READY"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    DEPENDENT_FAILED = "DEPENDENT_FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {JobState.SUCCESS, JobState.FAILED, JobState.DEPENDENT_FAILED}
)

# Dependency states that keep a dependent job WAITING
PENDING_STATES = frozenset({JobState.WAITING, JobState.READY, JobState.RUNNING})


class ThreadState(str, Enum):
    """JobControl loop lifecycle states."""

    READY = "READY"
    RUNNING = "RUNNING"
    SUSPENDED = "SUSPENDED"
    STOPPING = "STOPPING"
    STOPPED = "STOPPED"


class Bucket(str, Enum):
    """Registry buckets. FAILED holds both FAILED and DEPENDENT_FAILED jobs."""

    WAITING = "waiting"
    READY = "ready"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @classmethod
    def for_state(cls, state: JobState) -> "Bucket":
        """Get the bucket a job in the given state belongs to."""
        return _STATE_BUCKETS[state]


_STATE_BUCKETS = {
    JobState.WAITING: Bucket.WAITING,
    JobState.READY: Bucket.READY,
    JobState.RUNNING: Bucket.RUNNING,
    JobState.SUCCESS: Bucket.SUCCEEDED,
    JobState.FAILED: Bucket.FAILED,
    JobState.DEPENDENT_FAILED: Bucket.FAILED,
}

# Buckets that must be empty for a group to be finished
ACTIVE_BUCKETS = (Bucket.WAITING, Bucket.READY, Bucket.RUNNING)


@dataclass(frozen=True)
class Completion:
    """
    Terminal outcome reported by an adapter's poll().

    An adapter returns None from poll() while still running.
    """

    succeeded: bool
    message: Optional[str] = None

    @classmethod
    def success(cls, message: Optional[str] = None) -> "Completion":
        return cls(succeeded=True, message=message)

    @classmethod
    def failure(cls, message: str) -> "Completion":
        return cls(succeeded=False, message=message)


@dataclass(frozen=True)
class ValuePropagationLink:
    """
    Pull of a named metric from a producer job into a consumer's config.

    Resolved exactly once, when the consumer submits. The producer is not
    checked to be one of the consumer's dependencies, nor to have reached
    SUCCESS: reading a metric from an unfinished producer is a
    caller error and yields whatever the producer's adapter reports at
    that moment (for the reference adapters, a partial count or 0).
    """

    producer: "ControlledJob"
    group: str
    name: str
    key: str

    def resolve(self) -> str:
        """Read the metric from the producer, rendered as a config value."""
        return str(self.producer.adapter.get_metric(self.group, self.name))
