"""
Controlled job: one unit of work plus its dependencies.

A job starts WAITING. With no dependencies, or once every dependency is
SUCCESS, it becomes READY. If a dependency fails, it becomes
DEPENDENT_FAILED. A READY job is submitted to its execution adapter and
becomes RUNNING, then SUCCESS or FAILED depending on the outcome.

Mutability rules:
- job_id: assigned once by a JobGroup
- dependencies, value propagation links: only while WAITING
- state: forward-only through the graph in entities.JobState
- message: last writer wins
"""

import logging
import threading
from typing import Dict, List, Optional

from .adapters import ExecutionAdapter
from .entities import (
    Completion,
    JobState,
    PENDING_STATES,
    TERMINAL_STATES,
    ValuePropagationLink,
)
from .errors import ExecutionError


logger = logging.getLogger(__name__)

UNASSIGNED_ID = "unassigned"


class ControlledJob:
    """
    A job tracked by JobControl.

    State, message and dependency list are guarded by a per-job re-entrant
    lock, so callers may query a job while the loop works on another one.
    """

    def __init__(
        self,
        adapter: ExecutionAdapter,
        name: Optional[str] = None,
        config: Optional[Dict[str, str]] = None,
        dependencies: Optional[List["ControlledJob"]] = None,
    ):
        """
        Args:
            adapter: Execution kind implementing submit/poll/kill
            name: Human-readable label (default: adapter description)
            config: Initial configuration handed to the adapter on submit
            dependencies: Jobs that must succeed before this one runs
        """
        self.adapter = adapter
        self.name = name or adapter.describe()
        self.config: Dict[str, str] = dict(config or {})

        self._job_id = UNASSIGNED_ID
        self._state = JobState.WAITING
        self._message = "just initialized"
        self._dependencies: List[ControlledJob] = list(dependencies or [])
        self._links: List[ValuePropagationLink] = []
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"ControlledJob(id={self.job_id!r}, name={self.name!r}, state={self.state.value})"

    def __str__(self) -> str:
        lines = [
            f"job name:\t{self.name}",
            f"job id:\t{self.job_id}",
            f"job kind:\t{self.adapter.kind}",
            f"job state:\t{self.state.value}",
            f"job message:\t{self.message}",
        ]
        dependencies = self.dependencies
        if not dependencies:
            lines.append("job has no depending job")
        else:
            lines.append(f"job has {len(dependencies)} depending jobs:")
            for i, dep in enumerate(dependencies):
                lines.append(f"\t depending job {i}:\t{dep.name}")
        return "\n".join(lines)

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def job_id(self) -> str:
        return self._job_id

    def assign_id(self, job_id: str) -> None:
        """Set the group-assigned ID. Called by JobGroup on registration."""
        with self._lock:
            self._job_id = job_id

    @property
    def state(self) -> JobState:
        with self._lock:
            return self._state

    def set_state(self, state: JobState) -> None:
        """Force the state. Only JobGroup registration and tests use this."""
        with self._lock:
            self._state = state

    @property
    def message(self) -> str:
        with self._lock:
            return self._message

    @message.setter
    def message(self, message: str) -> None:
        with self._lock:
            self._message = message

    @property
    def dependencies(self) -> List["ControlledJob"]:
        """Copy of the dependency list, in declaration order."""
        with self._lock:
            return list(self._dependencies)

    @property
    def links(self) -> List[ValuePropagationLink]:
        with self._lock:
            return list(self._links)

    def is_completed(self) -> bool:
        return self.state in TERMINAL_STATES

    def is_ready(self) -> bool:
        return self.state == JobState.READY

    # =========================================================================
    # Declarations (WAITING only)
    # =========================================================================

    def add_dependency(self, job: "ControlledJob") -> bool:
        """
        Add a job to this job's dependency list.

        Dependencies can only be added while this job is WAITING.

        Returns:
            True if the dependency was added
        """
        with self._lock:
            if self._state != JobState.WAITING:
                return False
            self._dependencies.append(job)
            return True

    def require_metric(
        self,
        producer: "ControlledJob",
        group: str,
        name: str,
        key: str,
    ) -> bool:
        """
        Copy a metric from `producer` into this job's config at submit.

        This does not add a dependency on `producer`: declare one with
        add_dependency() so the producer has finished by the time this job
        submits. Resolving a metric from an unfinished producer is a
        caller error and its content is undefined.

        Args:
            producer: Job whose adapter reports the metric
            group: Metric group
            name: Metric name
            key: Config key the value is written to

        Returns:
            True if the link was declared, False if no longer WAITING
        """
        with self._lock:
            if self._state != JobState.WAITING:
                return False
            self._links.append(ValuePropagationLink(producer, group, name, key))
            return True

    # =========================================================================
    # Transitions
    # =========================================================================

    def check_state(self) -> JobState:
        """
        Refresh and return this job's state.

        RUNNING jobs poll their adapter. WAITING jobs walk their
        dependencies in declaration order, recursively refreshing each one,
        and stop at the first dependency that is still pending or failed.
        Other states are returned unchanged.
        """
        with self._lock:
            if self._state == JobState.RUNNING:
                self._check_running_state()

            if self._state != JobState.WAITING:
                return self._state

            if not self._dependencies:
                self._transition(JobState.READY)
                return self._state

            last = len(self._dependencies) - 1
            for i, dep in enumerate(self._dependencies):
                dep_state = dep.check_state()

                if dep_state in PENDING_STATES:
                    break

                if dep_state in (JobState.FAILED, JobState.DEPENDENT_FAILED):
                    self._message = (
                        f"depending job {i} with jobID {dep.job_id} failed. {dep.message}"
                    )
                    self._transition(JobState.DEPENDENT_FAILED)
                    break

                if i == last:
                    self._transition(JobState.READY)

            return self._state

    def submit(self) -> JobState:
        """
        Resolve value propagation links and submit to the adapter.

        The state becomes RUNNING if dispatch succeeds, FAILED otherwise.
        """
        with self._lock:
            try:
                for link in self._links:
                    self.config[link.key] = link.resolve()
                self.adapter.submit(dict(self.config))
            except Exception as e:
                logger.exception(f"Submit failed for job {self._job_id} ({self.name})")
                self._message = f"Submit failed: {e}"
                self._transition(JobState.FAILED)
                return self._state

            self._message = "submitted"
            self._transition(JobState.RUNNING)
            return self._state

    def kill(self) -> None:
        """Ask the adapter to cancel in-flight execution (best effort)."""
        self.adapter.kill()

    def _check_running_state(self) -> None:
        try:
            completion = self.adapter.poll()
        except (ExecutionError, OSError) as e:
            self._message = f"{type(e).__name__}: {e}"
            self._transition(JobState.FAILED)
            try:
                self.adapter.kill()
            except (ExecutionError, OSError):
                logger.warning(f"Kill after failure also failed for job {self._job_id}")
            return

        if completion is None:
            return
        self._complete(completion)

    def _complete(self, completion: Completion) -> None:
        if completion.succeeded:
            self._message = completion.message or "succeeded"
            self._transition(JobState.SUCCESS)
        else:
            self._message = completion.message or "Job failed!"
            self._transition(JobState.FAILED)

    def _transition(self, state: JobState) -> None:
        logger.debug(f"Job {self._job_id} ({self.name}): {self._state.value} -> {state.value}")
        self._state = state
