"""
JobControl Test Fixtures.

Base fixtures:
  - Empty group named "g"
  - JobControl over that group with fast polling
  - ScriptedAdapter whose outcome the test decides

Helpers:
  - wait_for(): poll a condition with a deadline
  - run_to_completion(): drive a single job without the loop
"""

import time
from typing import Callable, Dict, List, Optional

import pytest

from src.jobcontrol import (
    Completion,
    ControlledJob,
    ExecutionAdapter,
    JobControl,
    JobGroup,
    JobState,
)


class ScriptedAdapter(ExecutionAdapter):
    """
    Adapter for testing.

    poll() returns `outcome`, which stays None (running) until the test
    sets it, directly or with complete(). Errors can be injected into
    submit() and poll().
    """

    kind = "scripted"

    def __init__(
        self,
        outcome: Optional[Completion] = None,
        submit_error: Optional[Exception] = None,
        poll_error: Optional[Exception] = None,
    ):
        super().__init__()
        self.outcome = outcome
        self.submit_error = submit_error
        self.poll_error = poll_error
        self.submitted_configs: List[Dict[str, str]] = []
        self.poll_count = 0
        self.kill_count = 0

    @property
    def submitted(self) -> bool:
        return bool(self.submitted_configs)

    def complete(self, succeeded: bool = True, message: Optional[str] = None) -> None:
        """Make the next poll() report a terminal outcome."""
        self.outcome = Completion(succeeded=succeeded, message=message)

    def submit(self, config: Dict[str, str]) -> None:
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted_configs.append(config)

    def poll(self) -> Optional[Completion]:
        self.poll_count += 1
        if self.poll_error is not None:
            raise self.poll_error
        return self.outcome

    def kill(self) -> None:
        self.kill_count += 1


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> bool:
    """Poll predicate until it is true or timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def run_to_completion(job: ControlledJob, timeout: float = 5.0) -> JobState:
    """
    Drive a dependency-free job through READY, submit and polling.

    Returns:
        The job's terminal state (or its state at timeout)
    """
    job.check_state()
    if job.state == JobState.READY:
        job.submit()
    wait_for(lambda: job.check_state().is_terminal, timeout=timeout)
    return job.state


def succeed(job: ControlledJob) -> None:
    """Drive a job with a ScriptedAdapter straight to SUCCESS."""
    job.check_state()
    job.submit()
    job.adapter.complete()
    job.check_state()
    assert job.state == JobState.SUCCESS


def fail(job: ControlledJob, message: str = "boom") -> None:
    """Drive a job with a ScriptedAdapter straight to FAILED."""
    job.check_state()
    job.submit()
    job.adapter.complete(succeeded=False, message=message)
    job.check_state()
    assert job.state == JobState.FAILED


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def group() -> JobGroup:
    """Create an empty group named "g"."""
    return JobGroup("g")


@pytest.fixture
def control(group: JobGroup):
    """Create a JobControl with fast polling; stopped after the test."""
    ctrl = JobControl(group, poll_interval=0.01)
    yield ctrl
    ctrl.stop()
    ctrl.join(timeout=2.0)


@pytest.fixture
def make_job() -> Callable:
    """
    Factory fixture for jobs with ScriptedAdapters.

    Returns a function: make_job(name, outcome=None, dependencies=None, **adapter_kwargs)
    """

    def _create(
        name: str = "job",
        outcome: Optional[Completion] = None,
        dependencies: Optional[List[ControlledJob]] = None,
        config: Optional[Dict[str, str]] = None,
        **adapter_kwargs,
    ) -> ControlledJob:
        return ControlledJob(
            ScriptedAdapter(outcome=outcome, **adapter_kwargs),
            name=name,
            config=config,
            dependencies=dependencies,
        )

    return _create
