"""
JobControl: the polling loop that drives a JobGroup.

Each tick runs three passes, in this order:
1. Running pass: refresh RUNNING jobs (polls their adapters)
2. Waiting pass: refresh WAITING jobs (walks their dependencies)
3. Ready pass: submit the jobs that were READY when the tick began

A job promoted to READY by a tick's waiting pass is submitted on the
next tick.

What JobControl MUST NOT do:
- Retry failed jobs
- Limit how many jobs run at once
- Kill in-flight jobs when it stops
- Recover from an error escaping a tick (the loop goes straight to STOPPED)
"""

import logging
import threading
import time
from typing import Optional

from .entities import Bucket, ThreadState
from .errors import InvalidOperationError
from .group import JobGroup


logger = logging.getLogger(__name__)

# Seconds between ticks for a free-running loop
DEFAULT_POLL_INTERVAL = 5.0

# Seconds between ticks and completion checks in wait_for_completion()
DEFAULT_WAIT_INTERVAL = 1.0


class JobControl:
    """
    Runs the tick loop for one JobGroup on a background thread.

    Thread state:
    - READY: created, not started
    - RUNNING: ticking every poll_interval seconds
    - SUSPENDED: sleeping, no passes run
    - STOPPING: stop requested, observed between passes
    - STOPPED: loop exited (terminal)

    start/suspend/resume/stop may be called from any thread.
    """

    def __init__(self, group: JobGroup, poll_interval: float = DEFAULT_POLL_INTERVAL):
        """
        Initialize JobControl.

        Args:
            group: Registry whose jobs this loop drives
            poll_interval: Seconds between ticks
        """
        self.group = group
        self.poll_interval = poll_interval

        self._state = ThreadState.READY
        self._state_lock = threading.Lock()
        self._wake_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._ticks = 0
        self._error: Optional[Exception] = None

    @property
    def state(self) -> ThreadState:
        """Get current thread state."""
        with self._state_lock:
            return self._state

    @property
    def ticks(self) -> int:
        """Number of ticks that ran all three passes."""
        return self._ticks

    @property
    def error(self) -> Optional[Exception]:
        """The error that stopped the loop, if any."""
        return self._error

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self, blocking: bool = False) -> None:
        """
        Start the tick loop.

        Args:
            blocking: If True, run in current thread. If False, run in background.

        Raises:
            InvalidOperationError: If the loop is not READY
        """
        with self._state_lock:
            if self._state != ThreadState.READY:
                raise InvalidOperationError(
                    f"Cannot start JobControl in {self._state.value} state"
                )
            self._state = ThreadState.RUNNING

        if blocking:
            self._run_loop()
        else:
            self._thread = threading.Thread(
                target=self._run_loop,
                name=f"jobcontrol-{self.group.name}",
                daemon=True,
            )
            self._thread.start()

    def stop(self) -> None:
        """
        Request the loop to stop.

        Returns immediately; the loop exits at its next check between
        passes. Running jobs are not killed. A loop that was never started
        goes straight to STOPPED.
        """
        with self._state_lock:
            if self._state == ThreadState.STOPPED:
                return
            if self._state == ThreadState.READY:
                self._state = ThreadState.STOPPED
                return
            self._state = ThreadState.STOPPING

        logger.info(f"Stopping JobControl for group {self.group.name}...")
        self._wake_event.set()

    def suspend(self) -> None:
        """Pause ticking. Only affects a RUNNING loop."""
        with self._state_lock:
            if self._state != ThreadState.RUNNING:
                return
            self._state = ThreadState.SUSPENDED
        logger.info(f"JobControl for group {self.group.name} suspended")

    def resume(self) -> None:
        """Resume ticking. Only affects a SUSPENDED loop."""
        with self._state_lock:
            if self._state != ThreadState.SUSPENDED:
                return
            self._state = ThreadState.RUNNING
        logger.info(f"JobControl for group {self.group.name} resumed")
        self._wake_event.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the background thread to exit.

        Returns:
            True if no loop thread is alive afterwards
        """
        if self._thread is not None:
            self._thread.join(timeout=timeout)
        return not self.is_alive()

    def wait_for_completion(self, interval: float = DEFAULT_WAIT_INTERVAL) -> None:
        """
        Start the loop and block until every job is terminal.

        Sets the tick interval to `interval`, starts the loop if it is
        still READY, then checks all_finished() every `interval` seconds.
        Requests stop() once finished.

        If the loop stops on a fatal error while jobs are still waiting,
        ready or running, this never returns. Callers that need a bound
        should poll group.all_finished() and state themselves.
        """
        self.poll_interval = interval
        if self.state == ThreadState.READY:
            self.start()

        while not self.group.all_finished():
            time.sleep(interval)

        self.stop()

    # =========================================================================
    # Tick
    # =========================================================================

    def tick(self) -> None:
        """
        Run one tick: running pass, waiting pass, ready pass.

        Exceptions from adapters that jobs do not absorb propagate to the
        caller. A pending stop request is honoured between passes.
        """
        ready = self.group.ready_jobs()

        self._check_running_jobs()
        if self._stop_requested():
            return

        self._check_waiting_jobs()
        if self._stop_requested():
            return

        self._start_ready_jobs(ready)
        self._ticks += 1

    def _check_running_jobs(self) -> None:
        for job in self.group.running_jobs():
            job.check_state()
            target = self.group.relocate(job, Bucket.RUNNING)
            if target != Bucket.RUNNING:
                logger.info(f"Job {job.job_id} ({job.name}) finished: {job.state.value}")

    def _check_waiting_jobs(self) -> None:
        for job in self.group.waiting_jobs():
            job.check_state()
            target = self.group.relocate(job, Bucket.WAITING)
            if target == Bucket.FAILED:
                logger.warning(f"Job {job.job_id} ({job.name}) not run: {job.message}")

    def _start_ready_jobs(self, ready) -> None:
        for job in ready:
            job.submit()
            self.group.relocate(job, Bucket.READY)
            logger.info(f"Submitted job {job.job_id} ({job.name}): {job.state.value}")

    # =========================================================================
    # Loop
    # =========================================================================

    def _stop_requested(self) -> bool:
        return self.state == ThreadState.STOPPING

    def _proceed(self) -> bool:
        return self.state in (ThreadState.RUNNING, ThreadState.SUSPENDED)

    def _sleep(self) -> None:
        self._wake_event.wait(self.poll_interval)
        self._wake_event.clear()

    def _run_loop(self) -> None:
        """Main tick loop."""
        logger.info(f"JobControl loop started for group {self.group.name}")

        while True:
            while self.state == ThreadState.SUSPENDED:
                self._sleep()

            if self.state != ThreadState.RUNNING:
                break

            try:
                self.tick()
            except Exception as e:
                logger.error(f"Fatal error in JobControl tick: {e}", exc_info=True)
                self._error = e
                break

            if not self._proceed():
                break
            self._sleep()
            if not self._proceed():
                break

        with self._state_lock:
            self._state = ThreadState.STOPPED
        logger.info(f"JobControl loop ended for group {self.group.name}")

    # =========================================================================
    # Status
    # =========================================================================

    def status(self) -> dict:
        """
        Get a status summary.

        Returns:
            Dict with group, thread_state, ticks, bucket counts,
            all_finished and error
        """
        return {
            "group": self.group.name,
            "thread_state": self.state.value,
            "ticks": self.ticks,
            "counts": {b.value: n for b, n in self.group.counts().items()},
            "all_finished": self.group.all_finished(),
            "error": str(self._error) if self._error is not None else None,
        }
