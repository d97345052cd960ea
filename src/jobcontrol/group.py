"""
Job group registry.

Places jobs into buckets according to their state and assigns each job
an ID unique to the group ("<group><n>", n counting from 0).

Bucket membership is kept by the registry. A job moves between buckets
only through relocate(), which JobControl calls after each job it
refreshes or submits. Terminal buckets are never pruned.
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional

from .entities import ACTIVE_BUCKETS, Bucket, JobState
from .errors import JobNotFoundError
from .job import ControlledJob


logger = logging.getLogger(__name__)


class _JobBucket:
    """Jobs keyed by ID, guarded by their own lock."""

    def __init__(self, name: Bucket):
        self.name = name
        self._jobs: Dict[str, ControlledJob] = {}
        self._lock = threading.Lock()

    def put(self, job: ControlledJob) -> None:
        with self._lock:
            self._jobs[job.job_id] = job

    def pop(self, job_id: str) -> Optional[ControlledJob]:
        with self._lock:
            return self._jobs.pop(job_id, None)

    def get(self, job_id: str) -> Optional[ControlledJob]:
        with self._lock:
            return self._jobs.get(job_id)

    def snapshot(self) -> List[ControlledJob]:
        with self._lock:
            return list(self._jobs.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)


class JobGroup:
    """
    Registry of jobs for one group name.

    Thread-safe: jobs may be registered and buckets read from any thread
    while a JobControl loop relocates jobs.
    """

    def __init__(self, name: str):
        """
        Args:
            name: Group name, used as the prefix of every assigned job ID
        """
        self.name = name
        self._next_job_id = -1
        self._id_lock = threading.Lock()
        # Guards moves between buckets so a job is never observed in none
        self._move_lock = threading.RLock()
        self._buckets: Dict[Bucket, _JobBucket] = {b: _JobBucket(b) for b in Bucket}

    def __repr__(self) -> str:
        counts = ", ".join(f"{b.value}={n}" for b, n in self.counts().items())
        return f"JobGroup({self.name!r}, {counts})"

    # =========================================================================
    # Registration
    # =========================================================================

    def _mint_job_id(self) -> str:
        with self._id_lock:
            self._next_job_id += 1
            return f"{self.name}{self._next_job_id}"

    def add_job(self, job: ControlledJob) -> str:
        """
        Register a job.

        Assigns the next ID, sets the job WAITING and places it in the
        waiting bucket.

        Returns:
            The assigned job ID
        """
        job_id = self._mint_job_id()
        job.assign_id(job_id)
        job.set_state(JobState.WAITING)
        with self._move_lock:
            self._buckets[Bucket.WAITING].put(job)
        logger.debug(f"Registered job {job_id} ({job.name}) in group {self.name}")
        return job_id

    def add_jobs(self, jobs: Iterable[ControlledJob]) -> List[str]:
        """Register a collection of jobs in iteration order."""
        return [self.add_job(job) for job in jobs]

    # =========================================================================
    # Bucket Queries
    # =========================================================================

    def snapshot(self, bucket: Bucket) -> List[ControlledJob]:
        """
        Get a point-in-time copy of a bucket's jobs.

        Safe to iterate while the loop keeps moving jobs.
        """
        return self._buckets[Bucket(bucket)].snapshot()

    def waiting_jobs(self) -> List[ControlledJob]:
        return self.snapshot(Bucket.WAITING)

    def ready_jobs(self) -> List[ControlledJob]:
        return self.snapshot(Bucket.READY)

    def running_jobs(self) -> List[ControlledJob]:
        return self.snapshot(Bucket.RUNNING)

    def successful_jobs(self) -> List[ControlledJob]:
        return self.snapshot(Bucket.SUCCEEDED)

    def failed_jobs(self) -> List[ControlledJob]:
        """Jobs that ended FAILED or DEPENDENT_FAILED."""
        return self.snapshot(Bucket.FAILED)

    def all_jobs(self) -> List[ControlledJob]:
        """Every registered job, ordered by registration."""
        with self._move_lock:
            jobs = [job for b in Bucket for job in self._buckets[b].snapshot()]
        return sorted(jobs, key=lambda j: int(j.job_id[len(self.name):]))

    def get_job(self, job_id: str) -> ControlledJob:
        """
        Look up a job by ID.

        Raises:
            JobNotFoundError: If no bucket holds the ID
        """
        with self._move_lock:
            for bucket in self._buckets.values():
                job = bucket.get(job_id)
                if job is not None:
                    return job
        raise JobNotFoundError(job_id)

    def counts(self) -> Dict[Bucket, int]:
        with self._move_lock:
            return {b: len(self._buckets[b]) for b in Bucket}

    def all_finished(self) -> bool:
        """
        Check whether the waiting, ready and running buckets are all empty.

        Says nothing about how many jobs succeeded or failed.
        """
        with self._move_lock:
            return all(len(self._buckets[b]) == 0 for b in ACTIVE_BUCKETS)

    # =========================================================================
    # Relocation
    # =========================================================================

    def relocate(self, job: ControlledJob, source: Bucket) -> Bucket:
        """
        Move a job from `source` to the bucket matching its current state.

        No-op if the job already belongs in `source`.

        Returns:
            The bucket the job is in afterwards
        """
        target = Bucket.for_state(job.state)
        if target == source:
            return source

        with self._move_lock:
            self._buckets[target].put(job)
            self._buckets[source].pop(job.job_id)

        logger.debug(f"Job {job.job_id}: {source.value} -> {target.value}")
        return target
