"""
Plan documents: declarative job graphs.

A plan names each job, its execution kind, the jobs it depends on and
the metrics it pulls from other jobs. Plans are validated when they are
constructed; build_jobs() turns a valid plan into wired ControlledJobs.

Example:
    {
      "group": "nightly",
      "jobs": [
        {"name": "count", "kind": "command", "argv": ["wc", "-l", "in.txt"]},
        {"name": "publish", "kind": "rename", "source": "out.tmp",
         "target": "out.txt", "depends_on": ["count"],
         "metrics": [{"producer": "count", "group": "process",
                      "name": "exit_code", "key": "count.exit"}]}
      ]
    }
"""

import json
from collections import deque
from pathlib import Path
from typing import Dict, List, Literal, Optional, Set, Union

from pydantic import BaseModel, Field, ValidationError, model_validator

from .actions import CopyAction, DeleteAction, RenameAction
from .adapters import ExecutionAdapter
from .compute import CommandAdapter
from .errors import PlanError
from .group import JobGroup
from .job import ControlledJob


JobKind = Literal["command", "rename", "delete", "copy"]


class MetricLinkSpec(BaseModel):
    """Metric pulled from another job in the plan at submit time."""

    producer: str = Field(..., description="Name of the job that reports the metric")
    group: str = Field(..., description="Metric group")
    name: str = Field(..., description="Metric name")
    key: str = Field(..., description="Config key the value is written to")


class JobSpec(BaseModel):
    """One job in a plan."""

    name: str = Field(..., min_length=1, description="Unique name within the plan")
    kind: JobKind = Field(..., description="Execution kind")
    config: Dict[str, str] = Field(default_factory=dict, description="Initial job config")
    depends_on: List[str] = Field(default_factory=list, description="Names of jobs that must succeed first")
    metrics: List[MetricLinkSpec] = Field(default_factory=list)

    # command
    argv: List[str] = Field(default_factory=list, description="Command and arguments")
    cwd: Optional[str] = None
    inputs: List[str] = Field(default_factory=list, description="Input directories of a command")
    env: Dict[str, str] = Field(default_factory=dict)

    # filesystem
    source: Optional[str] = None
    target: Optional[str] = None
    path: Optional[str] = None
    recursive: bool = False
    optional: bool = False

    @model_validator(mode="after")
    def _check_kind_fields(self) -> "JobSpec":
        if self.kind == "command" and not self.argv:
            raise ValueError(f"job '{self.name}': command jobs require argv")
        if self.kind in ("rename", "copy") and (not self.source or not self.target):
            raise ValueError(f"job '{self.name}': {self.kind} jobs require source and target")
        if self.kind == "delete" and not self.path:
            raise ValueError(f"job '{self.name}': delete jobs require path")
        return self

    def build_adapter(self, logs_dir: Optional[Union[str, Path]] = None) -> ExecutionAdapter:
        """Create the execution adapter this spec describes."""
        if self.kind == "command":
            return CommandAdapter(
                self.argv, cwd=self.cwd, inputs=self.inputs, env=self.env, logs_dir=logs_dir
            )
        if self.kind == "rename":
            return RenameAction(self.source, self.target, optional=self.optional)
        if self.kind == "delete":
            return DeleteAction(self.path, recursive=self.recursive, optional=self.optional)
        if self.kind == "copy":
            return CopyAction(self.source, self.target, optional=self.optional)
        raise PlanError(f"Unknown job kind: {self.kind}")


class PlanSpec(BaseModel):
    """A named group of jobs and the edges between them."""

    group: Optional[str] = Field(default=None, description="Group name (ID prefix)")
    jobs: List[JobSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_references(self) -> "PlanSpec":
        names = [job.name for job in self.jobs]
        if len(set(names)) != len(names):
            dupes = sorted({n for n in names if names.count(n) > 1})
            raise ValueError(f"Duplicate job names found: {dupes}")

        known = set(names)
        for job in self.jobs:
            for dep in job.depends_on:
                if dep not in known:
                    raise ValueError(
                        f"Job '{job.name}' depends on missing job '{dep}'. "
                        f"Known jobs: {sorted(known)}"
                    )
            for link in job.metrics:
                if link.producer not in known:
                    raise ValueError(
                        f"Job '{job.name}' requires a metric from missing job '{link.producer}'"
                    )

        stuck = _unordered_jobs(self.jobs)
        if stuck:
            raise ValueError(f"Dependency cycle between jobs: {stuck}")
        return self


def _unordered_jobs(jobs: List[JobSpec]) -> List[str]:
    """
    Topologically sort jobs on their depends_on edges.

    Returns:
        Names of jobs that can never become ready (on or downstream of a
        cycle, including self-dependencies); empty for an acyclic plan
    """
    children: Dict[str, Set[str]] = {job.name: set() for job in jobs}
    indeg: Dict[str, int] = {job.name: 0 for job in jobs}
    for job in jobs:
        for dep in set(job.depends_on):
            children[dep].add(job.name)
            indeg[job.name] += 1

    q = deque(name for name, d in indeg.items() if d == 0)
    while q:
        node = q.popleft()
        for child in children[node]:
            indeg[child] -= 1
            if indeg[child] == 0:
                q.append(child)

    return sorted(name for name, d in indeg.items() if d > 0)


def parse_plan(data: Union[dict, str]) -> PlanSpec:
    """
    Validate a plan from a dict or a JSON string.

    Raises:
        PlanError: If the plan is invalid
    """
    try:
        if isinstance(data, str):
            return PlanSpec.model_validate_json(data)
        return PlanSpec.model_validate(data)
    except ValidationError as e:
        raise PlanError(str(e)) from e


def load_plan(path: Union[str, Path]) -> PlanSpec:
    """
    Read and validate a plan file.

    Raises:
        PlanError: If the file cannot be read or the plan is invalid
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PlanError(f"Cannot read plan {path}: {e}") from e
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise PlanError(f"Plan {path} is not valid JSON: {e}") from e
    return parse_plan(data)


def build_jobs(
    plan: PlanSpec,
    logs_dir: Optional[Union[str, Path]] = None,
) -> Dict[str, ControlledJob]:
    """
    Create jobs for a plan and wire their dependencies and metric links.

    Edges and links are declared in plan order, so dependency order
    (and which failure is reported first) follows depends_on.

    Returns:
        Jobs keyed by plan name, in plan order
    """
    jobs: Dict[str, ControlledJob] = {}
    for spec in plan.jobs:
        jobs[spec.name] = ControlledJob(
            spec.build_adapter(logs_dir=logs_dir),
            name=spec.name,
            config=spec.config,
        )

    for spec in plan.jobs:
        job = jobs[spec.name]
        for dep in spec.depends_on:
            job.add_dependency(jobs[dep])
        for link in spec.metrics:
            job.require_metric(jobs[link.producer], link.group, link.name, link.key)

    return jobs


def register_plan(
    group: JobGroup,
    plan: PlanSpec,
    logs_dir: Optional[Union[str, Path]] = None,
) -> Dict[str, ControlledJob]:
    """Build a plan's jobs and register them with `group`, in plan order."""
    jobs = build_jobs(plan, logs_dir=logs_dir)
    group.add_jobs(jobs.values())
    return jobs
