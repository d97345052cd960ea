"""
Execution adapter contract.

Every ControlledJob wraps exactly one ExecutionAdapter. The adapter's
`kind` tags which execution variant it is (compute, command, rename,
delete, copy, ...); JobControl never looks past the contract below.

Contract:
- submit(config): begin execution and return without waiting for it.
  Raising means dispatch failed; the job records FAILED.
- poll(): non-blocking. None while running, otherwise a Completion.
  Expected failures may also be raised as ExecutionError or OSError;
  the job records FAILED and attempts a kill. Any other exception is
  fatal to the polling loop.
- kill(): best-effort cancellation. A no-op is acceptable.
- get_metric(group, name): read a named metric. Missing metrics read as 0.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

from .entities import Completion


class Counters:
    """
    Thread-safe named counters, addressed by (group, name).

    Written by the execution backend while it runs, read by value
    propagation links at a consumer's submit.
    """

    def __init__(self):
        self._values: Dict[Tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def increment(self, group: str, name: str, amount: int = 1) -> int:
        """Add amount to a counter and return the new value."""
        with self._lock:
            value = self._values.get((group, name), 0) + amount
            self._values[(group, name)] = value
            return value

    def set(self, group: str, name: str, value: int) -> None:
        with self._lock:
            self._values[(group, name)] = value

    def get(self, group: str, name: str) -> int:
        """Get a counter value; counters never written read as 0."""
        with self._lock:
            return self._values.get((group, name), 0)

    def as_dict(self) -> Dict[str, Dict[str, int]]:
        """Get a nested {group: {name: value}} copy."""
        with self._lock:
            result: Dict[str, Dict[str, int]] = {}
            for (group, name), value in self._values.items():
                result.setdefault(group, {})[name] = value
            return result


class ExecutionAdapter(ABC):
    """
    Abstract base class for execution kinds.

    Subclasses set `kind` and implement submit/poll/kill.
    """

    kind = "abstract"

    def __init__(self):
        self.counters = Counters()

    @abstractmethod
    def submit(self, config: Dict[str, str]) -> None:
        """
        Begin execution.

        Args:
            config: The job's configuration, after value propagation links
                have been resolved into it
        """
        ...

    @abstractmethod
    def poll(self) -> Optional[Completion]:
        """
        Check whether execution has finished.

        Returns:
            None while running, otherwise the Completion
        """
        ...

    @abstractmethod
    def kill(self) -> None:
        """Attempt to cancel in-flight execution."""
        ...

    def get_metric(self, group: str, name: str) -> int:
        return self.counters.get(group, name)

    def describe(self) -> str:
        """Short human-readable description, used as the default job name."""
        return self.kind
