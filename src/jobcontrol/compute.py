"""
Compute adapters.

- ComputeAdapter: runs a Python callable on a worker thread, reporting
  named counters as it goes
- CommandAdapter: runs an external command as a subprocess, logging its
  output to a file

Both return from submit() as soon as the work is dispatched; poll()
checks for completion without blocking.
"""

import logging
import os
import subprocess
import tempfile
import time
import traceback
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from .adapters import Counters, ExecutionAdapter
from .entities import Completion
from .errors import ExecutionError


logger = logging.getLogger(__name__)

# When "true" in a command job's config, missing input directories are
# created before the command is started.
CREATE_DIR_KEY = "jobcontrol.createdir.ifnotexist"

PROCESS_GROUP = "process"

ComputeFn = Callable[[Dict[str, str], Counters], None]


def _format_exception(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)).strip()


class ComputeAdapter(ExecutionAdapter):
    """
    Execute a callable `fn(config, counters)` on a worker thread.

    The callable receives a copy of the job's config and the adapter's
    Counters, which it may update while running. Raising marks the job
    FAILED with the formatted traceback as its message.
    """

    kind = "compute"

    def __init__(
        self,
        fn: ComputeFn,
        name: Optional[str] = None,
        executor: Optional[Executor] = None,
    ):
        """
        Args:
            fn: The work to run
            name: Description used as the default job name
            executor: Shared executor to run on. If None, a dedicated
                single-thread executor is created on submit.
        """
        super().__init__()
        self.fn = fn
        self.name = name or getattr(fn, "__name__", "compute")
        self._executor = executor
        self._future: Optional[Future] = None
        self._killed = False

    def submit(self, config: Dict[str, str]) -> None:
        executor = self._executor
        owned = executor is None
        if owned:
            executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix=f"jobcontrol-{self.name}"
            )

        self._future = executor.submit(self.fn, dict(config), self.counters)

        if owned:
            # Pending work still runs; the thread exits once it is done
            executor.shutdown(wait=False)

    def poll(self) -> Optional[Completion]:
        if self._future is None:
            raise ExecutionError(f"{self.describe()} polled before submit")

        if not self._future.done():
            return None

        if self._future.cancelled() or self._killed:
            return Completion.failure("Job was cancelled")

        exc = self._future.exception()
        if exc is not None:
            return Completion.failure(_format_exception(exc))

        return Completion.success()

    def kill(self) -> None:
        """Cancel the callable if it has not started yet."""
        if self._future is not None and not self._future.done():
            self._killed = True
            if not self._future.cancel():
                logger.warning(f"{self.describe()} is already running and cannot be interrupted")

    def describe(self) -> str:
        return f"{self.kind} {self.name}"


class CommandAdapter(ExecutionAdapter):
    """
    Execute an external command.

    The job's config is added to the child environment. Output goes to a
    log file; on a non-zero exit the last lines of that log become the
    job's message.

    Counters (group "process"):
    - exit_code: the command's exit status
    - duration_ms: wall time between submit and the poll that saw it exit
    """

    kind = "command"

    def __init__(
        self,
        argv: List[str],
        cwd: Optional[Union[str, Path]] = None,
        inputs: Iterable[Union[str, Path]] = (),
        env: Optional[Dict[str, str]] = None,
        logs_dir: Optional[Union[str, Path]] = None,
    ):
        """
        Args:
            argv: Command and arguments
            cwd: Working directory for the command
            inputs: Input directories, created on submit when the config
                sets CREATE_DIR_KEY
            env: Extra environment variables
            logs_dir: Directory for the output log (default: system temp dir)
        """
        super().__init__()
        if not argv:
            raise ValueError("argv must not be empty")
        self.argv = [str(a) for a in argv]
        self.cwd = Path(cwd) if cwd is not None else None
        self.inputs = [Path(p) for p in inputs]
        self.env = dict(env or {})
        self.logs_dir = Path(logs_dir) if logs_dir is not None else Path(tempfile.gettempdir()) / "jobcontrol"
        self.log_path: Optional[Path] = None

        self._process: Optional[subprocess.Popen] = None
        self._log_file = None
        self._started_at: Optional[float] = None
        self._killed = False

    def submit(self, config: Dict[str, str]) -> None:
        if config.get(CREATE_DIR_KEY, "").lower() == "true":
            for path in self.inputs:
                if not path.exists():
                    logger.info(f"Creating missing input directory {path}")
                    path.mkdir(parents=True, exist_ok=True)

        self.logs_dir.mkdir(parents=True, exist_ok=True)
        fd, log_path = tempfile.mkstemp(
            prefix=f"{Path(self.argv[0]).name}_", suffix=".log", dir=self.logs_dir
        )
        self.log_path = Path(log_path)
        self._log_file = os.fdopen(fd, "w")

        env = {**os.environ, **self.env, **config}

        logger.info(f"Executing {' '.join(self.argv)} (log: {self.log_path})")
        try:
            self._process = subprocess.Popen(
                self.argv,
                cwd=self.cwd,
                env=env,
                stdout=self._log_file,
                stderr=subprocess.STDOUT,
            )
        except Exception:
            self._close_log()
            raise
        self._started_at = time.monotonic()

    def poll(self) -> Optional[Completion]:
        if self._process is None:
            raise ExecutionError(f"{self.describe()} polled before submit")

        exit_code = self._process.poll()
        if exit_code is None:
            return None

        self._close_log()
        self.counters.set(PROCESS_GROUP, "exit_code", exit_code)
        self.counters.set(
            PROCESS_GROUP,
            "duration_ms",
            int((time.monotonic() - self._started_at) * 1000),
        )

        if self._killed:
            return Completion.failure("Job was cancelled")

        if exit_code == 0:
            return Completion.success()

        error = self._read_error_from_log()
        return Completion.failure(error or f"Process exited with code {exit_code}")

    def kill(self) -> None:
        """Terminate the subprocess if it is still running."""
        if self._process is not None and self._process.poll() is None:
            self._killed = True
            try:
                self._process.terminate()
            except OSError as e:
                logger.error(f"Error terminating process: {e}")

    def describe(self) -> str:
        return f"{self.kind} {' '.join(self.argv)}"

    def _close_log(self) -> None:
        if self._log_file is not None:
            self._log_file.close()
            self._log_file = None

    def _read_error_from_log(self) -> Optional[str]:
        """Read last error lines from log file."""
        try:
            with open(self.log_path, "r") as f:
                lines = f.readlines()
        except OSError:
            return None
        error_lines = [line.strip() for line in lines[-10:] if line.strip()]
        if error_lines:
            return "\n".join(error_lines[-3:])
        return None
