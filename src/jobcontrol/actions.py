"""
Filesystem action adapters.

Actions have no extended running phase: submit() only marks the action
as dispatched, and the operation itself runs synchronously inside the
first poll(). OSError raised by the operation is recorded by the job as
FAILED. Optional variants treat a missing path as success.
"""

import logging
import shutil
from abc import abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

from .adapters import ExecutionAdapter
from .entities import Completion


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

METRIC_GROUP = "filesystem"


class FileSystemAction(ExecutionAdapter):
    """
    Base class for synchronous filesystem operations.

    Counters (group "filesystem"):
    - operations: 1 once the operation has been performed
    - skipped: 1 if an optional action found nothing to act on
    """

    kind = "filesystem"

    def __init__(self, optional: bool = False):
        super().__init__()
        self.optional = optional
        self._submitted = False

    def submit(self, config: Dict[str, str]) -> None:
        self._submitted = True
        logger.debug(f"Submitted {self.describe()}")

    def poll(self) -> Optional[Completion]:
        if not self._submitted:
            return None

        logger.info(f"Executing {self.describe()}")
        try:
            self.execute()
        except FileNotFoundError as e:
            if not self.optional:
                raise
            logger.info(f"Optional {self.describe()} skipped: {e}")
            self.counters.increment(METRIC_GROUP, "skipped")
            return Completion.success(f"Skipped, path not found: {e.filename}")

        self.counters.increment(METRIC_GROUP, "operations")
        return Completion.success()

    def kill(self) -> None:
        # Either already done or not started; nothing runs out-of-band
        pass

    @abstractmethod
    def execute(self) -> None:
        """Perform the operation. Raises OSError on failure."""
        ...


class RenameAction(FileSystemAction):
    """Move source to target. A directory target receives source inside it."""

    kind = "rename"

    def __init__(self, source: PathLike, target: PathLike, optional: bool = False):
        super().__init__(optional=optional)
        self.source = Path(source)
        self.target = Path(target)

    def execute(self) -> None:
        if not self.source.exists() and not self.source.is_symlink():
            raise FileNotFoundError(2, "No such file or directory", str(self.source))
        logger.info(f"Renaming {self.source} to {self.target}")
        shutil.move(str(self.source), str(self.target))

    def describe(self) -> str:
        return f"{self.kind} {self.source} -> {self.target}"


class DeleteAction(FileSystemAction):
    """Delete a file, or a directory (non-empty ones only when recursive)."""

    kind = "delete"

    def __init__(self, path: PathLike, recursive: bool = False, optional: bool = False):
        super().__init__(optional=optional)
        self.path = Path(path)
        self.recursive = recursive

    def execute(self) -> None:
        logger.info(f"Deleting {self.path}{' recursively' if self.recursive else ''}")
        if self.path.is_dir() and not self.path.is_symlink():
            if self.recursive:
                shutil.rmtree(self.path)
            else:
                self.path.rmdir()
        else:
            self.path.unlink()

    def describe(self) -> str:
        return f"{self.kind} {self.path}"


class CopyAction(FileSystemAction):
    """Copy a file or a directory tree from source to target."""

    kind = "copy"

    def __init__(self, source: PathLike, target: PathLike, optional: bool = False):
        super().__init__(optional=optional)
        self.source = Path(source)
        self.target = Path(target)

    def execute(self) -> None:
        logger.info(f"Copying {self.source} to {self.target}")
        if self.source.is_dir():
            shutil.copytree(self.source, self.target)
        else:
            shutil.copy2(self.source, self.target)

    def describe(self) -> str:
        return f"{self.kind} {self.source} -> {self.target}"


class OptionalRename(RenameAction):
    """Rename that succeeds when the source does not exist."""

    kind = "optional-rename"

    def __init__(self, source: PathLike, target: PathLike):
        super().__init__(source, target, optional=True)


class OptionalDelete(DeleteAction):
    """Delete that succeeds when the path does not exist."""

    kind = "optional-delete"

    def __init__(self, path: PathLike, recursive: bool = False):
        super().__init__(path, recursive=recursive, optional=True)
