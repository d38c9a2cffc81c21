"""Per-job temporary workspace."""

import tempfile
from pathlib import Path
from types import TracebackType

from mobibatch.config.constants import LOCAL_BASENAME, LOCAL_OUTPUT_NAME, WORKSPACE_PREFIX
from mobibatch.utils.logging import get_logger

log = get_logger(__name__)


class Workspace:
    """Isolated temporary directory owned by exactly one job execution.

    The directory is created on enter and removed on exit, whether the job
    succeeded or raised. Every instance gets its own ``mkdtemp`` name, so two
    concurrent jobs never share a path.

    Example:
        with Workspace() as ws:
            shutil.copyfile(source, ws.local_input(".epub"))
    """

    def __init__(self, base_dir: Path | None = None) -> None:
        self.base_dir = base_dir
        self._tmp: tempfile.TemporaryDirectory[str] | None = None
        self._path: Path | None = None

    @property
    def path(self) -> Path:
        """Workspace directory; only valid inside the ``with`` block."""
        if self._path is None:
            raise RuntimeError("Workspace is not open")
        return self._path

    @property
    def local_output(self) -> Path:
        """Canonical location of the compiled book."""
        return self.path / LOCAL_OUTPUT_NAME

    def local_input(self, extension: str) -> Path:
        """Canonical location of the staged source for a format extension."""
        return self.path / f"{LOCAL_BASENAME}{extension}"

    def __enter__(self) -> "Workspace":
        self._tmp = tempfile.TemporaryDirectory(
            prefix=WORKSPACE_PREFIX,
            dir=self.base_dir,
            ignore_cleanup_errors=True,
        )
        self._path = Path(self._tmp.name)
        log.debug("Workspace created", path=str(self._path))
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Remove the workspace directory. Safe to call more than once."""
        if self._tmp is None:
            return
        tmp, self._tmp = self._tmp, None
        tmp.cleanup()
        if self._path is not None and self._path.exists():
            log.warning("Workspace could not be fully removed", path=str(self._path))
        else:
            log.debug("Workspace removed", path=str(self._path))
        self._path = None
