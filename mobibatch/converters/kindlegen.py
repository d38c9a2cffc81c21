"""Adapter for the external kindlegen compiler."""

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from mobibatch.config.constants import DEFAULT_COMPRESSION_LEVEL, DEFAULT_KINDLEGEN
from mobibatch.exceptions import ExternalToolError
from mobibatch.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class ToolResult:
    """Captured result of one compiler run."""

    exit_code: int
    output: str


class KindleGen:
    """Runs kindlegen as a subprocess.

    kindlegen writes its output file next to the input file, so ``-o`` only
    carries a bare file name. Success is judged by the caller from whether
    that file appears; a nonzero exit code is reported but not raised, since
    kindlegen exits with 1 on warnings while still producing a book.
    """

    def __init__(
        self,
        executable: str = DEFAULT_KINDLEGEN,
        compression_level: int = DEFAULT_COMPRESSION_LEVEL,
        verbose: bool = False,
    ) -> None:
        """Initialize the compiler adapter.

        Args:
            executable: kindlegen executable name or path
            compression_level: Value for the ``-c`` flag
            verbose: Pass ``-verbose`` to kindlegen
        """
        self.executable = executable
        self.compression_level = compression_level
        self.verbose = verbose

    def build_command(self, input_path: Path, output_name: str) -> list[str]:
        """Build the kindlegen argument list."""
        cmd = [self.executable]
        if self.verbose:
            cmd.append("-verbose")
        cmd.extend([f"-c{self.compression_level}", str(input_path), "-o", output_name])
        return cmd

    def run(self, input_path: Path, output_name: str) -> ToolResult:
        """Compile ``input_path``; blocks until kindlegen exits.

        Raises:
            ExternalToolError: If kindlegen cannot be launched
        """
        cmd = self.build_command(input_path, output_name)
        log.debug("Running kindlegen", command=" ".join(cmd))

        try:
            result = subprocess.run(
                cmd,
                cwd=input_path.parent,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise ExternalToolError(
                input_path, f"cannot run {self.executable}: {e}", cause=e
            ) from e

        log.debug("kindlegen finished", exit_code=result.returncode, input=str(input_path))
        return ToolResult(exit_code=result.returncode, output=result.stdout or "")


def check_kindlegen_available(executable: str = DEFAULT_KINDLEGEN) -> bool:
    """Check if the kindlegen executable can be found."""
    return shutil.which(executable) is not None
