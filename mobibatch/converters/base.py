"""Base converter interface and data classes."""

import shutil
import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath

from mobibatch.config.constants import ARCHIVE_EXTENSION, LOCAL_OUTPUT_NAME
from mobibatch.config.settings import EngineConfig
from mobibatch.converters.kindlegen import KindleGen, ToolResult
from mobibatch.core.workspace import Workspace
from mobibatch.exceptions import ConversionError, PublishError, StagingError
from mobibatch.utils.fs import atomic_copy
from mobibatch.utils.logging import get_logger

log = get_logger(__name__)


class BookFormat(Enum):
    """Source formats, valued by their file extension."""

    EPUB = ".epub"
    FB2 = ".fb2"


@dataclass(frozen=True)
class ConversionJob:
    """One source file to destination file conversion unit."""

    source_path: Path
    destination_path: Path
    format: BookFormat

    @property
    def is_archive(self) -> bool:
        """True if the source is a zip archive wrapping the book."""
        return self.source_path.suffix.lower() == ARCHIVE_EXTENSION


@dataclass(frozen=True)
class ConversionOutcome:
    """Result of a job, produced exactly once per job."""

    source_path: Path
    destination_path: Path
    succeeded: bool
    tool_output: str = ""
    error: str = ""
    skipped: bool = False  # Destination already existed, nothing was done
    exit_code: int | None = None  # None when kindlegen never ran


class BookConverter(ABC):
    """Converts one job's source to MOBI inside a private workspace.

    ``convert`` is the single entry point and is shared by all formats. It
    runs ``stage_input``, ``produce_intermediate``, ``invoke_external_tool``
    and ``publish_output`` in that order inside one failure boundary. Formats
    only differ in ``produce_intermediate``, which turns the staged source
    into the file handed to kindlegen.

    ``convert`` is blocking and never raises for per-job failures; it is
    meant to run on a worker thread.
    """

    name: str = "base"
    book_format: BookFormat

    def __init__(
        self,
        job: ConversionJob,
        config: EngineConfig,
        kindlegen: KindleGen | None = None,
    ) -> None:
        """Initialize the converter.

        Args:
            job: Job to convert
            config: Engine configuration snapshot
            kindlegen: Optional compiler adapter; built from config if omitted
        """
        self.job = job
        self.config = config
        self.kindlegen = kindlegen or KindleGen(
            executable=config.kindlegen_path,
            compression_level=config.compression_level,
            verbose=config.verbose,
        )

    @property
    def source_extension(self) -> str:
        """Extension of the staged source inside the workspace."""
        return self.book_format.value

    def convert(self) -> ConversionOutcome:
        """Convert the job's source and publish the result.

        Returns:
            ConversionOutcome describing what happened
        """
        job = self.job

        if not self.config.overwrite and job.destination_path.exists():
            log.info(
                "Destination exists, skipping",
                source=str(job.source_path),
                destination=str(job.destination_path),
            )
            outcome = ConversionOutcome(
                source_path=job.source_path,
                destination_path=job.destination_path,
                succeeded=True,
                skipped=True,
            )
        else:
            outcome = self._convert_in_workspace()

        self._remove_converted_source()
        return outcome

    def _convert_in_workspace(self) -> ConversionOutcome:
        job = self.job
        tool_result: ToolResult | None = None
        error = ""

        log.info("Converting", source=str(job.source_path), format=self.name)

        try:
            with Workspace() as workspace:
                staged = self.stage_input(workspace)
                primary_input = self.produce_intermediate(workspace, staged)
                tool_result = self.invoke_external_tool(workspace, primary_input)
                self.publish_output(workspace)
        except Exception as e:
            error = str(e) or type(e).__name__
            log.warning("Conversion failed", source=str(job.source_path), error=error)

        succeeded = not error and job.destination_path.exists()
        if succeeded:
            log.info(
                "Converted", source=str(job.source_path), destination=str(job.destination_path)
            )

        return ConversionOutcome(
            source_path=job.source_path,
            destination_path=job.destination_path,
            succeeded=succeeded,
            tool_output=tool_result.output if tool_result else "",
            error=error,
            exit_code=tool_result.exit_code if tool_result else None,
        )

    def stage_input(self, workspace: Workspace) -> Path:
        """Copy or extract the source into the workspace.

        Returns:
            Path of the staged source

        Raises:
            StagingError: If the source cannot be copied, the archive cannot
                be read, or it holds no entry of the expected format
        """
        source = self.job.source_path
        target = workspace.local_input(self.source_extension)

        try:
            if self.job.is_archive:
                self._extract_first_entry(source, target)
            else:
                shutil.copyfile(source, target)
        except ConversionError:
            raise
        except (OSError, zipfile.BadZipFile, RuntimeError) as e:
            raise StagingError(source, str(e), cause=e) from e

        log.debug("Source staged", source=str(source), staged=str(target))
        return target

    def _extract_first_entry(self, archive: Path, target: Path) -> None:
        with zipfile.ZipFile(archive) as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue
                if PurePosixPath(info.filename).suffix.lower() == self.source_extension:
                    with zf.open(info) as src, open(target, "wb") as dst:
                        shutil.copyfileobj(src, dst)
                    return

        raise StagingError(archive, f"archive contains no {self.source_extension} file")

    @abstractmethod
    def produce_intermediate(self, workspace: Workspace, staged: Path) -> Path:
        """Prepare the compiler input from the staged source.

        Args:
            workspace: Job workspace
            staged: Staged source file

        Returns:
            Path of the file to hand to kindlegen
        """
        pass

    def invoke_external_tool(self, workspace: Workspace, primary_input: Path) -> ToolResult:
        """Run kindlegen on the primary input; output lands in the workspace."""
        result = self.kindlegen.run(primary_input, LOCAL_OUTPUT_NAME)
        if not workspace.local_output.exists():
            log.warning(
                "kindlegen produced no output",
                source=str(self.job.source_path),
                exit_code=result.exit_code,
            )
        return result

    def publish_output(self, workspace: Workspace) -> bool:
        """Copy the compiled book to its destination.

        Returns:
            True if the destination was written

        Raises:
            PublishError: If the copy fails
        """
        local_output = workspace.local_output
        destination = self.job.destination_path

        if not local_output.exists():
            return False
        if destination.exists() and not self.config.overwrite:
            return False

        try:
            atomic_copy(local_output, destination)
        except OSError as e:
            raise PublishError(destination, str(e), cause=e) from e

        return True

    def _remove_converted_source(self) -> None:
        if not self.config.delete_input or not self.job.destination_path.exists():
            return

        try:
            self.job.source_path.unlink(missing_ok=True)
            log.info("Source deleted", source=str(self.job.source_path))
        except OSError as e:
            log.warning("Could not delete source", source=str(self.job.source_path), error=str(e))
