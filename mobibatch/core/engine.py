"""Concurrent batch conversion engine."""

import math
from collections.abc import Callable, Iterable
from functools import partial
from pathlib import Path
from typing import Any

import anyio
from anyio.abc import TaskGroup

from mobibatch.config.settings import EngineConfig
from mobibatch.converters import create_converter
from mobibatch.converters.base import ConversionJob, ConversionOutcome
from mobibatch.core.enumerator import iter_files, scan_tree
from mobibatch.exceptions import SourceNotFoundError
from mobibatch.utils.logging import get_logger

log = get_logger(__name__)

StartCallback = Callable[[Path], Any]
CompleteCallback = Callable[[ConversionOutcome], Any]


class BatchEngine:
    """Fans out one conversion task per discovered file and joins on all of them.

    Jobs run ``BookConverter.convert`` on worker threads. By default every job
    gets its own thread as soon as it is discovered; ``EngineConfig.max_workers``
    caps the number of jobs converting at once.

    Subscribers are plain callbacks passed at construction and live as long
    as the engine does:

    - ``on_start(source_path)`` fires before a job is dispatched
    - ``on_complete(outcome)`` fires after the job finished

    Callbacks run on the event loop thread. Start and completion of one job
    are ordered; across jobs they interleave freely.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        on_start: StartCallback | None = None,
        on_complete: CompleteCallback | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Engine configuration snapshot
            on_start: Called with the source path before each job is dispatched
            on_complete: Called with the outcome after each job finished
        """
        self.config = config or EngineConfig()
        self.on_start = on_start
        self.on_complete = on_complete

    def convert_tree(self, source_dir: Path | str, dest_dir: Path | str) -> list[ConversionOutcome]:
        """Convert a directory tree, blocking until every job has finished."""
        return anyio.run(partial(self.run_tree, Path(source_dir), Path(dest_dir)))

    def convert_files(
        self, source_files: Iterable[Path | str], dest_dir: Path | str
    ) -> list[ConversionOutcome]:
        """Convert an explicit file list, blocking until every job has finished."""
        return anyio.run(partial(self.run_files, list(source_files), Path(dest_dir)))

    async def run_tree(self, source_dir: Path, dest_dir: Path) -> list[ConversionOutcome]:
        """Convert a directory tree, mirroring its layout under ``dest_dir``.

        Jobs are dispatched while the tree is still being scanned.

        Returns:
            Outcomes in completion order

        Raises:
            SourceNotFoundError: If ``source_dir`` is not a directory
        """
        source_dir = Path(source_dir)
        if not source_dir.is_dir():
            raise SourceNotFoundError(source_dir)

        log.info("Batch started", source=str(source_dir), destination=str(dest_dir))
        outcomes: list[ConversionOutcome] = []
        limiter = self._create_limiter()
        send_stream, receive_stream = anyio.create_memory_object_stream(math.inf)

        async with anyio.create_task_group() as tg:
            tg.start_soon(scan_tree, source_dir, Path(dest_dir), send_stream)
            async with receive_stream:
                async for job in receive_stream:
                    self._dispatch(tg, limiter, job, outcomes)

        log.info("Batch finished", jobs=len(outcomes))
        return outcomes

    async def run_files(
        self, source_files: Iterable[Path | str], dest_dir: Path
    ) -> list[ConversionOutcome]:
        """Convert an explicit file list into the flat ``dest_dir``.

        Returns:
            Outcomes in completion order
        """
        log.info("Batch started", destination=str(dest_dir))
        outcomes: list[ConversionOutcome] = []
        limiter = self._create_limiter()

        async with anyio.create_task_group() as tg:
            for job in iter_files(source_files, Path(dest_dir)):
                self._dispatch(tg, limiter, job, outcomes)

        log.info("Batch finished", jobs=len(outcomes))
        return outcomes

    def _create_limiter(self) -> anyio.CapacityLimiter:
        # Created per run: a limiter belongs to the event loop it was made in
        return anyio.CapacityLimiter(self.config.max_workers or math.inf)

    def _dispatch(
        self,
        tg: TaskGroup,
        limiter: anyio.CapacityLimiter,
        job: ConversionJob,
        outcomes: list[ConversionOutcome],
    ) -> None:
        self._notify(self.on_start, job.source_path)
        tg.start_soon(self._run_job, limiter, job, outcomes)

    async def _run_job(
        self,
        limiter: anyio.CapacityLimiter,
        job: ConversionJob,
        outcomes: list[ConversionOutcome],
    ) -> None:
        try:
            converter = create_converter(job, self.config)
            outcome = await anyio.to_thread.run_sync(converter.convert, limiter=limiter)
        except Exception as e:
            log.exception("Job crashed", source=str(job.source_path))
            outcome = ConversionOutcome(
                source_path=job.source_path,
                destination_path=job.destination_path,
                succeeded=False,
                error=str(e) or type(e).__name__,
            )
        outcomes.append(outcome)
        self._notify(self.on_complete, outcome)

    def _notify(self, callback: Callable[[Any], Any] | None, payload: Any) -> None:
        if callback is None:
            return
        try:
            callback(payload)
        except Exception:
            log.exception("Notification callback failed", callback=repr(callback))
