"""Batch progress statistics collection."""

import threading
from dataclasses import dataclass, field
from pathlib import Path
from time import monotonic

from mobibatch.converters.base import ConversionOutcome


@dataclass(frozen=True)
class UnconvertedJob:
    """A job whose destination did not exist after completion."""

    source_path: Path
    tool_output: str = ""
    error: str = ""


@dataclass
class BatchStatistics:
    """Shared mutable counters of one batch.

    Only mutated through ProgressTracker, which holds its lock around every
    read-modify-write.
    """

    total_jobs: int = 0
    completed_jobs: int = 0
    total_bytes: int = 0
    completed_bytes: int = 0
    pending_sizes: dict[Path, int] = field(default_factory=dict)
    unconverted: list[UnconvertedJob] = field(default_factory=list)


@dataclass(frozen=True)
class ProgressSnapshot:
    """Consistent point-in-time view of BatchStatistics."""

    total_jobs: int
    completed_jobs: int
    total_bytes: int
    completed_bytes: int
    in_flight: int
    unconverted: tuple[UnconvertedJob, ...]
    elapsed: float

    @property
    def percent_complete(self) -> int:
        """Completed share of bytes as an integer percentage.

        A batch of empty files has no bytes to weigh, so it reports 100 once
        every registered job completed and 0 before that.
        """
        if self.total_bytes == 0:
            done = self.total_jobs > 0 and self.completed_jobs == self.total_jobs
            return 100 if done else 0
        return self.completed_bytes * 100 // self.total_bytes

    @property
    def remaining_seconds(self) -> float | None:
        """Estimated seconds left, or None while no bytes have completed."""
        return estimate_remaining(self.elapsed, self.total_bytes, self.completed_bytes)


def estimate_remaining(elapsed: float, total_bytes: int, completed_bytes: int) -> float | None:
    """Extrapolate the remaining time from throughput so far.

    Returns:
        ``elapsed * total / completed - elapsed``, or None when nothing has
        completed yet and the rate is unknown
    """
    if completed_bytes <= 0:
        return None
    return max(elapsed * total_bytes / completed_bytes - elapsed, 0.0)


def format_duration(seconds: float | None) -> str:
    """Format seconds as ``hh:mm:ss``, or ``d.hh:mm:ss`` past one day."""
    if seconds is None:
        return "unknown"

    total = int(seconds)
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)

    if days:
        return f"{days}.{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class ProgressTracker:
    """Thread-safe aggregation of job starts and completions.

    ``on_start`` and ``on_complete`` match the BatchEngine callback ports,
    so a tracker can be passed to the engine directly. Both may be called
    concurrently from any thread; every update of the shared statistics
    happens under one lock, and readers take the same lock to get a
    consistent snapshot.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stats = BatchStatistics()
        self.start_time = monotonic()

    def on_start(self, source_path: Path) -> int:
        """Register a job about to be dispatched.

        Returns:
            Size of the source file in bytes (0 if it cannot be read)
        """
        try:
            size = Path(source_path).stat().st_size
        except OSError:
            size = 0

        with self._lock:
            stats = self._stats
            stats.total_jobs += 1
            stats.total_bytes += size
            stats.pending_sizes[Path(source_path)] = size

        return size

    def on_complete(self, outcome: ConversionOutcome) -> ProgressSnapshot:
        """Register a finished job.

        Returns:
            Snapshot taken atomically with this update, so a reporter sees
            the counts exactly as this completion left them
        """
        converted = outcome.destination_path.exists()

        with self._lock:
            stats = self._stats
            stats.completed_jobs += 1
            stats.completed_bytes += stats.pending_sizes.pop(Path(outcome.source_path), 0)
            if not converted:
                stats.unconverted.append(
                    UnconvertedJob(
                        source_path=outcome.source_path,
                        tool_output=outcome.tool_output,
                        error=outcome.error,
                    )
                )
            return self._snapshot_locked()

    def snapshot(self) -> ProgressSnapshot:
        """Get a consistent view of the current statistics."""
        with self._lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> ProgressSnapshot:
        stats = self._stats
        return ProgressSnapshot(
            total_jobs=stats.total_jobs,
            completed_jobs=stats.completed_jobs,
            total_bytes=stats.total_bytes,
            completed_bytes=stats.completed_bytes,
            in_flight=len(stats.pending_sizes),
            unconverted=tuple(stats.unconverted),
            elapsed=monotonic() - self.start_time,
        )

    @property
    def percent_complete(self) -> int:
        """Completed share of bytes as an integer percentage."""
        return self.snapshot().percent_complete

    def estimate_remaining(self, elapsed: float | None = None) -> float | None:
        """Estimated seconds left; None while no bytes have completed.

        Args:
            elapsed: Seconds since the batch started; measured if omitted
        """
        snap = self.snapshot()
        return estimate_remaining(
            snap.elapsed if elapsed is None else elapsed,
            snap.total_bytes,
            snap.completed_bytes,
        )

    @property
    def unconverted(self) -> list[UnconvertedJob]:
        """Jobs without a destination file, in completion order."""
        with self._lock:
            return list(self._stats.unconverted)
