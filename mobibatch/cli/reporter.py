"""Console progress reporting for batch runs."""

from pathlib import Path
from typing import TextIO

from rich.console import Console
from rich.table import Table

from mobibatch.converters.base import ConversionOutcome
from mobibatch.utils.stats import ProgressTracker, format_duration

_SEPARATOR = "-----------------------------------"


class BatchReporter:
    """Engine subscriber that prints one line per finished file.

    Wraps a ProgressTracker: both callbacks update the tracker first, then
    report from the snapshot that update produced. Every line goes to the
    console and, if given, to ``log_file`` as plain text.
    """

    def __init__(
        self,
        tracker: ProgressTracker | None = None,
        console: Console | None = None,
        log_file: TextIO | None = None,
        show_tool_output: bool = False,
    ) -> None:
        """Initialize the reporter.

        Args:
            tracker: Progress tracker to feed; a new one is created if omitted
            console: Rich console for output
            log_file: Optional text stream mirroring every report line
            show_tool_output: Also print kindlegen output for converted files
        """
        self.tracker = tracker or ProgressTracker()
        self.console = console or Console()
        self.log_file = log_file
        self.show_tool_output = show_tool_output
        self.skipped = 0

    def on_start(self, source_path: Path) -> None:
        self.tracker.on_start(source_path)

    def on_complete(self, outcome: ConversionOutcome) -> None:
        snapshot = self.tracker.on_complete(outcome)
        if outcome.skipped:
            self.skipped += 1

        if outcome.destination_path.exists():
            self.write_line(
                f"File #{snapshot.completed_jobs}/{snapshot.total_jobs} "
                f"({snapshot.percent_complete}%), "
                f"time left {format_duration(snapshot.remaining_seconds)}: {outcome.source_path}"
            )
            if self.show_tool_output:
                self.write_details("", outcome.tool_output, outcome.error)
        else:
            self.write_line(f"Failed to convert file: {outcome.source_path}", style="red")
            self.write_details("", outcome.tool_output, outcome.error)

    def write_line(self, text: str, style: str | None = None) -> None:
        """Print a line to the console and mirror it to the log file."""
        self.console.print(text, style=style, markup=False, highlight=False, soft_wrap=True)
        if self.log_file is not None:
            self.log_file.write(text + "\n")
            self.log_file.flush()

    def write_details(self, source: str, tool_output: str, error: str) -> None:
        """Print the kindlegen output and error message blocks of a file."""
        parts = []
        if source:
            parts.append(source)
        if tool_output:
            parts.append("---------- Output stream ----------\n" + tool_output.rstrip("\n"))
        if error:
            parts.append("---------- Error message ----------\n" + error)
        if tool_output or error:
            parts.append(_SEPARATOR)
        if parts:
            self.write_line("\n".join(parts))

    def print_summary(self) -> None:
        """Print the unconverted files and the batch totals."""
        snapshot = self.tracker.snapshot()

        if snapshot.unconverted:
            self.write_line("\n\nUnconverted files:", style="bold red")
            for job in snapshot.unconverted:
                self.write_details(str(job.source_path), job.tool_output, job.error)

        failed = len(snapshot.unconverted)
        table = Table(title="Batch Summary", show_header=False)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Files", str(snapshot.total_jobs))
        table.add_row("Converted", str(snapshot.completed_jobs - failed - self.skipped))
        table.add_row("Already converted", str(self.skipped))
        table.add_row("Failed", str(failed))
        table.add_row("Elapsed", format_duration(snapshot.elapsed))
        self.console.print(table)
