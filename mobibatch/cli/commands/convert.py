"""Convert command: batch compile e-books with kindlegen."""

from contextlib import ExitStack
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from mobibatch.cli.reporter import BatchReporter
from mobibatch.config import get_settings
from mobibatch.config.constants import MAX_COMPRESSION_LEVEL
from mobibatch.converters.kindlegen import check_kindlegen_available
from mobibatch.core.engine import BatchEngine
from mobibatch.exceptions import ConfigurationError, MobiBatchError
from mobibatch.utils.logging import get_console, get_logger, setup_task_logging

console = get_console()
log = get_logger(__name__)


def convert(
    paths: Annotated[
        list[Path],
        typer.Argument(
            help="Source files (.epub, .epub.zip, .fb2, .fb2.zip) or one source "
            "directory, followed by the destination directory.",
            show_default=False,
        ),
    ],
    compression_level: Annotated[
        int | None,
        typer.Option(
            "--compression",
            "-c",
            min=0,
            max=MAX_COMPRESSION_LEVEL,
            help="Compression level for kindlegen, see kindlegen help for details.",
        ),
    ] = None,
    delete_input: Annotated[
        bool,
        typer.Option("--delete", "-d", help="Delete source file if conversion succeeds."),
    ] = False,
    overwrite: Annotated[
        bool,
        typer.Option("--overwrite", "-r", help="Overwrite existing destination files."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose output of kindlegen."),
    ] = False,
    log_file: Annotated[
        Path | None,
        typer.Option("--log", "-l", help="Also write the report to this file.", dir_okay=False),
    ] = None,
    show_all: Annotated[
        bool,
        typer.Option("--all", "-a", help="Show kindlegen output for converted files too."),
    ] = False,
    max_workers: Annotated[
        int | None,
        typer.Option(
            "--max-workers", min=1, help="Limit concurrent conversions (default: no limit)."
        ),
    ] = None,
    kindlegen: Annotated[
        str | None,
        typer.Option("--kindlegen", help="kindlegen executable name or path."),
    ] = None,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show debug logging."),
    ] = False,
) -> None:
    """Convert e-books to MOBI. A source directory's layout is preserved in the destination.

    Examples:
        mobibatch convert ./library ./kindle
        mobibatch convert -c 2 -r book.epub other.fb2.zip ./kindle
    """
    if len(paths) < 2:
        raise typer.BadParameter(
            "expected at least one source and a destination.", param_hint="PATHS"
        )

    try:
        settings = get_settings()
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    run_id, log_path = setup_task_logging(
        log_dir=settings.log_dir,
        prefix="convert",
        level=settings.log_level,
        verbose=debug,
    )
    log.debug("Logs will be saved to", log_file=str(log_path), run_id=run_id)

    config = settings.to_engine_config(
        compression_level=compression_level,
        delete_input=delete_input or None,
        overwrite=overwrite or None,
        verbose=verbose or None,
        max_workers=max_workers,
        kindlegen_path=kindlegen,
    )
    log.debug("Engine configuration", config=config.model_dump())

    if not check_kindlegen_available(config.kindlegen_path):
        console.print(f"[yellow]Warning:[/yellow] {config.kindlegen_path} not found in PATH")

    *sources, destination = paths

    with ExitStack() as stack:
        log_stream = None
        if log_file is not None:
            log_stream = stack.enter_context(open(log_file, "w", encoding="utf-8"))

        reporter = BatchReporter(console=Console(), log_file=log_stream, show_tool_output=show_all)
        engine = BatchEngine(config, on_start=reporter.on_start, on_complete=reporter.on_complete)

        try:
            if len(sources) == 1 and sources[0].is_dir():
                engine.convert_tree(sources[0], destination)
            else:
                engine.convert_files(sources, destination)
        except MobiBatchError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1) from e

        reporter.print_summary()

    if reporter.tracker.unconverted:
        raise typer.Exit(1)
