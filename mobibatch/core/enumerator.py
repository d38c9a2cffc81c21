"""Job enumeration over a source tree or an explicit file list."""

import os
from collections.abc import Iterable, Iterator
from pathlib import Path

import anyio
from anyio.abc import TaskGroup
from anyio.streams.memory import MemoryObjectSendStream

from mobibatch.converters.base import ConversionJob
from mobibatch.core.router import create_job
from mobibatch.utils.logging import get_logger

log = get_logger(__name__)


def _list_directory(directory: Path) -> tuple[list[Path], list[Path]]:
    """Split a directory's entries into files and subdirectories.

    Directory symlinks are not followed, which keeps the walk free of cycles.
    """
    files: list[Path] = []
    subdirs: list[Path] = []
    with os.scandir(directory) as entries:
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                subdirs.append(Path(entry.path))
            elif entry.is_file():
                files.append(Path(entry.path))
    return files, subdirs


async def scan_tree(
    source_dir: Path,
    dest_dir: Path,
    send_stream: MemoryObjectSendStream[ConversionJob],
) -> None:
    """Walk ``source_dir`` and send one job per convertible file.

    Every subdirectory is scanned in its own task, so jobs from different
    branches of the tree arrive interleaved. Destinations mirror the source
    layout under ``dest_dir``. The stream is closed once the whole tree has
    been walked, which ends the receiver's ``async for``.

    An unreadable directory is logged and skipped; the rest of the tree is
    still scanned.
    """
    async with send_stream:
        async with anyio.create_task_group() as tg:
            await _scan_directory(tg, Path(source_dir), Path(dest_dir), send_stream)


async def _scan_directory(
    tg: TaskGroup,
    directory: Path,
    dest_dir: Path,
    send_stream: MemoryObjectSendStream[ConversionJob],
) -> None:
    try:
        files, subdirs = await anyio.to_thread.run_sync(_list_directory, directory)
    except OSError as e:
        log.warning("Cannot read directory, skipping", directory=str(directory), error=str(e))
        return

    for subdir in subdirs:
        tg.start_soon(_scan_directory, tg, subdir, dest_dir / subdir.name, send_stream)

    for path in files:
        job = create_job(path, dest_dir)
        if job is not None:
            await send_stream.send(job)


def iter_files(paths: Iterable[Path | str], dest_dir: Path) -> Iterator[ConversionJob]:
    """Yield jobs for an explicit file list, all targeting ``dest_dir`` directly.

    Missing files are logged and skipped, as are files of other formats. A
    path listed twice yields one job, since both would target the same
    destination.
    """
    seen: set[Path] = set()
    for raw_path in paths:
        path = Path(raw_path)
        job = create_job(path, Path(dest_dir))
        if job is None:
            log.debug("Not convertible, skipping", file=str(path))
            continue
        if not path.is_file():
            log.warning("Source file not found, skipping", file=str(path))
            continue
        key = path.resolve()
        if key in seen:
            log.debug("Duplicate source, skipping", file=str(path))
            continue
        seen.add(key)
        yield job
