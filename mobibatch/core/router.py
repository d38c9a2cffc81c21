"""Format classifier: maps source file names to conversion jobs."""

from pathlib import Path

from mobibatch.config.constants import ARCHIVE_EXTENSION, TARGET_EXTENSION
from mobibatch.converters.base import BookFormat, ConversionJob

_FORMATS_BY_EXTENSION = {fmt.value: fmt for fmt in BookFormat}


def classify(path: Path | str) -> BookFormat | None:
    """Decide the conversion variant of a source file by its name.

    ``book.epub`` and ``book.fb2`` are direct sources; ``book.epub.zip`` and
    ``book.fb2.zip`` are the same formats wrapped in an archive. Extension
    matching is case-insensitive. Anything else is not convertible.
    """
    name = Path(path)
    suffix = name.suffix.lower()

    if suffix == ARCHIVE_EXTENSION:
        suffix = Path(name.stem).suffix.lower()

    return _FORMATS_BY_EXTENSION.get(suffix)


def destination_name(path: Path | str) -> str:
    """Base name of a source with archive and format suffixes replaced by .mobi."""
    name = Path(path)
    stem = name.stem
    if name.suffix.lower() == ARCHIVE_EXTENSION:
        stem = Path(stem).stem
    return stem + TARGET_EXTENSION


def create_job(source_path: Path, dest_dir: Path) -> ConversionJob | None:
    """Build the job for a source file, or None if it is not convertible."""
    book_format = classify(source_path)
    if book_format is None:
        return None

    return ConversionJob(
        source_path=source_path,
        destination_path=dest_dir / destination_name(source_path),
        format=book_format,
    )
