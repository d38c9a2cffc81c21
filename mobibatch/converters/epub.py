"""EPUB converter."""

from pathlib import Path

from mobibatch.converters.base import BookConverter, BookFormat
from mobibatch.core.workspace import Workspace


class EpubConverter(BookConverter):
    """EPUB sources go to kindlegen as staged, no intermediate step."""

    name = "epub"
    book_format = BookFormat.EPUB

    def produce_intermediate(self, workspace: Workspace, staged: Path) -> Path:
        return staged
