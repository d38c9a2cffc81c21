"""Format-specific converters."""

from mobibatch.config.settings import EngineConfig
from mobibatch.converters.base import (
    BookConverter,
    BookFormat,
    ConversionJob,
    ConversionOutcome,
)
from mobibatch.converters.epub import EpubConverter
from mobibatch.converters.fb2 import Fb2Converter

CONVERTERS: dict[BookFormat, type[BookConverter]] = {
    BookFormat.EPUB: EpubConverter,
    BookFormat.FB2: Fb2Converter,
}


def create_converter(job: ConversionJob, config: EngineConfig) -> BookConverter:
    """Create the converter for a job's format."""
    return CONVERTERS[job.format](job, config)


__all__ = [
    "CONVERTERS",
    "BookConverter",
    "BookFormat",
    "ConversionJob",
    "ConversionOutcome",
    "EpubConverter",
    "Fb2Converter",
    "create_converter",
]
