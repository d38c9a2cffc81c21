"""Tests for custom exceptions."""

from pathlib import Path

import pytest

from mobibatch.exceptions import (
    ConfigurationError,
    ConversionError,
    ExternalToolError,
    MobiBatchError,
    PublishError,
    SourceNotFoundError,
    StagingError,
    TransformError,
)


class TestConversionErrors:
    """Tests for per-job conversion errors."""

    @pytest.mark.parametrize(
        "error_cls,prefix",
        [
            (ConversionError, "Conversion failed"),
            (StagingError, "Staging failed"),
            (TransformError, "Transform failed"),
            (ExternalToolError, "Compiler failed"),
            (PublishError, "Publish failed"),
        ],
    )
    def test_message_names_step(self, error_cls, prefix):
        """Test the message names the failing step and the file."""
        path = Path("/books/novel.epub")

        error = error_cls(path, "disk full")

        assert str(error) == f"{prefix} for {path}: disk full"
        assert error.file_path == path
        assert isinstance(error, ConversionError)
        assert isinstance(error, MobiBatchError)

    def test_cause_kept(self):
        """Test the underlying exception is available."""
        cause = OSError("no space left")

        error = PublishError(Path("a.mobi"), str(cause), cause=cause)

        assert error.cause is cause


class TestBatchErrors:
    """Tests for batch-level errors."""

    def test_source_not_found(self):
        """Test the missing directory is named."""
        error = SourceNotFoundError(Path("/books"))

        assert error.path == Path("/books")
        assert "Source directory not found" in str(error)
        assert isinstance(error, MobiBatchError)

    def test_configuration_error(self):
        """Test configuration errors share the base class."""
        with pytest.raises(MobiBatchError):
            raise ConfigurationError("bad config")
