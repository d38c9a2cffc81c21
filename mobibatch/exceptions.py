"""Custom exceptions for mobibatch."""

from pathlib import Path


class MobiBatchError(Exception):
    """Base exception class for mobibatch."""

    pass


class ConversionError(MobiBatchError):
    """Error during a single e-book conversion."""

    step = "conversion"

    def __init__(self, file_path: Path, message: str, cause: Exception | None = None) -> None:
        self.file_path = file_path
        self.cause = cause
        super().__init__(f"{self.step.capitalize()} failed for {file_path}: {message}")


class StagingError(ConversionError):
    """Source file could not be copied or extracted into the workspace."""

    step = "staging"


class TransformError(ConversionError):
    """Structural transform of the staged document failed."""

    step = "transform"


class ExternalToolError(ConversionError):
    """The external compiler could not be launched."""

    step = "compiler"


class PublishError(ConversionError):
    """Compiled file could not be copied to its destination."""

    step = "publish"


class SourceNotFoundError(MobiBatchError):
    """Batch source directory does not exist."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Source directory not found: {path}")


class ConfigurationError(MobiBatchError):
    """Configuration error."""

    pass
