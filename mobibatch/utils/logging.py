"""Logging for batch runs.

structlog renders through stdlib logging, so records from every worker
thread end up in the same two handlers: a quiet console handler on stderr
and one plain-text log file per run.
"""

import logging
import re
import sys
import uuid
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from rich.console import Console

if TYPE_CHECKING:
    from structlog.typing import EventDict, WrappedLogger

MAX_VALUE_LENGTH = 500

# Inline FB2 attachments
_BASE64_RUN = re.compile(r"[A-Za-z0-9+/=]{500,}")

_QUIET_LOGGERS = ("asyncio", "anyio")

_console: Console | None = None


class SafeStreamHandler(logging.StreamHandler):
    """Stream handler that replaces characters the stream cannot encode.

    Book titles and paths are frequently non-ASCII while some consoles still
    use a legacy code page.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            encoding = getattr(self.stream, "encoding", None) or "utf-8"
            msg = self.format(record).encode(encoding, errors="replace").decode(encoding)
            self.stream.write(msg + self.terminator)
            self.flush()
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)


def get_console() -> Console:
    """Get the shared stderr console used for CLI messages."""
    global _console
    if _console is None:
        _console = Console(stderr=True)
    return _console


def _shorten_values(
    _logger: "WrappedLogger", _method_name: str, event_dict: "EventDict"
) -> "EventDict":
    """Keep attachment payloads and long kindlegen output out of log lines."""
    for key, value in event_dict.items():
        if isinstance(value, (bytes, bytearray)):
            if len(value) > MAX_VALUE_LENGTH:
                event_dict[key] = f"[{len(value)} bytes]"
        elif isinstance(value, str) and key != "event":
            value = _BASE64_RUN.sub(lambda m: f"[base64: {len(m.group(0))} chars]", value)
            if len(value) > MAX_VALUE_LENGTH:
                value = f"{value[:MAX_VALUE_LENGTH]}... [{len(value)} chars]"
            event_dict[key] = value
    return event_dict


_PRE_CHAIN: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
    _shorten_values,
]


def _formatter(colors: bool) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_PRE_CHAIN,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(
                colors=colors,
                exception_formatter=structlog.dev.plain_traceback,
                pad_event_to=0,
                pad_level=False,
            ),
        ],
    )


def _to_level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def setup_logging(
    level: str = "INFO",
    log_file: str | Path | None = None,
    console_level: str | None = None,
) -> None:
    """Configure structlog for the application.

    Args:
        level: Threshold for the log file, and for the console unless
               ``console_level`` is given
        log_file: Optional path of a plain-text log file
        console_level: Optional console threshold
    """
    file_level = _to_level(level)
    stderr_level = _to_level(console_level) if console_level else file_level
    root_level = min(file_level, stderr_level) if log_file else stderr_level

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(root_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(root_level, logging.WARNING))

    console_handler = SafeStreamHandler(sys.stderr)
    console_handler.setLevel(stderr_level)
    console_handler.setFormatter(_formatter(colors=True))
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(_formatter(colors=False))
        root_logger.addHandler(file_handler)

    structlog.configure(
        processors=[*_PRE_CHAIN, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound to ``name``."""
    return structlog.get_logger(name)


def create_task_log_path(log_dir: str | Path, prefix: str = "batch") -> tuple[str, Path]:
    """Create a unique log file path for one batch run.

    Returns:
        Tuple of (run_id, log_file_path), e.g.
        ``.logs/convert_20260109_143052_a1b2c3d4.log``
    """
    log_dir_path = Path(log_dir)
    log_dir_path.mkdir(parents=True, exist_ok=True)

    run_id = uuid.uuid4().hex[:8]
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return run_id, log_dir_path / f"{prefix}_{timestamp}_{run_id}.log"


def setup_task_logging(
    log_dir: str | Path,
    prefix: str = "batch",
    level: str = "INFO",
    verbose: bool = False,
) -> tuple[str, Path]:
    """Configure logging for one batch run.

    The console only shows warnings unless ``verbose`` is set, so log lines
    do not interleave with the progress report. The run's own log file
    records everything at ``level`` and above.

    Returns:
        Tuple of (run_id, log_file_path)
    """
    run_id, log_path = create_task_log_path(log_dir, prefix)
    setup_logging(
        level=level,
        log_file=log_path,
        console_level="DEBUG" if verbose else "WARNING",
    )
    return run_id, log_path
