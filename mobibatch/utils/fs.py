"""Filesystem helpers."""

import os
import shutil
import tempfile
from pathlib import Path


def atomic_copy(source: Path, destination: Path) -> None:
    """Copy a file atomically using temp file + rename.

    The copy lands in a temp file next to the destination (same filesystem)
    and is moved into place with ``os.replace``, so an interrupted copy never
    leaves a truncated destination behind that would look converted.

    Args:
        source: File to copy
        destination: Target file path; parent directories are created
    """
    destination = Path(destination)
    parent = destination.parent
    parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(
        suffix=".tmp",
        prefix=f".{destination.name}.",
        dir=parent,
    )
    try:
        with os.fdopen(fd, "wb") as dst, open(source, "rb") as src:
            shutil.copyfileobj(src, dst)
        os.replace(tmp_path, destination)
    except Exception:
        # Clean up temp file on error
        Path(tmp_path).unlink(missing_ok=True)
        raise


def safe_filename(name: str) -> str:
    """Reduce an untrusted name to a single path component.

    Used for FB2 attachment ids, which end up as file names inside the job
    workspace and must not escape it.
    """
    cleaned = Path(name.replace("\\", "/")).name.strip()
    if cleaned in {"", ".", ".."}:
        raise ValueError(f"Unusable file name: {name!r}")
    return cleaned
