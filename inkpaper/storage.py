"""
Filesystem Storage
==================
Export destinations and safe writes.

Every export goes to a new, uniquely named file:

    <output_dir>/
    ├── question_paper_<epoch-ms>.doc
    └── question_paper_<epoch-ms>.pdf

Files are written to a temporary sibling first and renamed into place, so an
interrupted write never leaves a partial file under an export name and never
touches an earlier export.
"""

from __future__ import annotations

import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Optional, Union

from .errors import FileWriteFailed

logger = logging.getLogger(__name__)

EXPORT_PREFIX = "question_paper"


def init_storage(output_dir: Union[str, Path]) -> Path:
    """Ensure the export directory exists."""
    path = Path(output_dir)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileWriteFailed(path, e) from e
    logger.debug(f"Storage initialized: {path}")
    return path


def unique_export_path(
    output_dir: Union[str, Path],
    extension: str,
    timestamp_ms: Optional[int] = None,
) -> Path:
    """
    Build a fresh export path from the current time in milliseconds.
    A numeric suffix is added if that name is already taken.
    """
    output_dir = Path(output_dir)
    stamp = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    extension = extension.lstrip(".")

    candidate = output_dir / f"{EXPORT_PREFIX}_{stamp}.{extension}"
    counter = 1
    while candidate.exists():
        candidate = output_dir / f"{EXPORT_PREFIX}_{stamp}_{counter}.{extension}"
        counter += 1
    return candidate


def write_atomic(path: Union[str, Path], data: Union[str, bytes]) -> int:
    """
    Write `data` to `path` through a temporary file in the same directory.
    Text is encoded as UTF-8.

    Returns:
        Number of bytes written.

    Raises:
        FileWriteFailed: On any filesystem error. The target is untouched.
    """
    path = Path(path)
    payload = data.encode("utf-8") if isinstance(data, str) else data

    tmp_path = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
        tmp_path = None
    except OSError as e:
        logger.error(f"Failed to write {path}: {e}")
        raise FileWriteFailed(path, e) from e
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)

    logger.info(f"Saved export: {path}")
    return len(payload)
