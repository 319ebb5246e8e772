"""File helpers: atomic writes and collision-free artifact names."""

from __future__ import annotations

import os
import uuid
from datetime import datetime, timezone
from pathlib import Path


def write_atomically(path: Path, content: str | bytes) -> None:
    """Write content via temp file + fsync + os.replace.

    Readers in other processes see either the old or the new file, never a
    partial write.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex[:6]}.tmp")

    try:
        if isinstance(content, bytes):
            with open(tmp, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
        else:
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            tmp.unlink(missing_ok=True)
        except OSError:
            pass
        raise


def unique_filename(prefix: str, extension: str) -> str:
    """Timestamp + random suffix, safe across concurrent callers."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")
    return f"{prefix}_{stamp}_{uuid.uuid4().hex[:8]}.{extension.lstrip('.')}"


def write_placeholder(directory: Path, prefix: str, extension: str) -> Path:
    """Create an empty artifact used as a degraded fallback output."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / unique_filename(prefix, extension)
    path.write_bytes(b"")
    return path
