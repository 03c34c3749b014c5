"""File reading and atomic writing utilities.

Every rewrite of a tracked source file goes through ``atomic_write_text`` so a
crash mid-write never leaves a truncated file behind.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def read_text(path: Path) -> str:
    """Read a UTF-8 file with its line endings left as they are."""
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def read_text_or_empty(path: Path) -> str:
    """Read a file, treating a missing file as empty content."""
    if not path.exists():
        return ""
    return read_text(path)


def atomic_write_text(path: Path, text: str) -> None:
    """Write text atomically (write temp, rename).

    Args:
        path: Target path
        text: Full file content

    Raises:
        OSError: If the temp file cannot be created or the rename fails
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    # Same directory so the rename stays on one filesystem
    temp_fd, temp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
    )

    try:
        with os.fdopen(temp_fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())

        if path.exists():
            os.chmod(temp_path, path.stat().st_mode & 0o777)
        os.replace(temp_path, path)
    except BaseException:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


def dump_json(data: dict[str, Any]) -> str:
    """Serialize JSON the way package manifests are formatted (2-space, newline)."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"
