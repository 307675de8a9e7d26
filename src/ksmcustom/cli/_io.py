"""File output helpers for the ksmcustom CLI.

The metrics configuration and its rule file are only useful together, so
they are written as one set: every file is staged next to its target
first, and targets are only replaced once all staging succeeded.  A
failure while replacing restores the files already replaced.
"""

from __future__ import annotations

import hashlib
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Sequence


def _stage(path: Path, content: str) -> Path:
    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", text=True)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
    except BaseException:
        os.unlink(temp_path)
        raise
    if path.is_file():
        shutil.copymode(path, temp_path)
    return Path(temp_path)


def write_artifact_set(files: Sequence[tuple[Path, str]], backup: bool = False) -> None:
    """Write ``(path, content)`` pairs so that either all or none are updated.

    Args:
        files: Target paths and their new content.
        backup: Keep a ``.bak`` copy of every file that is overwritten.

    Raises:
        OSError: If any file cannot be written.  Targets are left as they
            were and no staged file remains.
    """
    staged: list[tuple[Path, Path]] = []
    try:
        for path, content in files:
            path.parent.mkdir(parents=True, exist_ok=True)
            if path.is_dir():
                raise IsADirectoryError(f"Output path is a directory: {path}")
            staged.append((path, _stage(path, content)))
    except BaseException:
        for _, temp_path in staged:
            temp_path.unlink(missing_ok=True)
        raise

    previous: dict[Path, Optional[bytes]] = {
        path: path.read_bytes() if path.is_file() else None for path, _ in staged
    }
    if backup:
        for path, old in previous.items():
            if old is not None:
                shutil.copy2(path, path.with_suffix(path.suffix + ".bak"))

    replaced: list[Path] = []
    try:
        for path, temp_path in staged:
            os.replace(temp_path, path)
            replaced.append(path)
    except BaseException:
        for _, temp_path in staged:
            temp_path.unlink(missing_ok=True)
        for path in replaced:
            old = previous[path]
            if old is None:
                path.unlink(missing_ok=True)
            else:
                path.write_bytes(old)
        raise


def sha256_checksum(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()
