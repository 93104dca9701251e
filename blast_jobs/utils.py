"""Utility helpers shared across the tracker."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Optional, Union


def atomic_write(path: Union[str, Path], data: Union[str, bytes]) -> None:
    """Write `data` to `path` so readers only ever see the old or the new file.

    The content goes to a temporary file in the same directory, is synced, and
    then renamed over the target.
    """
    path = Path(path)
    if isinstance(data, str):
        data = data.encode("utf-8")

    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except Exception:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def read_input(source: Optional[str]) -> str:
    """Read raw text from a file path, or from stdin for `-` / None.

    The content is returned untouched: no stripping and no newline translation,
    since stored sequences are compared byte for byte.
    """
    if source in (None, "-"):
        return sys.stdin.buffer.read().decode("utf-8")
    return Path(source).read_bytes().decode("utf-8")
