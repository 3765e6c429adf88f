"""Advisory inter-process locks and atomic file replacement.

The cache directory is shared by every jx process on a machine and the
lock file may be read while it is being rewritten. Writers therefore
always write to a temporary file in the destination directory and move it
into place with ``os.replace``, so readers see either the old or the new
content and never a partial file. Writers that must not interleave take an
``flock`` on a sibling ``.lock`` file. On platforms without ``fcntl`` the
lock degrades to a no-op; the atomic rename still holds.
"""

from __future__ import annotations

import logging
import os
import sys
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

if sys.platform != "win32":
    import fcntl

logger = logging.getLogger(__name__)


@contextmanager
def advisory_lock(path: Path) -> Iterator[None]:
    """Hold an exclusive advisory lock on *path* for the duration of the block.

    The lock file is created if needed and left in place afterwards;
    deleting it would race with other processes waiting on it.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a+b") as handle:
        if sys.platform != "win32":
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            if sys.platform != "win32":
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


def temp_path_for(path: Path) -> Path:
    """Create an empty temporary file next to *path* and return its path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    os.close(fd)
    return Path(name)


def atomic_write(path: Path, data: bytes) -> None:
    """Write *data* to *path* via a temporary file and ``os.replace``.

    The temporary file is removed if anything fails before the rename.
    """
    tmp = temp_path_for(path)
    try:
        with open(tmp, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
