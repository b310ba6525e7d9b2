"""
Atomic filesystem writes.

Files are written to a temp file in the destination directory, fsynced and
renamed over the target. Directories are staged beside the target and
swapped in with renames. Readers observe either the old or the new state.
"""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, content: str) -> None:
    """Atomically replace `path` with `content`, creating parent dirs if needed.

    A symlinked `path` is written through: the link stays and its target
    is replaced.
    """
    if path.is_symlink():
        path = path.resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp", prefix=f".{path.name}-")
    closed = False
    try:
        os.write(fd, content.encode("utf-8"))
        os.fsync(fd)
        os.close(fd)
        closed = True
        if path.exists():
            shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    except BaseException:
        if not closed:
            os.close(fd)
        if Path(tmp_path).exists():
            os.unlink(tmp_path)
        raise


def atomic_replace_dir(target: Path, populate: Callable[[Path], None]) -> None:
    """Atomically replace directory `target` with one built by `populate`.

    `populate` receives an empty staging directory next to `target`. If it
    raises, the staging directory is removed and `target` is left untouched.
    An existing `target` is moved aside, the staged tree renamed into place,
    and the old tree deleted only after the swap succeeded.
    """
    parent = target.parent
    parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(dir=parent, prefix=f".{target.name}-staging-"))
    backup = None
    try:
        populate(staging)
        if target.exists() or target.is_symlink():
            backup = Path(tempfile.mkdtemp(dir=parent, prefix=f".{target.name}-old-"))
            os.rmdir(backup)
            os.replace(target, backup)
        try:
            os.replace(staging, target)
        except BaseException:
            if backup is not None:
                os.replace(backup, target)
                backup = None
            raise
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise

    if backup is not None:
        _remove_path(backup)


def remove_path(path: Path) -> None:
    """Remove a file or directory tree if present.

    Directory trees are renamed aside first, so a reader never sees a
    partially deleted tree at `path`.
    """
    if path.is_dir() and not path.is_symlink():
        trash = Path(tempfile.mkdtemp(dir=path.parent, prefix=f".{path.name}-removed-"))
        os.rmdir(trash)
        os.replace(path, trash)
        _remove_path(trash)
    elif path.exists() or path.is_symlink():
        path.unlink()


def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path, ignore_errors=True)
    else:
        path.unlink(missing_ok=True)
    logger.debug(f"Removed {path}")
