# src/meshup/lib/mutation.py
"""Idempotent file mutations with timestamped backups."""
import logging
import os
import shutil
import time
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)

BACKUP_INFIX = ".bak."


def backup_file(path: Path, clock: Callable[[], float] = time.time) -> Optional[Path]:
    """
    Copy a regular file aside before it is overwritten.

    Symlinks and missing paths are left alone. The copy keeps metadata and is
    named ``<path>.bak.<epoch seconds>``; a counter is appended if that name
    is already taken.

    Returns:
        Path of the backup, or None if nothing was backed up
    """
    if path.is_symlink() or not path.is_file():
        return None

    backup = path.with_name(f"{path.name}{BACKUP_INFIX}{int(clock())}")
    counter = 1
    while backup.exists() or backup.is_symlink():
        backup = path.with_name(f"{path.name}{BACKUP_INFIX}{int(clock())}.{counter}")
        counter += 1

    shutil.copy2(path, backup)
    logger.info(f"Backed up {path} to {backup}")
    return backup


def link_file(target: Path, link: Path) -> None:
    """Atomically make ``link`` a symlink to ``target``, replacing whatever is there"""
    logger.debug(f"Linking {link} -> {target}")
    link.parent.mkdir(parents=True, exist_ok=True)
    tmp = link.with_name(f".{link.name}.meshup-tmp")
    if tmp.is_symlink() or tmp.exists():
        tmp.unlink()
    os.symlink(target, tmp)
    try:
        os.replace(tmp, link)
    except OSError:
        tmp.unlink()
        raise


def write_dropin(path: Path, content: str) -> bool:
    """
    Write a drop-in configuration file.

    Rewriting identical content is a no-op, so repeated runs neither touch the
    file nor accumulate backups.

    Returns:
        True if the file was (re)written
    """
    if path.is_file() and not path.is_symlink() and path.read_bytes() == content.encode():
        logger.debug(f"Drop-in already current: {path}")
        return False

    path.parent.mkdir(parents=True, exist_ok=True)
    backup_file(path)
    if path.is_symlink():
        path.unlink()
    path.write_bytes(content.encode())
    logger.debug(f"Wrote drop-in {path}")
    return True
