"""Move and copy single files inside the workspace."""

from __future__ import annotations

__all__ = ["TransferResult", "copy_path", "move_path"]

import logging
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from steady_hands.lib.errors import (
    DangerousFileError,
    DestinationExistsError,
    IgnoredPathError,
)
from steady_hands.lib.meta.tools.filesystem import PathGuard, is_dangerous_path
from steady_hands.lib.meta.tools.ignore import IgnoreFilter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferResult:
    """Outcome of a move or copy."""

    source: str
    destination: str
    overwrote: bool


def _check_endpoints(
    guard: PathGuard,
    ignore: IgnoreFilter,
    source: str,
    destination: str,
) -> tuple[Path, Path]:
    src = guard.resolve(source)
    dst = guard.resolve(destination)

    if is_dangerous_path(guard.relative(src)) or is_dangerous_path(guard.relative(dst)):
        raise DangerousFileError(f"{source} → {destination}")
    if ignore.is_ignored(src) or ignore.is_ignored(dst):
        raise IgnoredPathError(f"{source} → {destination}")
    if not src.exists():
        raise FileNotFoundError(f"Source file not found: {source}")
    return src, dst


def _check_destination(dst: Path, destination: str, verb: str, overwrite: bool) -> bool:
    if not dst.exists():
        return False
    if overwrite:
        return True
    stats = dst.stat()
    size_kb = round(stats.st_size / 1024, 2)
    modified = datetime.fromtimestamp(stats.st_mtime).date().isoformat()
    msg = (
        f"Destination already exists: {destination} ({size_kb}KB, modified "
        f"{modified}). {verb} operation would overwrite this file. Use "
        "overwrite=true to force overwrite or choose a different destination path."
    )
    raise DestinationExistsError(msg)


def move_path(
    guard: PathGuard,
    ignore: IgnoreFilter,
    source: str,
    destination: str,
    *,
    overwrite: bool = False,
) -> TransferResult:
    """Move ``source`` to ``destination``, creating parent directories.

    ``shutil.move`` falls back to copy-and-delete across filesystems.
    """
    src, dst = _check_endpoints(guard, ignore, source, destination)
    existed = _check_destination(dst, destination, "Move", overwrite)
    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(src), str(dst))
    logger.info("Moved %s → %s", guard.relative(src), guard.relative(dst))
    return TransferResult(source=source, destination=destination, overwrote=existed)


def copy_path(
    guard: PathGuard,
    ignore: IgnoreFilter,
    source: str,
    destination: str,
    *,
    overwrite: bool = False,
) -> TransferResult:
    """Copy a single file, preserving timestamps and permission bits."""
    src, dst = _check_endpoints(guard, ignore, source, destination)
    if src.is_dir():
        msg = "Directory copying is not supported. Copy single files only."
        raise IsADirectoryError(msg)
    existed = _check_destination(dst, destination, "Copy", overwrite)
    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dst)
    logger.info("Copied %s → %s", guard.relative(src), guard.relative(dst))
    return TransferResult(source=source, destination=destination, overwrote=existed)
