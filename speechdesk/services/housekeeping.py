"""
Retention sweep for generated audio and archives.
"""
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass
class CleanupReport:
    """Summary stats returned by a sweep."""

    deleted_files: int = 0
    deleted_bytes: int = 0
    kept_files: int = 0


def _is_under(path: Path, root: Path) -> bool:
    return path == root or root in path.parents


def sweep_expired(
    roots: Iterable[Path],
    ttl_hours: float,
    protected: Iterable[Path] = (),
    now: Optional[float] = None,
) -> CleanupReport:
    """
    Delete files older than ttl_hours under each root.

    Anything inside a protected directory is kept regardless of age.
    Directories emptied by the sweep are removed; the roots themselves stay.
    """
    report = CleanupReport()
    cutoff = (now if now is not None else time.time()) - ttl_hours * 3600
    protected_dirs = [Path(p).resolve() for p in protected]

    for root in roots:
        root = Path(root)
        if not root.is_dir():
            continue
        resolved_root = root.resolve()

        # Directories that lost content during this sweep
        emptied = set()

        for dirpath, dirnames, filenames in os.walk(resolved_root, topdown=False):
            current = Path(dirpath)
            if any(_is_under(current, p) for p in protected_dirs):
                report.kept_files += len(filenames)
                continue

            try:
                dir_mtime = current.stat().st_mtime
            except FileNotFoundError:
                continue

            for name in filenames:
                path = current / name
                try:
                    stat = path.stat()
                except FileNotFoundError:
                    continue
                if stat.st_mtime >= cutoff:
                    report.kept_files += 1
                    continue
                try:
                    path.unlink()
                except OSError as e:
                    logger.warning('Could not delete expired file %s: %s', path, e)
                    report.kept_files += 1
                    continue
                report.deleted_files += 1
                report.deleted_bytes += stat.st_size
                emptied.add(current)

            # Fresh empty directories may belong to a run that is just starting
            if current != resolved_root and (current in emptied or dir_mtime < cutoff):
                try:
                    current.rmdir()
                except OSError:
                    # Not empty
                    continue
                emptied.add(current.parent)

    if report.deleted_files:
        logger.info(
            'Retention sweep removed %d files (%d bytes)',
            report.deleted_files,
            report.deleted_bytes,
        )
    return report
