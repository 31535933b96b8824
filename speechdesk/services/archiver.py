"""
Zip archive creation for job output trees and real-time manifests.
"""
import asyncio
import functools
import logging
import os
import secrets
import tempfile
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Union

from speechdesk.config import ARCHIVE_TIMEOUT
from speechdesk.errors import ArchiveError
from speechdesk.services.intake import METADATA_FILENAME

logger = logging.getLogger(__name__)


def _is_partial(path: Path) -> bool:
    return path.name.startswith('.') and path.name.endswith('.part')


def _write_archive(archive_path: Path, entries: Iterable[tuple]) -> Path:
    """
    Write (source, arcname) entries to archive_path through a temp file.

    Sources that disappear before they are added are skipped.
    """
    tmp_name = None
    try:
        archive_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=archive_path.parent, prefix='.', suffix='.part')
        os.close(fd)
        with zipfile.ZipFile(tmp_name, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
            seen = set()
            for source, arcname in entries:
                if arcname in seen:
                    continue
                try:
                    archive.write(source, arcname)
                except FileNotFoundError:
                    logger.warning('Skipping %s: file vanished before archiving', source)
                    continue
                seen.add(arcname)
        os.replace(tmp_name, archive_path)
    except (OSError, zipfile.BadZipFile) as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise ArchiveError(f'Unable to create archive {archive_path}: {e}') from e
    return archive_path


def archive_directory(root: Path, archive_path: Path) -> Path:
    """
    Archive every file under root, named relative to root.

    Raises:
        ArchiveError: the archive container could not be written
    """
    entries = []
    if root.is_dir():
        for path in sorted(root.rglob('*')):
            if path.is_file() and not _is_partial(path):
                entries.append((path, path.relative_to(root).as_posix()))
    return _write_archive(archive_path, entries)


def unique_archive_name(prefix: str = 'tts_batch') -> str:
    """Archive file name unique per invocation."""
    stamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    return f'{prefix}_{stamp}_{secrets.token_hex(4)}.zip'


def archive_files(
    files: Iterable[Union[str, Path]],
    base_dir: Path,
    strip_root: Path,
    export_dir: Path,
) -> Path:
    """
    Archive an explicit list of workspace files.

    Args:
        files: Paths relative to base_dir, as returned by the uploader
        base_dir: Directory the listed paths are relative to
        strip_root: Directory holding workspaces; names inside the archive
            are relative to each file's workspace directory
        export_dir: Directory receiving the archive

    Files that are missing, or that lie outside strip_root, are skipped.

    Raises:
        ArchiveError: the archive container could not be written
    """
    root = strip_root.resolve()
    exports = export_dir.resolve()
    entries = []
    for name in files:
        source = (base_dir / name).resolve()
        if root not in source.parents or exports in source.parents:
            logger.warning('Skipping %s: outside the real-time workspace root', name)
            continue
        if not source.is_file():
            logger.info('Skipping %s: file not found', name)
            continue
        relative = source.relative_to(root).parts
        if len(relative) < 2:
            continue
        if relative[1:] == (METADATA_FILENAME,):
            logger.warning('Skipping %s: workspace metadata is not exported', name)
            continue
        entries.append((source, '/'.join(relative[1:])))

    return _write_archive(export_dir / unique_archive_name(), entries)


async def _run_with_timeout(func, timeout: Optional[float]):
    loop = asyncio.get_running_loop()
    try:
        return await asyncio.wait_for(
            loop.run_in_executor(None, func),
            timeout=timeout,
        )
    except asyncio.TimeoutError as e:
        raise ArchiveError(f'Archive creation timed out after {timeout}s') from e


async def archive_directory_async(
    root: Path, archive_path: Path, timeout: Optional[float] = ARCHIVE_TIMEOUT
) -> Path:
    """Run archive_directory in a worker thread."""
    return await _run_with_timeout(
        functools.partial(archive_directory, root, archive_path), timeout
    )


async def archive_files_async(
    files: Iterable[Union[str, Path]],
    base_dir: Path,
    strip_root: Path,
    export_dir: Path,
    timeout: Optional[float] = ARCHIVE_TIMEOUT,
) -> Path:
    """Run archive_files in a worker thread."""
    return await _run_with_timeout(
        functools.partial(archive_files, list(files), base_dir, strip_root, export_dir), timeout
    )
