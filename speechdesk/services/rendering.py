"""
Row rendering shared by the batch worker and the real-time path.

A row's output lives at ``<root>/<filename>.<ext>``, one directory level per
"/" in the filename.
"""
import os
import tempfile
from pathlib import Path, PurePosixPath
from typing import Any, List, Mapping

from speechdesk.errors import StorageError, ValidationError
from speechdesk.services.speech_client import SpeechClient, SynthesisParams


def safe_relative_path(name: str) -> PurePosixPath:
    """
    Validate a caller supplied relative name.

    Empty and "." segments are dropped. Absolute paths, backslashes,
    NUL bytes and ".." segments are rejected.
    """
    raw = (name or '').strip()
    if not raw:
        raise ValidationError('Filename is empty')
    if '\\' in raw or '\x00' in raw:
        raise ValidationError(f'Invalid filename: {name}')
    if raw.startswith('/'):
        raise ValidationError(f'Absolute filenames are not allowed: {name}')

    parts = [part for part in raw.split('/') if part not in ('', '.')]
    if not parts:
        raise ValidationError(f'Invalid filename: {name}')
    if any(part == '..' for part in parts):
        raise ValidationError(f'Parent directory references are not allowed: {name}')
    return PurePosixPath(*parts)


def clean_rows(rows: Any) -> List[dict]:
    """
    Check a list of {filename, text} rows.

    Returns:
        Rows with trimmed values and no extra keys

    Raises:
        ValidationError: on the first row that cannot be rendered
    """
    if not isinstance(rows, list) or not rows:
        raise ValidationError('no rows')

    cleaned = []
    for index, row in enumerate(rows, start=1):
        if not isinstance(row, Mapping):
            raise ValidationError(f'row {index} is not an object')
        filename = str(row.get('filename') or '').strip()
        text = str(row.get('text') or '').strip()
        if not text:
            raise ValidationError(f'row {index} has no text')
        try:
            safe_relative_path(filename)
        except ValidationError as e:
            raise ValidationError(f'row {index}: {e}') from e
        cleaned.append({'filename': filename, 'text': text})
    return cleaned


def output_path(root: Path, name: str, extension: str) -> Path:
    """Build the output path for a row, guaranteed to stay under root."""
    relative = safe_relative_path(name)
    target = root.joinpath(*relative.parts[:-1], f'{relative.parts[-1]}.{extension}')

    resolved_root = root.resolve()
    resolved = target.resolve()
    if resolved != resolved_root and resolved_root not in resolved.parents:
        raise ValidationError(f'Filename escapes output directory: {name}')
    return target


def write_bytes_atomic(path: Path, data: bytes) -> Path:
    """
    Write data to path through a temp file and rename.

    Raises:
        StorageError: directory creation, write or rename failed
    """
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            dir=path.parent, prefix='.', suffix='.part', delete=False
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(data)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise StorageError(f'Failed to write {path}: {e}') from e
    return path


async def render_row(
    root: Path,
    row: Mapping[str, str],
    params: SynthesisParams,
    client: SpeechClient,
) -> Path:
    """
    Synthesize one row and store it under root.

    Raises:
        ValidationError: row is not an object, unsafe filename or empty text
        SynthesisError: upstream call failed
        StorageError: audio could not be written
    """
    if not isinstance(row, Mapping):
        raise ValidationError(f'Row is not an object: {row!r}')
    target = output_path(root, row.get('filename', ''), params.extension)
    audio = await client.synthesize(row.get('text', ''), params)
    return write_bytes_atomic(target, audio)
