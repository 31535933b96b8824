"""
Batch intake: validation, queue submission and real-time workspace creation.
"""
import csv
import io
import json
import logging
import secrets
from pathlib import Path
from typing import Any, List, Optional

from speechdesk.errors import ValidationError, StorageError
from speechdesk.services.job_store import JobStore
from speechdesk.services.rendering import clean_rows

logger = logging.getLogger(__name__)

METADATA_FILENAME = 'metadata.json'


def validate_submission(profile: Any, rows: Any) -> tuple:
    """
    Check a (profile, rows) submission.

    Returns:
        (profile as string, list of {filename, text} rows)

    Raises:
        ValidationError: nothing is accepted when any part is invalid
    """
    if profile is not None and (isinstance(profile, bool) or not isinstance(profile, (str, int))):
        raise ValidationError('Invalid request: invalid profile')
    profile_ref = '' if profile is None else str(profile).strip()
    if not profile_ref:
        raise ValidationError('Invalid request: missing profile')

    try:
        cleaned = clean_rows(rows)
    except ValidationError as e:
        raise ValidationError(f'Invalid request: {e}') from e

    return profile_ref, cleaned


def parse_csv(content: bytes) -> List[dict]:
    """
    Parse CSV rows of filename,text.

    Lines with fewer than two columns are ignored; extra columns are dropped.
    """
    text = content.decode('utf-8-sig', errors='replace')
    rows = []
    for record in csv.reader(io.StringIO(text)):
        if len(record) >= 2:
            rows.append({'filename': record[0].strip(), 'text': record[1].strip()})
    return rows


class BatchIntake:
    """Accepts batch submissions for the queue and real-time paths."""

    def __init__(self, job_store: JobStore, realtime_dir: Path):
        self.job_store = job_store
        self.realtime_dir = realtime_dir

    async def submit(self, profile: Any, rows: Any, email: Optional[str] = None) -> str:
        """Validate and enqueue a job. Never calls the speech API."""
        profile_ref, cleaned = validate_submission(profile, rows)
        return await self.job_store.enqueue(profile_ref, cleaned, email=email)

    def begin_workspace(self, profile: Any, rows: Any, audio_format: Optional[str] = None) -> str:
        """
        Validate and allocate a real-time workspace.

        The request is saved as metadata.json inside the workspace; uploads
        use its audio_format for their file extension.
        """
        profile_ref, cleaned = validate_submission(profile, rows)
        workspace_id = f'rt-{secrets.token_hex(8)}'
        workspace = self.realtime_dir / workspace_id
        metadata = {
            'profile': profile_ref,
            'audio_format': audio_format,
            'rows': cleaned,
        }
        try:
            workspace.mkdir(parents=True, exist_ok=False)
            (workspace / METADATA_FILENAME).write_text(
                json.dumps(metadata, indent=2), encoding='utf-8'
            )
        except OSError as e:
            raise StorageError(f'Unable to create workspace: {e}') from e

        logger.info('Created real-time workspace %s with %d rows', workspace_id, len(cleaned))
        return workspace_id
