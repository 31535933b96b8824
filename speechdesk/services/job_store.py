"""
Durable batch job storage.

Jobs live in the ``jobs`` table. Each mutation is its own transaction and
touches only the jobs it names, so a submission arriving during a worker
pass is never overwritten.
"""
import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import async_sessionmaker

from speechdesk.config import DATA_DIR
from speechdesk.errors import ValidationError
from speechdesk.models.job import Job, JobStatus
from speechdesk.services.rendering import clean_rows

logger = logging.getLogger(__name__)

# Fields the worker may change after a job is enqueued
MUTABLE_FIELDS = ('status', 'zip', 'completed_at', 'attempts', 'error_message')


class JobStore:
    """Job collection backed by the application database."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def enqueue(self, profile: str, rows: List[dict], email: Optional[str] = None) -> str:
        """Append a queued job and return its id."""
        job = Job(
            id=str(uuid.uuid4()),
            profile=str(profile),
            rows=[{'filename': row['filename'], 'text': row['text']} for row in rows],
            email=email or '',
            status=JobStatus.queued.value,
            created_at=datetime.utcnow(),
            attempts=0,
        )
        async with self._session_factory() as session:
            session.add(job)
            await session.commit()
        logger.info('Queued job %s with %d rows (profile %s)', job.id, len(job.rows), job.profile)
        return job.id

    async def list_all(self) -> List[Job]:
        """All jobs in storage order."""
        async with self._session_factory() as session:
            result = await session.execute(select(Job).order_by(Job.seq))
            return list(result.scalars().all())

    async def list_queued(self) -> List[Job]:
        """Queued jobs in storage order."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Job).where(Job.status == JobStatus.queued.value).order_by(Job.seq)
            )
            return list(result.scalars().all())

    async def get(self, job_id: str) -> Optional[Job]:
        async with self._session_factory() as session:
            result = await session.execute(select(Job).where(Job.id == job_id))
            return result.scalar_one_or_none()

    async def count(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count(Job.seq)))
            return result.scalar()

    async def page(self, limit: int = 50, offset: int = 0) -> List[Job]:
        """Jobs ordered newest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Job).order_by(Job.seq.desc()).limit(limit).offset(offset)
            )
            return list(result.scalars().all())

    async def update(self, job_id: str, **fields) -> bool:
        """
        Atomically update mutable fields of one job.

        Returns:
            False if the job no longer exists
        """
        unknown = set(fields) - set(MUTABLE_FIELDS)
        if unknown:
            raise ValueError(f'Cannot update immutable job fields: {sorted(unknown)}')

        async with self._session_factory() as session:
            result = await session.execute(select(Job).where(Job.id == job_id))
            job = result.scalar_one_or_none()
            if job is None:
                return False
            for key, value in fields.items():
                setattr(job, key, value)
            await session.commit()
            return True

    async def replace_all(self, jobs: Iterable[Job]):
        """
        Write the given jobs in a single transaction.

        Existing jobs get their mutable fields overwritten, unknown ids are
        inserted. Stored jobs missing from the list are left untouched.
        """
        async with self._session_factory() as session:
            for incoming in jobs:
                result = await session.execute(select(Job).where(Job.id == incoming.id))
                stored = result.scalar_one_or_none()
                if stored is None:
                    session.add(Job(
                        id=incoming.id,
                        profile=str(incoming.profile),
                        rows=list(incoming.rows or []),
                        email=incoming.email or '',
                        status=incoming.status or JobStatus.queued.value,
                        created_at=incoming.created_at or datetime.utcnow(),
                        completed_at=incoming.completed_at,
                        zip=incoming.zip,
                        attempts=incoming.attempts or 0,
                        error_message=incoming.error_message,
                    ))
                    # Flush per insert so storage order follows list order
                    await session.flush()
                    continue
                for key in MUTABLE_FIELDS:
                    setattr(stored, key, getattr(incoming, key))
            await session.commit()

    async def delete(self, job_id: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(delete(Job).where(Job.id == job_id))
            await session.commit()
            return result.rowcount > 0

    async def export_document(self) -> List[dict]:
        """The whole collection in queue document form."""
        return [job.to_document() for job in await self.list_all()]

    async def import_document(self, items: List[dict], base_dir: Path = DATA_DIR) -> int:
        """
        Load jobs from queue document form.

        Rows go through the same checks as a new submission. A job whose
        rows fail them is stored as failed, keeping only its valid rows.
        Relative archive paths are resolved against base_dir.

        Returns:
            Number of jobs written
        """
        jobs = []
        for item in items:
            if not isinstance(item, dict):
                logger.warning('Skipping queue entry that is not an object: %r', item)
                continue
            job_id = str(item.get('id') or uuid.uuid4())

            created_at = None
            if item.get('created_at'):
                try:
                    created_at = datetime.strptime(str(item['created_at']), '%Y-%m-%d %H:%M:%S')
                except ValueError:
                    logger.warning('Job %s has unparseable created_at %r', job_id, item['created_at'])

            status = item.get('status') or JobStatus.queued.value
            if status not in {s.value for s in JobStatus}:
                status = JobStatus.queued.value
            error_message = None
            completed_at = None
            try:
                rows = clean_rows(item.get('rows'))
            except ValidationError as e:
                rows = _valid_rows(item.get('rows'))
                status = JobStatus.failed.value
                error_message = f'Rejected on import: {e}'
                completed_at = datetime.utcnow()
                logger.warning('Job %s imported as failed: %s', job_id, e)

            archive = item.get('zip')
            if archive and not Path(archive).is_absolute():
                archive = str(base_dir / archive)

            jobs.append(Job(
                id=job_id,
                profile=str(item.get('profile', '')),
                rows=rows,
                email=str(item.get('email') or ''),
                status=status,
                created_at=created_at,
                completed_at=completed_at,
                zip=archive,
                attempts=0,
                error_message=error_message,
            ))
        await self.replace_all(jobs)
        return len(jobs)

    async def import_queue_file(self, path: Path, base_dir: Path = DATA_DIR) -> int:
        """Migrate a JSON queue file. A missing file imports nothing."""
        if not path.exists():
            return 0
        items = json.loads(path.read_text(encoding='utf-8') or '[]')
        return await self.import_document(items, base_dir=base_dir)


def _valid_rows(rows) -> List[dict]:
    """The subset of rows that pass the submission checks."""
    if not isinstance(rows, list):
        return []
    kept = []
    for row in rows:
        try:
            kept.extend(clean_rows([row]))
        except ValidationError:
            continue
    return kept
