"""
Background batch worker for queued TTS jobs.
"""
import asyncio
import functools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import async_sessionmaker

from speechdesk.config import (
    JOBS_OUTPUT_DIR,
    REALTIME_DIR,
    ARCHIVE_TIMEOUT,
    WORKER_POLL_INTERVAL,
    MAX_PROFILE_ATTEMPTS,
    RETENTION_HOURS,
)
from speechdesk.database import async_session_factory
from speechdesk.errors import (
    ArchiveError,
    ProfileResolutionError,
    StorageError,
    SynthesisError,
    ValidationError,
)
from speechdesk.models.job import Job, JobStatus
from speechdesk.services.archiver import archive_directory_async
from speechdesk.services.housekeeping import sweep_expired
from speechdesk.services.job_store import JobStore
from speechdesk.services.notifier import Notifier, get_notifier, download_url
from speechdesk.services.profiles import resolve_profile, profile_params
from speechdesk.services.rendering import render_row
from speechdesk.services.speech_client import SpeechClient, get_speech_client

logger = logging.getLogger(__name__)


@dataclass
class PassReport:
    """Outcome of one worker pass, by job id."""
    done: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    stalled: List[str] = field(default_factory=list)
    retry: List[str] = field(default_factory=list)
    skipped_rows: int = 0


class BatchWorker:
    """
    Drains queued jobs from the job store.

    A pass walks every queued job in storage order and renders its rows one
    at a time. Only one pass runs at a time. Jobs that are not queued are
    never touched.

    Stopping lets the current row finish and starts no new rows; the
    interrupted job stays queued and is redone in full on the next pass.
    """

    def __init__(
        self,
        job_store: Optional[JobStore] = None,
        speech_client: Optional[SpeechClient] = None,
        session_factory: Optional[async_sessionmaker] = None,
        output_dir: Path = JOBS_OUTPUT_DIR,
        notifier: Optional[Notifier] = None,
        sweep_roots: Optional[Sequence[Path]] = None,
        retention_hours: float = RETENTION_HOURS,
        poll_interval: float = WORKER_POLL_INTERVAL,
        max_profile_attempts: int = MAX_PROFILE_ATTEMPTS,
        archive_timeout: Optional[float] = ARCHIVE_TIMEOUT,
    ):
        self.session_factory = session_factory or async_session_factory
        self.job_store = job_store or JobStore(self.session_factory)
        self._speech_client = speech_client
        self._notifier = notifier
        self.output_dir = output_dir
        self.sweep_roots = list(sweep_roots) if sweep_roots is not None else [output_dir, REALTIME_DIR]
        self.retention_hours = retention_hours
        self.poll_interval = poll_interval
        self.max_profile_attempts = max_profile_attempts
        self.archive_timeout = archive_timeout

        self._lock = asyncio.Lock()
        self._wake = asyncio.Event()
        self._running = False
        self._stopping = False
        self._task: Optional[asyncio.Task] = None

    @property
    def speech_client(self) -> SpeechClient:
        return self._speech_client or get_speech_client()

    @property
    def notifier(self) -> Notifier:
        return self._notifier or get_notifier()

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self):
        """Start the background polling loop."""
        self._running = True
        self._stopping = False
        self._task = asyncio.create_task(self._run_loop())

    async def stop(self, timeout: float = 30.0):
        """Stop after the row in progress, cancelling if it takes too long."""
        self._running = False
        self._stopping = True
        self._wake.set()
        if self._task:
            try:
                await asyncio.wait_for(self._task, timeout=timeout)
            except asyncio.TimeoutError:
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
            self._task = None

    def trigger(self):
        """Wake the loop so a pass starts without waiting for the interval."""
        self._wake.set()

    async def _run_loop(self):
        """Main loop - one pass per interval or trigger."""
        while self._running:
            try:
                await self.run_pass()
            except Exception:
                # Log but don't crash the loop
                logger.exception('Error in batch worker pass')

            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass
            self._wake.clear()

    async def run_pass(self) -> PassReport:
        """Process every queued job once."""
        report = PassReport()
        async with self._lock:
            if self.retention_hours > 0:
                await self._sweep()

            jobs = await self.job_store.list_queued()
            if jobs:
                logger.info('Worker pass: %d queued jobs', len(jobs))

            for job in jobs:
                if self._stopping:
                    break
                try:
                    await self._process_job(job, report)
                except Exception:
                    # One broken job must not stall the others
                    logger.exception('Error processing job %s', job.id)
                    report.retry.append(job.id)
        return report

    async def _sweep(self):
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                functools.partial(sweep_expired, self.sweep_roots, self.retention_hours),
            )
        except OSError as e:
            logger.warning('Retention sweep failed: %s', e)

    async def _process_job(self, job: Job, report: PassReport):
        """Process a single queued job."""
        logger.info('Processing job %s (%d rows)', job.id, len(job.rows or []))

        try:
            async with self.session_factory() as session:
                profile = await resolve_profile(session, job.profile)
                params = profile_params(profile)
        except ProfileResolutionError as e:
            await self._record_unresolved_profile(job, e, report)
            return

        job_root = self.output_dir / job.id
        try:
            job_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f'Cannot create output directory for job {job.id}: {e}') from e

        client = self.speech_client
        for index, row in enumerate(job.rows or []):
            name = row.get('filename') if isinstance(row, dict) else None
            if self._stopping:
                logger.info('Stop requested; job %s left queued at row %d', job.id, index)
                report.retry.append(job.id)
                return
            try:
                await render_row(job_root, row, params, client)
            except SynthesisError as e:
                report.skipped_rows += 1
                logger.error(
                    'Job %s row %d (%s) failed: HTTP %s %s',
                    job.id, index, name, e.status_code, e.body,
                )
            except (ValidationError, StorageError) as e:
                report.skipped_rows += 1
                logger.error('Job %s row %d (%s) skipped: %s', job.id, index, name, e)

        try:
            archive_path = await archive_directory_async(
                job_root, self.output_dir / f'{job.id}.zip', timeout=self.archive_timeout
            )
        except ArchiveError as e:
            logger.error('Job %s left queued, archive failed: %s', job.id, e)
            report.retry.append(job.id)
            return

        job.status = JobStatus.done.value
        job.zip = str(archive_path)
        job.completed_at = datetime.utcnow()
        await self.job_store.update(
            job.id,
            status=job.status,
            zip=job.zip,
            completed_at=job.completed_at,
        )
        report.done.append(job.id)
        logger.info('Job %s done, archive at %s', job.id, archive_path)

        if job.email:
            await self._notify(job, f'Your TTS job is ready. Download: {download_url(job)}')

    async def _record_unresolved_profile(self, job: Job, error: ProfileResolutionError, report: PassReport):
        attempts = (job.attempts or 0) + 1
        if attempts < self.max_profile_attempts:
            await self.job_store.update(job.id, attempts=attempts)
            report.stalled.append(job.id)
            logger.warning(
                'Job %s: %s (attempt %d of %d)', job.id, error, attempts, self.max_profile_attempts
            )
            return

        job.status = JobStatus.failed.value
        job.error_message = str(error)
        await self.job_store.update(
            job.id,
            status=job.status,
            attempts=attempts,
            error_message=job.error_message,
            completed_at=datetime.utcnow(),
        )
        report.failed.append(job.id)
        logger.error('Job %s failed after %d attempts: %s', job.id, attempts, error)

        if job.email:
            await self._notify(job, f'Your TTS job could not be processed: {error}')

    async def _notify(self, job: Job, message: str):
        """Best-effort notice; failures never change job status."""
        try:
            await self.notifier.notify(job.email, job, message)
        except Exception:
            logger.exception('Failed to notify %s about job %s', job.email, job.id)


# Singleton instance
_batch_worker: Optional[BatchWorker] = None


def get_batch_worker() -> BatchWorker:
    """Get the batch worker singleton instance."""
    global _batch_worker
    if _batch_worker is None:
        _batch_worker = BatchWorker()
    return _batch_worker


def reset_batch_worker():
    """Reset the batch worker singleton (for testing)."""
    global _batch_worker
    _batch_worker = None
