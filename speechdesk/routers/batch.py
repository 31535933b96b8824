"""
Batch job endpoints (queue path).
"""
import logging
import shutil
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse

from speechdesk.config import TTS_PERMISSION
from speechdesk.dependencies import get_batch_intake, get_job_store
from speechdesk.errors import ValidationError
from speechdesk.models.job import JobStatus
from speechdesk.schemas.batch import (
    BatchSubmission,
    SubmissionResponse,
    CsvRowsResponse,
    JobResponse,
    JobListResponse,
)
from speechdesk.services.batch_worker import BatchWorker, get_batch_worker
from speechdesk.services.intake import BatchIntake, parse_csv
from speechdesk.services.job_store import JobStore
from speechdesk.services.permissions import require_permission

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix='/batch',
    tags=['batch'],
    dependencies=[Depends(require_permission(TTS_PERMISSION))],
)


@router.post('/jobs', response_model=SubmissionResponse, response_model_exclude_none=True)
async def submit_job(
    submission: BatchSubmission,
    intake: BatchIntake = Depends(get_batch_intake),
    worker: BatchWorker = Depends(get_batch_worker),
) -> SubmissionResponse:
    """
    Queue a batch of rows for background synthesis.

    Returns immediately with the job id; the worker picks the job up on its
    next pass.
    """
    try:
        job_id = await intake.submit(submission.profile, submission.rows, email=submission.email)
    except ValidationError as e:
        return SubmissionResponse(success=False, message=str(e))

    worker.trigger()
    return SubmissionResponse(success=True, message='Job queued', job_id=job_id)


@router.post('/csv', response_model=CsvRowsResponse, response_model_exclude_none=True)
async def preview_csv(csv_file: UploadFile = File(...)) -> CsvRowsResponse:
    """Parse an uploaded filename,text CSV into rows for review."""
    content = await csv_file.read()
    if not content:
        return CsvRowsResponse(success=False, message='File upload failed')
    return CsvRowsResponse(success=True, rows=parse_csv(content))


@router.get('/jobs', response_model=JobListResponse)
async def list_jobs(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    job_store: JobStore = Depends(get_job_store),
) -> JobListResponse:
    """
    List batch jobs with pagination.

    Returns jobs newest first.
    """
    total = await job_store.count()
    jobs = await job_store.page(limit=limit, offset=offset)
    return JobListResponse(
        jobs=[JobResponse.model_validate(job) for job in jobs],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get('/jobs/{job_id}', response_model=JobResponse)
async def get_job(job_id: str, job_store: JobStore = Depends(get_job_store)) -> JobResponse:
    job = await job_store.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f'Job not found: {job_id}')
    return JobResponse.model_validate(job)


@router.get('/jobs/{job_id}/archive')
async def download_archive(job_id: str, job_store: JobStore = Depends(get_job_store)):
    """
    Download the zip archive of a finished job.

    Raises:
        404: Job not found, not done yet, or archive already swept
    """
    job = await job_store.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f'Job not found: {job_id}')

    if job.status != JobStatus.done.value:
        raise HTTPException(status_code=404, detail=f'Archive not ready. Job status: {job.status}')

    if not job.zip or not Path(job.zip).exists():
        raise HTTPException(status_code=404, detail='Archive file not found')

    return FileResponse(path=job.zip, media_type='application/zip', filename=f'{job_id}.zip')


@router.delete('/jobs/{job_id}', status_code=204)
async def delete_job(
    job_id: str,
    job_store: JobStore = Depends(get_job_store),
    worker: BatchWorker = Depends(get_batch_worker),
):
    """Delete a job together with its output tree and archive."""
    job = await job_store.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f'Job not found: {job_id}')

    job_root = worker.output_dir / job.id
    if job_root.is_dir():
        shutil.rmtree(job_root, ignore_errors=True)
    if job.zip and Path(job.zip).exists():
        try:
            Path(job.zip).unlink()
        except OSError as e:
            logger.warning('Could not delete archive %s: %s', job.zip, e)

    await job_store.delete(job_id)
