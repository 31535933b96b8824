"""
Real-time (client driven) batch endpoints.

The caller creates a workspace, produces audio row by row (uploading it or
asking the server to render it) and finally requests a zip of the files.
"""
import logging
import re
from pathlib import PurePosixPath

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from speechdesk.config import TTS_PERMISSION
from speechdesk.database import get_db
from speechdesk.dependencies import get_batch_intake, get_uploader
from speechdesk.errors import (
    ArchiveError,
    ProfileResolutionError,
    StorageError,
    SynthesisError,
    ValidationError,
)
from speechdesk.schemas.batch import (
    BatchSubmission,
    SubmissionResponse,
    UploadResponse,
    ArchiveRequest,
    ArchiveResponse,
)
from speechdesk.services.archiver import archive_files_async
from speechdesk.services.intake import BatchIntake
from speechdesk.services.permissions import require_permission
from speechdesk.services.profiles import resolve_profile, profile_params
from speechdesk.services.speech_client import SpeechClient, get_speech_client
from speechdesk.services.uploader import RealtimeUploader

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix='/realtime',
    tags=['realtime'],
    dependencies=[Depends(require_permission(TTS_PERMISSION))],
)

EXPORT_NAME_PATTERN = re.compile(r'^[A-Za-z0-9_.-]+\.zip$')


def synthesis_error_response(error: SynthesisError) -> Response:
    """Relay an upstream error body and status unchanged."""
    return Response(
        content=error.body,
        status_code=error.status_code,
        media_type=error.content_type or 'application/json',
    )


@router.post('/workspaces', response_model=SubmissionResponse, response_model_exclude_none=True)
async def create_workspace(
    submission: BatchSubmission,
    intake: BatchIntake = Depends(get_batch_intake),
    db: AsyncSession = Depends(get_db),
) -> SubmissionResponse:
    """Allocate a workspace for a client-driven run. Nothing is queued."""
    audio_format = None
    try:
        profile = await resolve_profile(db, submission.profile)
        audio_format = profile.audio_format
    except ProfileResolutionError:
        logger.info('Workspace requested for unknown profile %r', submission.profile)

    try:
        workspace_id = intake.begin_workspace(submission.profile, submission.rows, audio_format)
    except (ValidationError, StorageError) as e:
        return SubmissionResponse(success=False, message=str(e))

    return SubmissionResponse(success=True, job_id=workspace_id)


@router.post('/upload', response_model=UploadResponse, response_model_exclude_none=True)
async def upload_audio(
    job_id: str = Form(...),
    filename: str = Form(...),
    audio: UploadFile = File(...),
    uploader: RealtimeUploader = Depends(get_uploader),
) -> UploadResponse:
    """Store one row's audio in a workspace."""
    if not filename.strip():
        return UploadResponse(success=False, message='Missing filename or audio file.')

    source_extension = PurePosixPath(audio.filename or '').suffix
    try:
        stored = uploader.store(job_id, filename.strip(), await audio.read(), source_extension)
    except ValidationError as e:
        return UploadResponse(success=False, message=str(e))
    except StorageError as e:
        logger.error('Upload to workspace %s failed: %s', job_id, e)
        return UploadResponse(success=False, message='Failed to save file on server.')

    return UploadResponse(success=True, file=uploader.relative_to_data(stored))


@router.post('/workspaces/{workspace_id}/rows/{index}', response_model=UploadResponse, response_model_exclude_none=True)
async def synthesize_row(
    workspace_id: str,
    index: int,
    uploader: RealtimeUploader = Depends(get_uploader),
    client: SpeechClient = Depends(get_speech_client),
    db: AsyncSession = Depends(get_db),
):
    """
    Render one workspace row on the server.

    Upstream speech errors are relayed to the caller unchanged.
    """
    try:
        metadata = uploader.load_metadata(workspace_id)
        profile = await resolve_profile(db, metadata.get('profile'))
        stored = await uploader.synthesize_row(workspace_id, index, client, profile_params(profile))
    except SynthesisError as e:
        return synthesis_error_response(e)
    except (ValidationError, ProfileResolutionError) as e:
        return UploadResponse(success=False, message=str(e))
    except StorageError as e:
        logger.error('Row %d of workspace %s could not be stored: %s', index, workspace_id, e)
        return UploadResponse(success=False, message='Failed to save file on server.')

    return UploadResponse(success=True, file=uploader.relative_to_data(stored))


@router.post('/zip', response_model=ArchiveResponse, response_model_exclude_none=True)
async def create_archive(
    request: ArchiveRequest,
    uploader: RealtimeUploader = Depends(get_uploader),
) -> ArchiveResponse:
    """Bundle previously uploaded files into one zip."""
    files = request.files
    if not files or not isinstance(files, list) or not all(isinstance(f, str) for f in files):
        return ArchiveResponse(success=False, message='Invalid request: missing files list.')

    try:
        archive_path = await archive_files_async(
            files, uploader.data_dir, uploader.realtime_dir, uploader.exports_dir
        )
    except ArchiveError as e:
        logger.error('Real-time archive failed: %s', e)
        return ArchiveResponse(success=False, message='Unable to create ZIP file.')

    return ArchiveResponse(success=True, zip=uploader.relative_to_data(archive_path))


@router.get('/exports/{name}')
async def download_export(name: str, uploader: RealtimeUploader = Depends(get_uploader)):
    if not EXPORT_NAME_PATTERN.match(name):
        raise HTTPException(status_code=404, detail='Archive not found')
    path = uploader.exports_dir / name
    if not path.is_file():
        raise HTTPException(status_code=404, detail='Archive not found')
    return FileResponse(path=str(path), media_type='application/zip', filename=name)
