"""
Health check endpoint.
"""
from pydantic import BaseModel
from fastapi import APIRouter, Depends

from speechdesk.config import APP_VERSION
from speechdesk.services.batch_worker import BatchWorker, get_batch_worker
from speechdesk.services.speech_client import SpeechClient, get_speech_client


router = APIRouter(tags=['health'])


class HealthResponse(BaseModel):
    """Health check response schema."""
    status: str
    synthesis_configured: bool
    worker_running: bool
    version: str


@router.get('/health', response_model=HealthResponse)
async def health_check(
    client: SpeechClient = Depends(get_speech_client),
    worker: BatchWorker = Depends(get_batch_worker),
) -> HealthResponse:
    """
    Check server health status.

    Fast response - no database queries.
    """
    return HealthResponse(
        status='ok',
        synthesis_configured=client.is_configured,
        worker_running=worker.is_running,
        version=APP_VERSION,
    )
