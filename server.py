#!/usr/bin/env python3
"""
SpeechDesk FastAPI Server

Voice profiles, single phrase synthesis and batch text-to-speech jobs
delivered as zip archives.
"""
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from speechdesk.config import APP_NAME, APP_VERSION, SERVER_HOST, SERVER_PORT, JOBS_DIR
from speechdesk.database import init_db, close_db, async_session_factory
from speechdesk.services.batch_worker import get_batch_worker
from speechdesk.services.job_store import JobStore
from speechdesk.services.speech_client import get_speech_client, reset_speech_client
from speechdesk.routers import (
    health_router,
    batch_router,
    realtime_router,
    speech_router,
    profiles_router,
)

LEGACY_QUEUE_FILE = JOBS_DIR / 'tts_queue.json'


async def import_legacy_queue():
    """Move jobs from a JSON queue file into the database, once."""
    if not LEGACY_QUEUE_FILE.exists():
        return
    count = await JobStore(async_session_factory).import_queue_file(LEGACY_QUEUE_FILE)
    LEGACY_QUEUE_FILE.rename(LEGACY_QUEUE_FILE.with_suffix('.json.imported'))
    print(f'Imported {count} jobs from {LEGACY_QUEUE_FILE}')


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Startup:
        - Initialize database and create tables
        - Import a legacy JSON queue file if present
        - Start the batch worker

    Shutdown:
        - Stop the batch worker after its current row
        - Close the speech client and database connections
    """
    print(f'Starting {APP_NAME} v{APP_VERSION}...')

    print('Initializing database...')
    await init_db()
    await import_legacy_queue()

    if not get_speech_client().is_configured:
        print('OPENAI_API_KEY is not set; synthesis requests will fail until it is configured')

    print('Starting batch worker...')
    batch_worker = get_batch_worker()
    await batch_worker.start()

    print(f'Server ready at http://{SERVER_HOST}:{SERVER_PORT}')
    print('API documentation available at /docs')

    yield

    print('Shutting down...')

    await batch_worker.stop()
    await reset_speech_client()
    await close_db()

    print('Shutdown complete.')


app = FastAPI(
    title=APP_NAME,
    description='Voice profiles and batch text-to-speech jobs.',
    version=APP_VERSION,
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(profiles_router)
app.include_router(speech_router)
app.include_router(batch_router)
app.include_router(realtime_router)


@app.get('/', include_in_schema=False)
async def root():
    return RedirectResponse(url='/docs')


if __name__ == '__main__':
    uvicorn.run(
        app,
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=False,
        log_level='info',
    )
