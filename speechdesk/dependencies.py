"""
FastAPI dependencies wiring pipeline services together.
"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from speechdesk.config import DATA_DIR, REALTIME_DIR, REALTIME_EXPORTS_DIR
from speechdesk.database import get_session_factory
from speechdesk.services.intake import BatchIntake
from speechdesk.services.job_store import JobStore
from speechdesk.services.uploader import RealtimeUploader


def get_job_store(session_factory: async_sessionmaker = Depends(get_session_factory)) -> JobStore:
    return JobStore(session_factory)


def get_batch_intake(job_store: JobStore = Depends(get_job_store)) -> BatchIntake:
    return BatchIntake(job_store, REALTIME_DIR)


def get_uploader() -> RealtimeUploader:
    return RealtimeUploader(REALTIME_DIR, DATA_DIR, REALTIME_EXPORTS_DIR)
