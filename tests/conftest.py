"""
Pytest fixtures for testing.
"""
from pathlib import Path
from typing import AsyncGenerator, List, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from speechdesk.models import Base, VoiceProfile
from speechdesk.database import get_db, get_session_factory
from speechdesk.dependencies import get_batch_intake, get_uploader
from speechdesk.errors import SynthesisError, ValidationError
from speechdesk.services.batch_worker import BatchWorker, get_batch_worker, reset_batch_worker
from speechdesk.services.intake import BatchIntake
from speechdesk.services.job_store import JobStore
from speechdesk.services.notifier import Notifier
from speechdesk.services.speech_client import get_speech_client
from speechdesk.services.uploader import RealtimeUploader

FAKE_AUDIO = b'ID3\x04fake-audio'


class FakeSpeechClient:
    """Speech client stand-in returning fixed bytes for any input."""

    def __init__(self, fail_texts: Optional[set] = None):
        self.calls: List[tuple] = []
        self.fail_texts = fail_texts or set()
        self.is_configured = True

    async def synthesize(self, text, params):
        if not text or not text.strip():
            raise ValidationError('Text to synthesize is empty')
        self.calls.append((text, params))
        if text in self.fail_texts:
            raise SynthesisError(500, '{"error": {"message": "upstream exploded"}}', 'application/json')
        return FAKE_AUDIO


class RecordingNotifier(Notifier):
    def __init__(self):
        self.notices = []

    async def notify(self, address, job, message):
        self.notices.append((address, job.id, message))


@pytest.fixture
def storage(tmp_path) -> dict:
    """Data directory layout inside a temp dir."""
    data_dir = tmp_path / 'data'
    dirs = {
        'data': data_dir,
        'output': data_dir / 'jobs' / 'output',
        'realtime': data_dir / 'jobs' / 'realtime',
        'exports': data_dir / 'jobs' / 'realtime' / 'exports',
    }
    for path in dirs.values():
        path.mkdir(parents=True, exist_ok=True)
    return dirs


@pytest.fixture
def test_db_url(tmp_path):
    """Generate test database URL."""
    return f'sqlite+aiosqlite:///{tmp_path / "test.db"}'


@pytest_asyncio.fixture(scope='function')
async def test_engine(test_db_url):
    """Create a test database engine."""
    engine = create_async_engine(test_db_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope='function')
async def test_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def job_store(session_factory) -> JobStore:
    return JobStore(session_factory)


@pytest_asyncio.fixture
async def profile(test_session) -> VoiceProfile:
    """Voice profile with id 3, mp3 output."""
    profile = VoiceProfile(id=3, name='IVR prompts', model='gpt-4o-mini-tts', voice='shimmer', audio_format='mp3')
    test_session.add(profile)
    await test_session.commit()
    return profile


@pytest.fixture
def speech_client() -> FakeSpeechClient:
    return FakeSpeechClient()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def worker(job_store, speech_client, session_factory, storage, notifier) -> BatchWorker:
    return BatchWorker(
        job_store=job_store,
        speech_client=speech_client,
        session_factory=session_factory,
        output_dir=storage['output'],
        notifier=notifier,
        sweep_roots=[storage['output'], storage['realtime']],
        retention_hours=0,
        poll_interval=0.05,
        max_profile_attempts=3,
    )


@pytest.fixture
def intake(job_store, storage) -> BatchIntake:
    return BatchIntake(job_store, storage['realtime'])


@pytest.fixture
def uploader(storage) -> RealtimeUploader:
    return RealtimeUploader(storage['realtime'], storage['data'], storage['exports'])


@pytest_asyncio.fixture
async def client(session_factory, speech_client, worker, intake, uploader):
    """Create a test client with mocked dependencies."""
    reset_batch_worker()

    from server import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_speech_client] = lambda: speech_client
    app.dependency_overrides[get_batch_worker] = lambda: worker
    app.dependency_overrides[get_batch_intake] = lambda: intake
    app.dependency_overrides[get_uploader] = lambda: uploader

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as client:
        yield client

    app.dependency_overrides.clear()
    reset_batch_worker()
