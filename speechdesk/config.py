"""
Application configuration and paths.

Every setting can be overridden with a ``SPEECHDESK_*`` environment variable.
"""
import os
from pathlib import Path

# Application identity
APP_NAME = 'SpeechDesk'
APP_VERSION = '0.1.0'

# Server configuration
SERVER_HOST = os.getenv('SPEECHDESK_HOST', '127.0.0.1')
SERVER_PORT = int(os.getenv('SPEECHDESK_PORT', '5111'))

# Public URL used when building download links for completion notices
PUBLIC_BASE_URL = os.getenv('SPEECHDESK_PUBLIC_BASE_URL', f'http://{SERVER_HOST}:{SERVER_PORT}')

# Paths
DATA_DIR = Path(os.getenv('SPEECHDESK_DATA_DIR', str(Path.home() / '.speechdesk')))

# Database configuration
DATABASE_PATH = DATA_DIR / 'speechdesk.db'
DATABASE_URL = os.getenv('SPEECHDESK_DATABASE_URL', f'sqlite+aiosqlite:///{DATABASE_PATH}')

# Seconds a connection waits on a locked database
DATABASE_BUSY_TIMEOUT = float(os.getenv('SPEECHDESK_DATABASE_BUSY_TIMEOUT', '5'))

# Generated audio storage
JOBS_DIR = DATA_DIR / 'jobs'
JOBS_OUTPUT_DIR = JOBS_DIR / 'output'
REALTIME_DIR = JOBS_DIR / 'realtime'
REALTIME_EXPORTS_DIR = REALTIME_DIR / 'exports'

# Speech synthesis API
OPENAI_API_KEY = os.getenv('OPENAI_API_KEY', '')
OPENAI_API_BASE = os.getenv('SPEECHDESK_OPENAI_API_BASE', 'https://api.openai.com/v1')
DEFAULT_MODEL = 'gpt-4o-mini-tts'
AUDIO_FORMATS = ('mp3', 'wav', 'pcm')
DEFAULT_AUDIO_FORMAT = 'mp3'

# Seconds before a single synthesis call is abandoned
SYNTHESIS_TIMEOUT = float(os.getenv('SPEECHDESK_SYNTHESIS_TIMEOUT', '60'))

# Seconds allowed for writing one archive
ARCHIVE_TIMEOUT = float(os.getenv('SPEECHDESK_ARCHIVE_TIMEOUT', '300'))

# Batch worker
WORKER_POLL_INTERVAL = float(os.getenv('SPEECHDESK_WORKER_POLL_INTERVAL', '60'))
MAX_PROFILE_ATTEMPTS = int(os.getenv('SPEECHDESK_MAX_PROFILE_ATTEMPTS', '5'))

# Generated files older than this are swept (0 disables the sweep)
RETENTION_HOURS = float(os.getenv('SPEECHDESK_RETENTION_HOURS', '24'))

# Permission vector applied when no authentication layer is mounted
DEFAULT_PERMISSIONS = os.getenv('SPEECHDESK_DEFAULT_PERMISSIONS', 'SSSSSSNNNNNNNNNNNNNN')

# Permission indexes of the text-to-speech and voice profile modules
TTS_PERMISSION = 2
VOICE_PROFILES_PERMISSION = 3

# Voices offered by the speech API
AVAILABLE_VOICES = (
    'alloy', 'ash', 'ballad', 'coral', 'echo',
    'fable', 'nova', 'onyx', 'sage', 'shimmer',
)


def ensure_directories():
    """Create required directories if they don't exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    JOBS_OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    REALTIME_EXPORTS_DIR.mkdir(parents=True, exist_ok=True)
