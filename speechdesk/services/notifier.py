"""
Completion notices for batch jobs.
"""
import logging
from typing import Optional

from speechdesk.config import PUBLIC_BASE_URL
from speechdesk.models.job import Job

logger = logging.getLogger(__name__)


def download_url(job: Job, base_url: str = PUBLIC_BASE_URL) -> str:
    """Public URL of a job's archive."""
    return f'{base_url.rstrip("/")}/batch/jobs/{job.id}/archive'


class Notifier:
    """Interface for delivering job notices to a contact address."""

    async def notify(self, address: str, job: Job, message: str):
        raise NotImplementedError


class LogNotifier(Notifier):
    """Records notices in the application log instead of sending mail."""

    async def notify(self, address: str, job: Job, message: str):
        logger.info('Notice for %s about job %s: %s', address, job.id, message)


# Singleton instance
_notifier: Optional[Notifier] = None


def get_notifier() -> Notifier:
    """Get the active notifier."""
    global _notifier
    if _notifier is None:
        _notifier = LogNotifier()
    return _notifier


def set_notifier(notifier: Optional[Notifier]):
    """Install a notifier (None restores the default)."""
    global _notifier
    _notifier = notifier
