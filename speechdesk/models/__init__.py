"""
SQLAlchemy models.
"""
from speechdesk.models.base import Base
from speechdesk.models.job import Job, JobStatus
from speechdesk.models.profile import VoiceProfile

__all__ = ['Base', 'Job', 'JobStatus', 'VoiceProfile']
