"""
Job model for batch TTS generation.
"""
import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, Integer, JSON

from speechdesk.models.base import Base


class JobStatus(str, enum.Enum):
    """Status states for batch jobs."""
    queued = 'queued'
    done = 'done'
    failed = 'failed'


class Job(Base):
    """
    Represents one batch submission.

    Attributes:
        id: Unique job identifier (UUID)
        profile: Voice profile reference, resolved when the job is processed
        rows: Ordered list of {filename, text} rows
        email: Address notified on completion (may be empty)
        status: Current job status
        created_at: Job creation timestamp
        completed_at: When the job reached done or failed
        zip: Path of the produced archive (done jobs only)
        attempts: Passes that could not resolve the profile
        error_message: Reason the job failed
    """
    __tablename__ = 'jobs'

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    profile = Column(String(64), nullable=False)
    rows = Column(JSON, nullable=False, default=list)
    email = Column(String(150), nullable=False, default='')
    status = Column(String(20), nullable=False, default=JobStatus.queued.value, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)
    zip = Column(Text, nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)

    def to_document(self) -> dict:
        """Serialize to the queue document shape."""
        document = {
            'id': self.id,
            'profile': self.profile,
            'rows': list(self.rows or []),
            'email': self.email or '',
            'status': self.status,
            'created_at': self.created_at.strftime('%Y-%m-%d %H:%M:%S') if self.created_at else '',
        }
        if self.zip:
            document['zip'] = self.zip
        return document

    def __repr__(self):
        return f'<Job {self.id} status={self.status}>'
