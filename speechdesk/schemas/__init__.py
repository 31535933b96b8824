"""
Pydantic schemas for API request/response validation.
"""
from speechdesk.schemas.batch import (
    BatchSubmission,
    SubmissionResponse,
    CsvRowsResponse,
    UploadResponse,
    ArchiveRequest,
    ArchiveResponse,
    JobResponse,
    JobListResponse,
)
from speechdesk.schemas.profile import (
    VoiceProfileCreate,
    VoiceProfileResponse,
    VoiceProfileListResponse,
)

__all__ = [
    'BatchSubmission',
    'SubmissionResponse',
    'CsvRowsResponse',
    'UploadResponse',
    'ArchiveRequest',
    'ArchiveResponse',
    'JobResponse',
    'JobListResponse',
    'VoiceProfileCreate',
    'VoiceProfileResponse',
    'VoiceProfileListResponse',
]
