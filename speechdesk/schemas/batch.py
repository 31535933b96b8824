"""
Pydantic schemas for batch and real-time pipeline requests.

Submission bodies are deliberately lenient: the intake layer validates them
and answers with {success: false, message} instead of a 422.
"""
from datetime import datetime
from typing import Any, Optional, List
from pydantic import BaseModel, ConfigDict, Field


class BatchSubmission(BaseModel):
    """Schema for a queue or real-time submission."""
    profile: Any = Field(None, description='Voice profile id')
    rows: Any = Field(default_factory=list, description='List of {filename, text} rows')
    email: Optional[str] = Field(None, description='Address notified when the job is done')


class SubmissionResponse(BaseModel):
    """Schema for submission results."""
    success: bool
    message: Optional[str] = None
    job_id: Optional[str] = None


class RowSchema(BaseModel):
    filename: str
    text: str


class CsvRowsResponse(BaseModel):
    """Rows parsed from an uploaded CSV file."""
    success: bool
    rows: List[RowSchema] = []
    message: Optional[str] = None


class UploadResponse(BaseModel):
    """Schema for real-time row upload results."""
    success: bool
    file: Optional[str] = None
    message: Optional[str] = None


class ArchiveRequest(BaseModel):
    """Schema for archiving uploaded real-time files."""
    files: Any = Field(default_factory=list, description='Paths returned by row upload')


class ArchiveResponse(BaseModel):
    success: bool
    zip: Optional[str] = None
    message: Optional[str] = None


class JobResponse(BaseModel):
    """Schema for job response."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    profile: str
    rows: List[RowSchema]
    email: str
    status: str
    created_at: datetime
    completed_at: Optional[datetime]
    zip: Optional[str]
    attempts: int
    error_message: Optional[str]


class JobListResponse(BaseModel):
    """Schema for paginated job list response."""
    jobs: List[JobResponse]
    total: int
    limit: int
    offset: int
