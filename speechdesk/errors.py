"""
Error types raised by the speech pipeline.
"""
from typing import Optional


class SpeechDeskError(Exception):
    """Base class for pipeline errors."""


class ValidationError(SpeechDeskError):
    """Submission is malformed or incomplete."""


class ProfileResolutionError(SpeechDeskError):
    """Referenced voice profile does not exist."""

    def __init__(self, profile_ref):
        self.profile_ref = profile_ref
        super().__init__(f'Voice profile not found: {profile_ref}')


class SynthesisError(SpeechDeskError):
    """
    Upstream speech API failure.

    Attributes:
        status_code: HTTP status returned upstream (502 for transport errors)
        body: Raw upstream error body, unmodified
    """

    def __init__(self, status_code: int, body: str, content_type: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        self.content_type = content_type
        super().__init__(f'Synthesis failed (HTTP {status_code}): {body[:200]}')


class StorageError(SpeechDeskError):
    """Filesystem write or move failed."""


class ArchiveError(SpeechDeskError):
    """Archive container could not be created."""
