"""
Pydantic schemas for voice profile operations.
"""
from datetime import datetime
from typing import Optional, List, Literal
from pydantic import BaseModel, ConfigDict, Field

from speechdesk.config import DEFAULT_MODEL


class VoiceProfileCreate(BaseModel):
    """Schema for creating or replacing a voice profile."""
    name: str = Field(..., min_length=1, max_length=100)
    model: str = Field(DEFAULT_MODEL, min_length=1, max_length=50)
    voice: str = Field(..., min_length=1, max_length=50)
    audio_format: Literal['mp3', 'wav', 'pcm'] = 'mp3'
    description: Optional[str] = None
    style_prompt: Optional[str] = None
    volume: float = Field(1.0, ge=0.0, le=9.99, description='Stored only; not sent to the speech API')
    pitch: float = Field(1.0, ge=0.0, le=9.99, description='Stored only; not sent to the speech API')


class VoiceProfileResponse(BaseModel):
    """Schema for voice profile response."""
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: int
    name: str
    model: str
    voice: str
    audio_format: str
    description: Optional[str]
    style_prompt: Optional[str]
    volume: float
    pitch: float
    created_at: datetime


class VoiceProfileListResponse(BaseModel):
    """Schema for voice profile list response."""
    profiles: List[VoiceProfileResponse]
