"""
Voice profile endpoints.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from speechdesk.config import AVAILABLE_VOICES, VOICE_PROFILES_PERMISSION
from speechdesk.database import get_db
from speechdesk.models.profile import VoiceProfile
from speechdesk.schemas.profile import (
    VoiceProfileCreate,
    VoiceProfileResponse,
    VoiceProfileListResponse,
)
from speechdesk.services.permissions import require_permission


router = APIRouter(
    prefix='/voice-profiles',
    tags=['voice-profiles'],
    dependencies=[Depends(require_permission(VOICE_PROFILES_PERMISSION))],
)


async def _get_or_404(db: AsyncSession, profile_id: int) -> VoiceProfile:
    result = await db.execute(select(VoiceProfile).where(VoiceProfile.id == profile_id))
    profile = result.scalar_one_or_none()
    if not profile:
        raise HTTPException(status_code=404, detail=f'Voice profile not found: {profile_id}')
    return profile


@router.get('/voices', response_model=List[str])
async def list_available_voices() -> List[str]:
    """Voices the speech API accepts."""
    return list(AVAILABLE_VOICES)


@router.get('', response_model=VoiceProfileListResponse)
async def list_profiles(db: AsyncSession = Depends(get_db)) -> VoiceProfileListResponse:
    result = await db.execute(select(VoiceProfile).order_by(VoiceProfile.name))
    return VoiceProfileListResponse(
        profiles=[VoiceProfileResponse.model_validate(p) for p in result.scalars().all()]
    )


@router.post('', response_model=VoiceProfileResponse, status_code=201)
async def create_profile(
    data: VoiceProfileCreate,
    db: AsyncSession = Depends(get_db),
) -> VoiceProfileResponse:
    profile = VoiceProfile(**data.model_dump())
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    return VoiceProfileResponse.model_validate(profile)


@router.get('/{profile_id}', response_model=VoiceProfileResponse)
async def get_profile(profile_id: int, db: AsyncSession = Depends(get_db)) -> VoiceProfileResponse:
    return VoiceProfileResponse.model_validate(await _get_or_404(db, profile_id))


@router.put('/{profile_id}', response_model=VoiceProfileResponse)
async def update_profile(
    profile_id: int,
    data: VoiceProfileCreate,
    db: AsyncSession = Depends(get_db),
) -> VoiceProfileResponse:
    """
    Replace a profile's settings.

    Queued jobs pick up the change, since profiles are resolved when a job
    is processed.
    """
    profile = await _get_or_404(db, profile_id)
    for key, value in data.model_dump().items():
        setattr(profile, key, value)
    await db.commit()
    await db.refresh(profile)
    return VoiceProfileResponse.model_validate(profile)


@router.delete('/{profile_id}', status_code=204)
async def delete_profile(profile_id: int, db: AsyncSession = Depends(get_db)):
    profile = await _get_or_404(db, profile_id)
    await db.delete(profile)
    await db.commit()
