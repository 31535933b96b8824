"""
Voice profile lookup.
"""
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from speechdesk.errors import ProfileResolutionError
from speechdesk.models.profile import VoiceProfile
from speechdesk.services.speech_client import SynthesisParams, normalize_format


async def resolve_profile(session: AsyncSession, profile_ref: Union[str, int, None]) -> VoiceProfile:
    """
    Look up a voice profile by reference.

    Raises:
        ProfileResolutionError: reference is not numeric or no such profile exists
    """
    try:
        profile_id = int(str(profile_ref).strip())
    except (TypeError, ValueError):
        raise ProfileResolutionError(profile_ref)

    result = await session.execute(select(VoiceProfile).where(VoiceProfile.id == profile_id))
    profile = result.scalar_one_or_none()
    if profile is None:
        raise ProfileResolutionError(profile_ref)
    return profile


def profile_params(profile: VoiceProfile, overrides: Optional[dict] = None) -> SynthesisParams:
    """
    Build synthesis parameters from a profile.

    Non-empty values in overrides (model, voice, audio_format, style_prompt,
    volume, pitch) replace the stored ones for this call only.
    """
    values = {
        'model': profile.model,
        'voice': profile.voice,
        'audio_format': profile.audio_format,
        'style_prompt': profile.style_prompt,
        'volume': profile.volume,
        'pitch': profile.pitch,
    }
    for key, value in (overrides or {}).items():
        if key in values and value not in (None, ''):
            values[key] = value

    return SynthesisParams(
        model=values['model'],
        voice=values['voice'],
        audio_format=normalize_format(values['audio_format']),
        style_hint=values['style_prompt'] or None,
        volume=float(values['volume'] if values['volume'] is not None else 1.0),
        pitch=float(values['pitch'] if values['pitch'] is not None else 1.0),
    )
