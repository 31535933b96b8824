"""
Single phrase synthesis endpoint.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from speechdesk.config import TTS_PERMISSION
from speechdesk.database import get_db
from speechdesk.errors import ProfileResolutionError, SynthesisError
from speechdesk.routers.realtime import synthesis_error_response
from speechdesk.services.permissions import require_permission
from speechdesk.services.profiles import resolve_profile, profile_params
from speechdesk.services.speech_client import SpeechClient, get_speech_client, mime_type_for

logger = logging.getLogger(__name__)

router = APIRouter(tags=['tts'], dependencies=[Depends(require_permission(TTS_PERMISSION))])


@router.post('/tts')
async def generate_speech(
    voice_profile_id: str = Form(''),
    text: str = Form(''),
    param_model: Optional[str] = Form(None),
    param_voice: Optional[str] = Form(None),
    param_volume: Optional[float] = Form(None),
    param_pitch: Optional[float] = Form(None),
    param_style_prompt: Optional[str] = Form(None),
    param_audio_format: Optional[str] = Form(None),
    client: SpeechClient = Depends(get_speech_client),
    db: AsyncSession = Depends(get_db),
):
    """
    Synthesize one phrase and return the audio.

    The param_* fields override the profile for this call only. Upstream
    errors are relayed with their original status and body.
    """
    text = text.strip()
    if not voice_profile_id or not text:
        raise HTTPException(status_code=400, detail='Missing required parameters.')

    try:
        profile = await resolve_profile(db, voice_profile_id)
    except ProfileResolutionError:
        raise HTTPException(status_code=400, detail='Invalid voice profile.')

    params = profile_params(profile, {
        'model': param_model,
        'voice': param_voice,
        'volume': param_volume,
        'pitch': param_pitch,
        'style_prompt': param_style_prompt,
        'audio_format': param_audio_format,
    })
    logger.debug('TTS generation using model=%s, voice=%s, format=%s', params.model, params.voice, params.extension)

    try:
        audio = await client.synthesize(text, params)
    except SynthesisError as e:
        return synthesis_error_response(e)

    return Response(
        content=audio,
        media_type=mime_type_for(params.extension),
        headers={'Content-Disposition': f'inline; filename="tts.{params.extension}"'},
    )
