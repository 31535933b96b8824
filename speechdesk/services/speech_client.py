"""
Speech client wrapping the upstream text-to-speech HTTP API.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from speechdesk.config import (
    OPENAI_API_KEY,
    OPENAI_API_BASE,
    SYNTHESIS_TIMEOUT,
    AUDIO_FORMATS,
    DEFAULT_AUDIO_FORMAT,
    DEFAULT_MODEL,
)
from speechdesk.errors import SynthesisError, ValidationError

logger = logging.getLogger(__name__)

MIME_TYPES = {
    'mp3': 'audio/mpeg',
    'wav': 'audio/wav',
    'pcm': 'audio/L16',
}


def normalize_format(audio_format: Optional[str]) -> str:
    """Return a supported audio format, falling back to mp3."""
    value = (audio_format or '').strip().lower()
    if value in AUDIO_FORMATS:
        return value
    return DEFAULT_AUDIO_FORMAT


def mime_type_for(audio_format: Optional[str]) -> str:
    """Content type of audio produced in the given format."""
    return MIME_TYPES[normalize_format(audio_format)]


@dataclass(frozen=True)
class SynthesisParams:
    """
    Parameters applied to one synthesis call.

    style_hint, volume and pitch are carried for completeness; the speech
    API receives only model, voice, input and format.
    """
    model: str = DEFAULT_MODEL
    voice: str = 'alloy'
    audio_format: str = DEFAULT_AUDIO_FORMAT
    style_hint: Optional[str] = None
    volume: float = 1.0
    pitch: float = 1.0

    @property
    def extension(self) -> str:
        return normalize_format(self.audio_format)


class SpeechClient:
    """
    Thin async client for POST /audio/speech.

    No retries are performed; callers decide what to do with a SynthesisError.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        api_base: str = OPENAI_API_BASE,
        timeout: float = SYNTHESIS_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_key = OPENAI_API_KEY if api_key is None else api_key
        self._url = api_base.rstrip('/') + '/audio/speech'
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    @property
    def is_configured(self) -> bool:
        """Check if an API key is available."""
        return bool(self._api_key)

    def build_payload(self, text: str, params: SynthesisParams) -> dict:
        return {
            'model': params.model,
            'voice': params.voice,
            'input': text,
            'format': params.extension,
        }

    async def synthesize(self, text: str, params: SynthesisParams) -> bytes:
        """
        Synthesize text to audio bytes.

        Args:
            text: Text to synthesize (non-empty)
            params: Model, voice and format to use

        Returns:
            Raw audio bytes in params.extension format

        Raises:
            ValidationError: text is empty
            SynthesisError: transport failure or upstream error response
        """
        if not text or not text.strip():
            raise ValidationError('Text to synthesize is empty')
        if not self.is_configured:
            raise SynthesisError(500, 'API key is missing. Set OPENAI_API_KEY.')

        headers = {'Authorization': f'Bearer {self._api_key}'}
        try:
            response = await self._client.post(
                self._url,
                json=self.build_payload(text, params),
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.warning('Speech API request failed: %s', e)
            raise SynthesisError(502, str(e)) from e

        content = response.content
        content_type = response.headers.get('content-type')
        if not response.is_success:
            raise SynthesisError(response.status_code, response.text, content_type)

        # The API can answer 200 with a JSON error document instead of audio
        if content[:1] == b'{':
            raise SynthesisError(response.status_code, response.text, content_type)

        return content

    async def aclose(self):
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()


# Singleton instance
_speech_client: Optional[SpeechClient] = None


def get_speech_client() -> SpeechClient:
    """
    Get the speech client singleton instance.

    Usage with FastAPI dependency injection:
        @router.post('/tts')
        async def tts(client: SpeechClient = Depends(get_speech_client)):
            ...
    """
    global _speech_client
    if _speech_client is None:
        _speech_client = SpeechClient()
    return _speech_client


async def reset_speech_client():
    """Reset the speech client singleton (for testing and shutdown)."""
    global _speech_client
    if _speech_client is not None:
        await _speech_client.aclose()
    _speech_client = None
