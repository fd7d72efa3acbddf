"""
Text-to-Speech client for the ElevenLabs API.
"""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from ..config import Settings
from ..exceptions import UpstreamServiceError


logger = structlog.get_logger("estate_assistant.tts")

SUPPORTED_FORMATS = ("mp3_44100_128", "mp3_22050_32", "pcm_16000", "pcm_22050", "pcm_24000", "pcm_44100")
SUPPORTED_MODELS = ("eleven_monolingual_v1", "eleven_multilingual_v1", "eleven_multilingual_v2", "eleven_turbo_v2")

VOICE_PRESETS: Dict[str, Dict[str, Any]] = {
    "high": {"stability": 0.8, "similarityBoost": 0.8, "style": 0.2, "useSpeakerBoost": True},
    "medium": {"stability": 0.75, "similarityBoost": 0.75, "style": 0.0, "useSpeakerBoost": False},
    "fast": {"stability": 0.7, "similarityBoost": 0.7, "style": 0.0, "useSpeakerBoost": False},
}


def default_voice_settings(settings: Settings) -> Dict[str, Any]:
    return {
        "stability": settings.ELEVENLABS_STABILITY,
        "similarityBoost": settings.ELEVENLABS_SIMILARITY_BOOST,
        "style": settings.ELEVENLABS_STYLE,
        "useSpeakerBoost": settings.ELEVENLABS_USE_SPEAKER_BOOST,
    }


def get_voice_settings(
    settings: Settings,
    quality: Optional[str] = None,
    custom: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Resolve the voice settings for one synthesis.

    Explicit settings win, then the quality preset merged over the configured
    defaults, then the configured defaults alone.
    """
    resolved = default_voice_settings(settings)
    if custom:
        resolved.update({key: value for key, value in custom.items() if value is not None})
    elif quality in VOICE_PRESETS:
        resolved.update(VOICE_PRESETS[quality])
    return resolved


def audio_content_type(output_format: str) -> str:
    return "audio/mpeg" if output_format.startswith("mp3") else "audio/wav"


def audio_file_extension(output_format: str) -> str:
    return "mp3" if output_format.startswith("mp3") else "wav"


class ElevenLabsClient:
    """
    Thin async client for the two ElevenLabs endpoints the assistant uses.
    Every failure surfaces as UpstreamServiceError; nothing is retried.
    """

    service_name = "ElevenLabs"

    def __init__(self, settings: Settings):
        self.api_base = settings.ELEVENLABS_API_URL.rstrip("/")
        self.api_key = settings.ELEVENLABS_API_KEY.get_secret_value() if settings.ELEVENLABS_API_KEY else ""
        self.model_id = settings.ELEVENLABS_MODEL_ID
        self.timeout = aiohttp.ClientTimeout(total=settings.ELEVENLABS_REQUEST_TIMEOUT)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self, accept: str = "application/json") -> Dict[str, str]:
        return {
            "Accept": accept,
            "Content-Type": "application/json",
            "xi-api-key": self.api_key,
        }

    async def synthesize(
        self,
        text: str,
        voice_id: str,
        voice_settings: Dict[str, Any],
        output_format: str = "mp3_44100_128",
        model_id: Optional[str] = None
    ) -> bytes:
        """
        Convert text to speech.

        Args:
            text: Text to synthesize
            voice_id: ElevenLabs voice identifier
            voice_settings: camelCase settings as resolved by `get_voice_settings`
            output_format: One of SUPPORTED_FORMATS

        Returns:
            Raw audio bytes
        """
        payload = {
            "text": text,
            "model_id": model_id or self.model_id,
            "voice_settings": {
                "stability": voice_settings.get("stability"),
                "similarity_boost": voice_settings.get("similarityBoost"),
                "style": voice_settings.get("style"),
                "use_speaker_boost": voice_settings.get("useSpeakerBoost"),
            },
        }
        logger.debug("Sending synthesis request", voice_id=voice_id, output_format=output_format, text_length=len(text))

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(
                    f"{self.api_base}/text-to-speech/{voice_id}",
                    params={"output_format": output_format},
                    json=payload,
                    headers=self._headers(accept=audio_content_type(output_format)),
                ) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise UpstreamServiceError(
                            self.service_name,
                            f"API error ({response.status}): {error_text[:200]}",
                            {"status": response.status, "voiceId": voice_id},
                        )
                    return await response.read()
        except aiohttp.ClientError as e:
            raise UpstreamServiceError(self.service_name, f"Network error: {e}", {"voiceId": voice_id}) from e
        except asyncio.TimeoutError as e:
            raise UpstreamServiceError(self.service_name, "Request timed out", {"voiceId": voice_id}) from e

    async def list_voices(self) -> List[Dict[str, Any]]:
        """Fetch the raw voice catalogue."""
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(f"{self.api_base}/voices", headers=self._headers()) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise UpstreamServiceError(
                            self.service_name,
                            f"API error ({response.status}): {error_text[:200]}",
                            {"status": response.status},
                        )
                    data = await response.json()
        except aiohttp.ClientError as e:
            raise UpstreamServiceError(self.service_name, f"Network error: {e}") from e
        except asyncio.TimeoutError as e:
            raise UpstreamServiceError(self.service_name, "Request timed out") from e

        return data.get("voices", [])
