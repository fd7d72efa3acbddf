"""
Voice synthesis Pydantic schemas.
"""

from typing import Literal, Optional

from pydantic import Field

from .base import CamelModel, SanitizedStr
from .message import ChatMessageRequest


OutputFormat = Literal["mp3_44100_128", "mp3_22050_32", "pcm_16000", "pcm_22050", "pcm_24000", "pcm_44100"]
VoiceModel = Literal["eleven_monolingual_v1", "eleven_multilingual_v1", "eleven_multilingual_v2", "eleven_turbo_v2"]
VoiceQuality = Literal["high", "medium", "fast"]

DEFAULT_OUTPUT_FORMAT = "mp3_44100_128"
VOICE_ID_PATTERN = r"^[A-Za-z0-9]{10,50}$"


class VoiceSettings(CamelModel):
    """
    Voice tuning values. Ranges are checked by `validate_voice_settings`
    so callers get every violation at once.
    """
    stability: Optional[float] = None
    similarity_boost: Optional[float] = None
    style: Optional[float] = None
    use_speaker_boost: Optional[bool] = None


class VoiceSynthesisRequest(CamelModel):
    """Schema for a text-to-speech request."""
    text: SanitizedStr = Field(..., min_length=1, max_length=5000)
    voice_id: Optional[str] = Field(None, pattern=VOICE_ID_PATTERN)
    voice_settings: Optional[VoiceSettings] = None
    output_format: OutputFormat = DEFAULT_OUTPUT_FORMAT
    model_id: Optional[VoiceModel] = None
    quality: Optional[VoiceQuality] = None


class ChatAndSpeakRequest(ChatMessageRequest):
    """Chat message whose reply is also synthesized."""
    voice_id: Optional[str] = Field(None, pattern=VOICE_ID_PATTERN)
    voice_settings: Optional[VoiceSettings] = None
    output_format: OutputFormat = DEFAULT_OUTPUT_FORMAT
