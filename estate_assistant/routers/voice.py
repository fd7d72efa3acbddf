"""
Voice routes: text-to-speech synthesis and the voice catalogue.
"""

import base64
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from ..config import Settings
from ..database import utcnow
from ..dependencies import get_ai_service, get_app_settings
from ..exceptions import ValidationError
from ..schemas.voice import ChatAndSpeakRequest, VoiceSettings, VoiceSynthesisRequest
from ..services.ai_service import AIService
from ..services.tts_service import (
    SUPPORTED_FORMATS,
    audio_content_type,
    audio_file_extension,
    get_voice_settings,
)
from ..utils.middleware import get_request_id
from ..utils.rate_limit import rate_limit


router = APIRouter(prefix="/api/voice", tags=["Voice"])

PRESET_DESCRIPTIONS = {
    "high_quality": "Best quality, slower generation",
    "medium_quality": "Balanced quality and speed",
    "fast_generation": "Faster generation, good quality",
    "custom_example": "Example custom settings",
}


def _settings_dict(voice_settings: Optional[VoiceSettings]) -> Optional[Dict[str, Any]]:
    if voice_settings is None:
        return None
    return voice_settings.model_dump(by_alias=True, exclude_none=True)


def _check_voice_settings(ai_service: AIService, voice_settings):
    errors = ai_service.validate_voice_settings(voice_settings)
    if errors:
        raise ValidationError("Voice settings validation failed", {"errors": errors})


@router.post("/synthesize", dependencies=[Depends(rate_limit("voice"))])
async def synthesize(
    synthesis_request: VoiceSynthesisRequest,
    ai_service: AIService = Depends(get_ai_service)
):
    """Convert text to speech and return the audio file."""
    voice_settings = _settings_dict(synthesis_request.voice_settings)
    _check_voice_settings(ai_service, voice_settings)

    result = await ai_service.synthesize_voice(
        synthesis_request.text,
        synthesis_request.voice_id,
        voice_settings,
        synthesis_request.output_format,
        synthesis_request.quality,
    )

    return Response(
        content=result.audio,
        media_type=audio_content_type(result.format),
        headers={
            "X-Voice-ID": result.voice_id,
            "X-Text-Length": str(result.text_length),
            "X-Audio-Format": result.format,
            "Content-Disposition": f'attachment; filename="synthesis.{audio_file_extension(result.format)}"',
        },
    )


@router.post("/chat-and-speak", dependencies=[Depends(rate_limit("voice"))])
async def chat_and_speak(
    request: Request,
    speak_request: ChatAndSpeakRequest,
    ai_service: AIService = Depends(get_ai_service)
):
    """Process a chat message and synthesize the reply."""
    voice_settings = _settings_dict(speak_request.voice_settings)
    _check_voice_settings(ai_service, voice_settings)

    chat_result = await ai_service.process_chat_message(
        speak_request.message,
        speak_request.conversation_id,
        speak_request.user_id,
        speak_request.context_dict(),
        speak_request.metadata,
    )
    voice_result = await ai_service.synthesize_voice(
        chat_result.response,
        speak_request.voice_id,
        voice_settings,
        speak_request.output_format,
    )

    return {
        "success": True,
        "conversationId": chat_result.conversation_id,
        "response": chat_result.response,
        "audio": {
            "data": base64.b64encode(voice_result.audio).decode("ascii"),
            "format": voice_result.format,
            "size": voice_result.audio_size,
            "voiceId": voice_result.voice_id,
        },
        "metadata": {
            **chat_result.metadata.model_dump(by_alias=True),
            "voiceSynthesis": {
                "textLength": voice_result.text_length,
                "audioSize": voice_result.audio_size,
                "format": voice_result.format,
            },
            "requestId": get_request_id(request),
            "timestamp": utcnow().isoformat(),
        },
    }


@router.get("/voices")
async def list_voices(request: Request, ai_service: AIService = Depends(get_ai_service)):
    """List the voices available from the voice API."""
    voices = await ai_service.get_available_voices()
    return {"success": True, "voices": voices, "totalCount": len(voices), "requestId": get_request_id(request)}


@router.get("/settings/presets")
async def get_presets(request: Request, settings: Settings = Depends(get_app_settings)):
    """Voice settings presets."""
    presets = {
        "high_quality": get_voice_settings(settings, "high"),
        "medium_quality": get_voice_settings(settings, "medium"),
        "fast_generation": get_voice_settings(settings, "fast"),
        "custom_example": {"stability": 0.85, "similarityBoost": 0.9, "style": 0.1, "useSpeakerBoost": True},
    }
    return {
        "success": True,
        "presets": presets,
        "description": PRESET_DESCRIPTIONS,
        "requestId": get_request_id(request),
    }


@router.get("/stats")
async def get_voice_stats(
    request: Request,
    ai_service: AIService = Depends(get_ai_service),
    settings: Settings = Depends(get_app_settings)
):
    """Voice service statistics."""
    return {
        "success": True,
        "statistics": {
            **ai_service.get_service_stats(),
            "service": "voice",
            "version": settings.APP_VERSION,
            "compliance": settings.COMPLIANCE_LEVEL,
            "supportedFormats": list(SUPPORTED_FORMATS),
        },
        "requestId": get_request_id(request),
    }
