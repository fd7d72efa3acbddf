"""
Chat and voice orchestration.

Glues the conversation manager, the response generator and the voice client
together. Generation problems degrade to an apology reply; persistence and
voice API problems propagate to the caller.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol

import structlog

from ..config import Settings
from ..database import utcnow
from ..exceptions import NotFoundError, ValidationError
from ..prompts import get_system_prompt
from ..schemas.message import ChatResult, ChatResultMetadata
from .conversation_manager import ConversationManager, estimate_token_count
from .response_generator import CannedResponseGenerator, ResponseGenerator
from .tts_service import get_voice_settings
from ..utils.logger import performance_timer


logger = structlog.get_logger("estate_assistant.ai")

# Token estimate reported when the apology reply is substituted
FALLBACK_TOKEN_COUNT = 100

VOICE_SETTING_FIELDS = (
    ("stability", "Stability"),
    ("similarityBoost", "Similarity boost"),
    ("style", "Style"),
)


class VoiceClient(Protocol):
    """What the orchestration needs from a text-to-speech backend."""

    @property
    def configured(self) -> bool:
        ...

    async def synthesize(
        self,
        text: str,
        voice_id: str,
        voice_settings: Dict[str, Any],
        output_format: str = "mp3_44100_128",
        model_id: Optional[str] = None
    ) -> bytes:
        ...

    async def list_voices(self) -> List[Dict[str, Any]]:
        ...


@dataclass
class SynthesisResult:
    audio: bytes
    format: str
    voice_id: str
    text_length: int
    audio_size: int


def validate_voice_settings(settings: Optional[Mapping[str, Any]]) -> List[str]:
    """Return one message per out-of-range value; an empty list means valid."""
    errors = []
    for key, label in VOICE_SETTING_FIELDS:
        value = (settings or {}).get(key)
        if value is not None and not 0 <= value <= 1:
            errors.append(f"{label} must be between 0 and 1")
    return errors


class AIService:
    """Processes chat turns and voice synthesis requests."""

    def __init__(
        self,
        settings: Settings,
        conversation_manager: ConversationManager,
        voice_client: VoiceClient,
        response_generator: Optional[ResponseGenerator] = None
    ):
        self.settings = settings
        self.conversation_manager = conversation_manager
        self.voice_client = voice_client
        self.response_generator = response_generator or CannedResponseGenerator()

        self.request_count = 0
        self.start_time = time.time()

    async def process_chat_message(
        self,
        message: str,
        conversation_id: Optional[str] = None,
        user_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        client_metadata: Optional[Dict[str, Any]] = None
    ) -> ChatResult:
        """
        Handle one user turn end to end.

        The user message is persisted before the reply is generated, so a
        failure while storing the reply leaves the user turn in place.
        """
        self.request_count += 1
        context = context or {}
        start = time.perf_counter()

        with performance_timer("conversation-processing", "AIService", has_conversation=bool(conversation_id)) as timer:
            if conversation_id:
                conversation = await self.conversation_manager.get_conversation(conversation_id)
                if conversation is None:
                    raise NotFoundError("Conversation", conversation_id)
                turns = await self.conversation_manager.build_conversation_context(conversation_id)
            else:
                conversation = await self.conversation_manager.create_conversation(user_id, context)
                conversation_id = conversation.conversation_id
                turns = [{
                    "role": "system",
                    "content": get_system_prompt("base", self.settings.AI_SYSTEM_PROMPT_VERSION),
                }]
            timer["conversation_id"] = conversation_id

            await self.conversation_manager.add_message(
                conversation_id,
                "user",
                message,
                self._user_message_metadata(context, client_metadata),
            )
            turns.append({"role": "user", "content": message})

            reply = await self.generate_ai_response(turns, context)
            response_time = int((time.perf_counter() - start) * 1000)

            try:
                await self.conversation_manager.add_message(
                    conversation_id,
                    "assistant",
                    reply["content"],
                    {
                        "model": self.settings.AI_MODEL,
                        "temperature": self.settings.AI_TEMPERATURE,
                        "responseTime": response_time,
                        "tokenCount": reply["token_count"],
                    },
                )
            except Exception:
                logger.warning(
                    "Assistant reply not stored after user message was persisted",
                    conversation_id=conversation_id,
                )
                raise

        return ChatResult(
            conversation_id=conversation_id,
            response=reply["content"],
            metadata=ChatResultMetadata(
                model=self.settings.AI_MODEL,
                response_time=response_time,
                token_count=reply["token_count"],
                message_count=conversation.message_count + 2,
            ),
        )

    @staticmethod
    def _user_message_metadata(
        context: Dict[str, Any],
        client_metadata: Optional[Dict[str, Any]]
    ) -> Dict[str, Any]:
        metadata = {**context, "timestamp": utcnow().isoformat()}
        if client_metadata:
            metadata["clientMetadata"] = client_metadata
        return metadata

    async def generate_ai_response(
        self,
        context: List[Mapping[str, str]],
        request_context: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Produce the reply text for a context window.

        Never raises: a failing generator is replaced by the apology prompt.

        Returns:
            Dict with 'content', 'token_count' and 'error'
        """
        try:
            with performance_timer("ai-chat", "AIService", model=self.settings.AI_MODEL, turns=len(context)):
                content = await self.response_generator.generate(context, request_context or {})
        except Exception as e:
            logger.error("Response generation failed, using fallback reply", error=str(e))
            return {
                "content": get_system_prompt("error", self.settings.AI_SYSTEM_PROMPT_VERSION),
                "token_count": FALLBACK_TOKEN_COUNT,
                "error": True,
            }

        return {"content": content, "token_count": estimate_token_count(content), "error": False}

    async def synthesize_voice(
        self,
        text: str,
        voice_id: Optional[str] = None,
        voice_settings: Optional[Dict[str, Any]] = None,
        output_format: str = "mp3_44100_128",
        quality: Optional[str] = None
    ) -> SynthesisResult:
        voice_id = voice_id or self.settings.ELEVENLABS_VOICE_ID
        if not voice_id:
            raise ValidationError("No voice id given and ELEVENLABS_VOICE_ID is not configured")
        resolved = get_voice_settings(self.settings, quality, voice_settings)

        with performance_timer(
            "voice-synthesis",
            "AIService",
            voice_id=voice_id,
            text_length=len(text),
            output_format=output_format,
        ) as timer:
            audio = await self.voice_client.synthesize(text, voice_id, resolved, output_format)
            timer["audio_size"] = len(audio)

        if self.settings.VOICE_SYNTHESIS_LOGGING:
            logger.info(
                "Voice synthesized",
                voice_id=voice_id,
                text_length=len(text),
                audio_size=len(audio),
                compliance_level=self.settings.COMPLIANCE_LEVEL,
            )

        return SynthesisResult(
            audio=audio,
            format=output_format,
            voice_id=voice_id,
            text_length=len(text),
            audio_size=len(audio),
        )

    def validate_voice_settings(self, settings: Optional[Mapping[str, Any]]) -> List[str]:
        return validate_voice_settings(settings)

    async def get_available_voices(self) -> List[Dict[str, Any]]:
        voices = await self.voice_client.list_voices()
        return [
            {
                "voiceId": voice.get("voice_id"),
                "name": voice.get("name"),
                "category": voice.get("category"),
                "description": voice.get("description"),
                "previewUrl": voice.get("preview_url"),
                "available": True,
            }
            for voice in voices
        ]

    def get_service_stats(self) -> Dict[str, Any]:
        uptime = time.time() - self.start_time
        minutes = uptime / 60
        return {
            "requestCount": self.request_count,
            "uptime": int(uptime),
            "averageRequestsPerMinute": round(self.request_count / minutes, 2) if minutes > 0 else 0,
            "elevenLabsConfigured": self.voice_client.configured,
            "model": self.settings.AI_MODEL,
            "defaultVoice": self.settings.ELEVENLABS_VOICE_ID,
        }
