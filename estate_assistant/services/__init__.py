"""
Services package.
"""

from .ai_service import AIService, SynthesisResult, validate_voice_settings
from .broker_service import BrokerService
from .conversation_manager import ConversationManager, estimate_token_count
from .response_generator import CannedResponseGenerator, Intent, ResponseGenerator, classify_intent
from .tts_service import ElevenLabsClient

__all__ = [
    "AIService",
    "SynthesisResult",
    "validate_voice_settings",
    "BrokerService",
    "ConversationManager",
    "estimate_token_count",
    "CannedResponseGenerator",
    "Intent",
    "ResponseGenerator",
    "classify_intent",
    "ElevenLabsClient",
]
