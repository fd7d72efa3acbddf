"""
Rule-based reply generation.

This is a placeholder for a language model: the latest user turn is classified
into an intent by keyword and answered with a fixed paragraph. Anything that
actually generates text should implement `ResponseGenerator` and be injected
into `AIService` instead.
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Protocol


class Intent(str, Enum):
    PROPERTY = "property"
    PRICING = "pricing"
    SCHEDULING = "scheduling"
    AGENT_REQUEST = "agent_request"
    GENERIC = "generic"


# Checked in order; the first intent with a matching keyword wins
INTENT_KEYWORDS = (
    (Intent.PROPERTY, ("property", "house")),
    (Intent.PRICING, ("price", "market")),
    (Intent.SCHEDULING, ("schedule", "viewing")),
    (Intent.AGENT_REQUEST, ("agent", "realtor")),
)

CANNED_RESPONSES = {
    Intent.PROPERTY: (
        "I'd be happy to help you with your property search! To provide you with the best "
        "recommendations, I'd like to know more about what you're looking for. What type of "
        "property interests you - residential, commercial, or investment? Also, do you have a "
        "preferred location or price range in mind?"
    ),
    Intent.PRICING: (
        "Market analysis is one of my specialties! Property values can vary significantly based "
        "on location, property type, and current market conditions. To give you accurate pricing "
        "information, could you tell me the specific area you're interested in? I can provide "
        "recent sales data and market trends for that location."
    ),
    Intent.SCHEDULING: (
        "I can absolutely help you schedule property viewings! I work with a network of "
        "experienced real estate agents who can arrange showings at your convenience. What "
        "properties are you interested in viewing, and what days/times work best for you?"
    ),
    Intent.AGENT_REQUEST: (
        "I'd be pleased to connect you with one of our qualified real estate agents! Our agents "
        "specialize in different areas and property types. What type of real estate services do "
        "you need, and what's your preferred location? This will help me match you with the most "
        "suitable agent."
    ),
    Intent.GENERIC: (
        "Hello! I'm Rachel, your real estate assistant. I'm here to help you with property "
        "searches, market analysis, scheduling viewings, and connecting you with the right real "
        "estate professionals. What can I assist you with today?"
    ),
}


def classify_intent(text: str) -> Intent:
    lowered = (text or "").lower()
    for intent, keywords in INTENT_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return intent
    return Intent.GENERIC


class ResponseGenerator(Protocol):
    """Turns a conversation context into reply text."""

    async def generate(
        self,
        context: List[Mapping[str, str]],
        request_context: Dict[str, Any]
    ) -> str:
        ...


class CannedResponseGenerator:
    """Answers the latest turn of the context with the canned reply for its intent."""

    async def generate(
        self,
        context: List[Mapping[str, str]],
        request_context: Dict[str, Any]
    ) -> str:
        latest = context[-1]["content"] if context else ""
        return CANNED_RESPONSES[classify_intent(latest)]
