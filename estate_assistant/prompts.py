"""
System prompts by version.
"""

import structlog


logger = structlog.get_logger("estate_assistant.prompts")

DEFAULT_PROMPT_VERSION = "v2.0"

SYSTEM_PROMPTS = {
    "v2.0": {
        "base": (
            "You are Rachel, a knowledgeable real estate assistant. Help with property searches, "
            "market analysis, viewings, and guidance. Be professional, warm, patient with first-time "
            "buyers, efficient with investors. Ask clarifying questions, provide actionable "
            "information, respect privacy, never guarantee values."
        ),
        "conversation": (
            "Continue as Rachel, the real estate assistant. Maintain consistency with conversation "
            "history and adapt based on client's experience level, preferences, communication style, "
            "and process stage. Reference previous points, ask follow-ups, provide next steps."
        ),
        "error": (
            "I apologize for the technical issue. As Rachel, I can help with property searches, "
            "market analysis, viewings, process guidance, and agent connections. Please rephrase "
            "your question."
        ),
    }
}


def get_system_prompt(prompt_type: str = "base", version: str = DEFAULT_PROMPT_VERSION) -> str:
    """Look up a prompt, falling back to the default version and then to the base prompt."""
    prompts = SYSTEM_PROMPTS.get(version)
    if prompts is None:
        logger.error("System prompt version not found", version=version, prompt_type=prompt_type)
        prompts = SYSTEM_PROMPTS[DEFAULT_PROMPT_VERSION]
    return prompts.get(prompt_type, prompts["base"])
