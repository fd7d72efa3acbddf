"""
Configuration settings for the Estate AI Assistant backend.
Uses pydantic-settings for environment variable support.
"""

from functools import lru_cache
from typing import List, Literal, Optional
import os

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


SYSTEM_PROMPT_VERSIONS = ("v2.0",)


class Settings(BaseSettings):
    """Application configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Estate AI Assistant"
    APP_VERSION: str = "2.0.0"
    ENVIRONMENT: Literal["development", "production", "test"] = "development"
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = False
    MAX_REQUEST_BYTES: int = 10 * 1024 * 1024  # 10MB

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3005
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Database
    # Resolved relative to the project root so the file is found regardless of working directory
    _BASE_DIR: str = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    DATABASE_URL: str = f"sqlite+aiosqlite:///{os.path.join(_BASE_DIR, 'estate_assistant.db')}"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 0
    DB_POOL_TIMEOUT: float = 60.0  # seconds a caller waits for a free connection
    DB_ECHO: bool = False

    # Response generation
    AI_MODEL: str = "gpt-4-turbo-preview"
    AI_TEMPERATURE: float = 0.7
    AI_MAX_TOKENS: int = 1000
    AI_SYSTEM_PROMPT_VERSION: str = "v2.0"
    AI_CONVERSATION_MEMORY_LIMIT: int = Field(default=20, ge=1)
    DATA_RETENTION_DAYS: int = Field(default=90, ge=1)

    # ElevenLabs Text-to-Speech API
    ELEVENLABS_API_KEY: Optional[SecretStr] = None
    ELEVENLABS_API_URL: str = "https://api.elevenlabs.io/v1"
    ELEVENLABS_VOICE_ID: Optional[str] = None
    ELEVENLABS_MODEL_ID: str = "eleven_multilingual_v2"
    ELEVENLABS_STABILITY: float = 0.75
    ELEVENLABS_SIMILARITY_BOOST: float = 0.75
    ELEVENLABS_STYLE: float = 0.0
    ELEVENLABS_USE_SPEAKER_BOOST: bool = False
    ELEVENLABS_REQUEST_TIMEOUT: float = 30.0

    # Rate limiting (window in seconds, max requests per client within the window)
    RATE_LIMIT_WINDOW_SECONDS: int = 900
    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_CHAT_WINDOW_SECONDS: int = 300
    RATE_LIMIT_CHAT_MAX_REQUESTS: int = 50
    RATE_LIMIT_VOICE_WINDOW_SECONDS: int = 60
    RATE_LIMIT_VOICE_MAX_REQUESTS: int = 10

    # Compliance and audit
    COMPLIANCE_LEVEL: str = "BIG_BROTHER_V2"
    AUDIT_LOGGING: bool = True
    CONVERSATION_LOGGING: bool = False
    VOICE_SYNTHESIS_LOGGING: bool = False

    # Brokerage
    BROKER_LICENSE_NUMBER: Optional[str] = None
    DEFAULT_MARKET_AREA: Optional[str] = None
    PROPERTY_SEARCH_RADIUS: int = 25

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def elevenlabs_configured(self) -> bool:
        return bool(self.ELEVENLABS_API_KEY and self.ELEVENLABS_API_KEY.get_secret_value())

    def validate_configuration(self) -> List[str]:
        """Return a list of configuration problems; empty when everything is usable."""
        issues = []
        if not self.AI_MODEL:
            issues.append("AI_MODEL not configured")
        if not 0 <= self.AI_TEMPERATURE <= 2:
            issues.append("AI_TEMPERATURE must be between 0 and 2")
        if not 100 <= self.AI_MAX_TOKENS <= 4000:
            issues.append("AI_MAX_TOKENS must be between 100 and 4000")
        if not self.elevenlabs_configured:
            issues.append("ELEVENLABS_API_KEY not configured")
        if not self.ELEVENLABS_VOICE_ID:
            issues.append("ELEVENLABS_VOICE_ID not configured")
        for name in ("ELEVENLABS_STABILITY", "ELEVENLABS_SIMILARITY_BOOST", "ELEVENLABS_STYLE"):
            if not 0 <= getattr(self, name) <= 1:
                issues.append(f"{name} must be between 0 and 1")
        if self.AI_SYSTEM_PROMPT_VERSION not in SYSTEM_PROMPT_VERSIONS:
            issues.append(f"System prompt version {self.AI_SYSTEM_PROMPT_VERSION} not found")
        return issues


@lru_cache
def get_settings() -> Settings:
    """Build the settings once per process."""
    return Settings()
