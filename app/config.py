"""Configuration settings for Voice Clone Studio."""

import os
import secrets
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./voice_clone.db")

    # JWT
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", secrets.token_urlsafe(32))
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_EXPIRE_MINUTES: int = int(os.getenv("JWT_EXPIRE_MINUTES", "480"))

    # ElevenLabs
    ELEVENLABS_API_KEY: str = os.getenv("ELEVENLABS_API_KEY", "")
    ELEVENLABS_BASE_URL: str = os.getenv("ELEVENLABS_BASE_URL", "https://api.elevenlabs.io/v1")
    ELEVENLABS_MODEL_ID: str = os.getenv("ELEVENLABS_MODEL_ID", "eleven_monolingual_v1")
    CREATE_VOICE_TIMEOUT_SECONDS: float = float(os.getenv("CREATE_VOICE_TIMEOUT_SECONDS", "120"))
    SYNTHESIZE_TIMEOUT_SECONDS: float = float(os.getenv("SYNTHESIZE_TIMEOUT_SECONDS", "180"))
    PROVIDER_REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("PROVIDER_REQUEST_TIMEOUT_SECONDS", "30"))

    # Retry
    RETRY_MAX_ATTEMPTS: int = int(os.getenv("RETRY_MAX_ATTEMPTS", "3"))
    RETRY_INITIAL_DELAY_MS: int = int(os.getenv("RETRY_INITIAL_DELAY_MS", "2000"))

    # Generation
    MAX_SAMPLES_PER_VOICE: int = int(os.getenv("MAX_SAMPLES_PER_VOICE", "25"))
    MIN_VALID_SAMPLES: int = int(os.getenv("MIN_VALID_SAMPLES", "1"))
    MAX_SAMPLE_SIZE_MB: int = int(os.getenv("MAX_SAMPLE_SIZE_MB", "10"))
    SAMPLE_DOWNLOAD_TIMEOUT_SECONDS: float = float(os.getenv("SAMPLE_DOWNLOAD_TIMEOUT_SECONDS", "30"))
    GENERATION_COOLDOWN_SECONDS: int = int(os.getenv("GENERATION_COOLDOWN_SECONDS", "300"))
    VOICE_NAME_PREFIX: str = os.getenv("VOICE_NAME_PREFIX", "Voice_")

    # Cleanup
    STUCK_VOICE_THRESHOLD_SECONDS: int = int(os.getenv("STUCK_VOICE_THRESHOLD_SECONDS", "3600"))
    CLEANUP_SECRET: str = os.getenv("CLEANUP_SECRET", "")

    # Storage
    STORAGE_DIR: str = os.getenv("STORAGE_DIR", "storage")
    STORAGE_PUBLIC_URL: str = os.getenv("STORAGE_PUBLIC_URL", "/api/v1/storage")
    MAX_UPLOAD_SIZE_MB: int = int(os.getenv("MAX_UPLOAD_SIZE_MB", "25"))

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if self.JWT_SECRET_KEY == "":
            errors.append("JWT_SECRET_KEY is not set - using auto-generated key (not persistent across restarts)")
        if not self.ELEVENLABS_API_KEY:
            errors.append("ELEVENLABS_API_KEY is not set - voice generation and cleanup will fail")
        if not self.CLEANUP_SECRET and self.APP_ENV == "production":
            errors.append("CLEANUP_SECRET is not set - the cleanup endpoint is callable without credentials")
        if self.MIN_VALID_SAMPLES < 1:
            errors.append("MIN_VALID_SAMPLES must be at least 1 - falling back to 1")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
