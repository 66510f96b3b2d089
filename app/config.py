"""
Configuration settings for the manuscript analyzer backend.
Loads environment variables and provides application-wide settings.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Gemini Configuration
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-1.5-flash"
    GEMINI_FALLBACK_MODEL: str = "gemini-1.5-pro"
    # Tried last, after the configured primary and fallback models
    GEMINI_LEGACY_MODELS: List[str] = ["gemini-1.0-pro", "gemini-pro"]
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_TIMEOUT: float = 25.0  # seconds per generateContent request

    # Retry / Fallback Configuration
    MODEL_MAX_ATTEMPTS: int = 3  # attempts per model, only rate limits retry
    RATE_LIMIT_BACKOFF_SECONDS: List[float] = [2.0, 4.0, 8.0]
    # Upper bound on a single wait, even when the provider asks for longer
    MAX_RETRY_AFTER_SECONDS: float = 10.0
    # Total sleep allowed across all model calls of one request
    BACKOFF_BUDGET_SECONDS: float = 20.0
    # Wall-clock allowance for every model call of one request, sleeps and
    # HTTP time included; kept under the ~60s platform timeout
    REQUEST_DEADLINE_SECONDS: float = 50.0

    # Analysis Configuration
    MAX_MODEL_TEXT_CHARS: int = 30000
    SCORING_SAMPLE_CHARS: int = 3000
    MIN_TEXT_CHARS: int = 100
    EVIDENCE_SNIPPET_COUNT: int = 6
    FALLBACK_BASE_SCORE: float = 3.2

    # Upload Configuration
    MAX_FILE_SIZE: int = 20 * 1024 * 1024  # 20 MB, Gemini's inline-data limit

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:3001"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into a list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    def get_model_order(self) -> List[str]:
        """Candidate model identifiers in fallback order, de-duplicated."""
        ordered: List[str] = []
        for name in [self.GEMINI_MODEL, self.GEMINI_FALLBACK_MODEL, *self.GEMINI_LEGACY_MODELS]:
            name = (name or "").strip()
            if name and name not in ordered:
                ordered.append(name)
        return ordered


# Global settings instance
settings = Settings()
