from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

from coursegen.errors import ConfigurationError


class Settings(BaseSettings):
    """Application configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Groq LLM
    groq_api_key: str = ""
    llm_model: str = "llama-3.1-8b-instant"
    tutorial_model: str = "llama-3.3-70b-versatile"  # Tutorials need the stronger model
    llm_timeout: int = 30  # seconds
    llm_max_tokens: int = 2048
    tutorial_max_tokens: int = 4096
    llm_temperature: float = 0.7

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0

    # App Settings
    debug: bool = True
    environment: str = "development"
    log_level: str = "INFO"
    session_timeout: int = 60 * 60 * 4  # 4 hours
    session_lock_timeout: int = 120  # seconds; outlasts one content load


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()


def validate_settings(settings: Settings) -> Settings:
    """
    Fail fast on missing credentials.

    Called once at startup so call sites never have to check
    for an API key themselves.
    """
    if not settings.groq_api_key:
        raise ConfigurationError("GROQ_API_KEY is not set")
    if settings.llm_timeout <= 0:
        raise ConfigurationError("LLM_TIMEOUT must be positive")
    return settings
