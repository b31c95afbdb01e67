import os
from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_LLM_MODELS = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-haiku-20240307",
}


def get_database_url() -> str:
    """Get database URL, using an absolute SQLite path for local development.

    Set DATABASE_URL to a PostgreSQL connection string in any shared environment.
    """
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        return db_url

    db_path = Path(__file__).parent.parent.parent / "boxmatch.db"
    db_url = f"sqlite:///{db_path.resolve()}"
    logger.warning(f"Using SQLite database (local dev only): {db_url}")
    return db_url


class Settings(BaseSettings):
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")
    rate_limit_backend: str = Field(
        default="redis",
        validation_alias="RATE_LIMIT_BACKEND",
        description="Counter store for request admission: 'redis' or 'memory'",
    )
    find_match_rate_limit_per_minute: int = Field(default=20, validation_alias="FIND_MATCH_RATE_LIMIT_PER_MINUTE")

    llm_provider: str = Field(default="openai", validation_alias="LLM_PROVIDER")
    llm_model: str | None = Field(
        default=None,
        validation_alias="LLM_MODEL",
        description="Model for every LLM call; unset means the provider default",
    )
    llm_intent_model: str | None = Field(default=None, validation_alias="LLM_INTENT_MODEL")
    llm_explanation_model: str | None = Field(default=None, validation_alias="LLM_EXPLANATION_MODEL")
    openai_api_key: str = Field(default="", validation_alias="OPENAI_API_KEY")
    anthropic_api_key: str = Field(default="", validation_alias="ANTHROPIC_API_KEY")
    llm_timeout_seconds: float = Field(default=10.0, validation_alias="LLM_TIMEOUT_SECONDS")
    llm_max_tokens: int = Field(default=500, validation_alias="LLM_MAX_TOKENS")
    llm_rate_limit_per_minute: int = Field(default=10, validation_alias="LLM_RATE_LIMIT_PER_MINUTE")

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    log_json: bool = Field(default=False, validation_alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("llm_provider")
    @classmethod
    def validate_llm_provider(cls, value: str) -> str:
        provider = value.lower()
        if provider not in {"openai", "anthropic"}:
            logger.warning(f"Unsupported LLM_PROVIDER '{value}'. Defaulting to openai.")
            return "openai"
        return provider

    @field_validator("llm_model", "llm_intent_model", "llm_explanation_model")
    @classmethod
    def blank_model_is_unset(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("rate_limit_backend")
    @classmethod
    def validate_rate_limit_backend(cls, value: str) -> str:
        backend = value.lower()
        if backend not in {"redis", "memory"}:
            logger.warning(f"Unsupported RATE_LIMIT_BACKEND '{value}'. Defaulting to redis.")
            return "redis"
        if backend == "memory":
            logger.warning("In-memory rate limiting is per-process; use redis when running more than one worker.")
        return backend

    @field_validator("llm_timeout_seconds")
    @classmethod
    def validate_llm_timeout(cls, value: float) -> float:
        """Non-positive timeouts fall back to the 10 second default."""
        if value <= 0:
            logger.warning(f"LLM_TIMEOUT_SECONDS must be positive, got {value}. Defaulting to 10.")
            return 10.0
        return value

    @property
    def llm_api_key(self) -> str:
        """Credential for the configured provider (empty when unset)."""
        if self.llm_provider == "anthropic":
            return self.anthropic_api_key
        return self.openai_api_key

    def model_name_for(self, purpose: str) -> str:
        """Model name for "intent" or "explanation" calls.

        A purpose-specific setting wins over LLM_MODEL, which wins over the
        provider default.
        """
        specific = self.llm_intent_model if purpose == "intent" else self.llm_explanation_model
        return specific or self.llm_model or DEFAULT_LLM_MODELS[self.llm_provider]


settings = Settings()
