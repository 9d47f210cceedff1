"""
Configuration settings for LLM Middleware.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development.

Credentials are read here but never required here: each client decides
at call time whether an explicit option or one of these values applies,
and fails with a configuration error when neither is present.
"""

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from llm_middleware.models.llm_models import RetryPolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "LLM Middleware"
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"
    DEFAULT_PROVIDER: str = "ollama"

    # === Anthropic ===
    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_MODEL: str = "claude-3-5-sonnet-20241022"

    # === Gemini Direct API ===
    GEMINI_API_KEY: Optional[str] = None
    GOOGLE_API_KEY: Optional[str] = None  # Alternative name for the Gemini key
    GEMINI_MODEL: str = "gemini-1.5-pro"

    # === Vertex AI ===
    VERTEX_AI_MODEL: str = "gemini-2.5-flash"
    VERTEX_AI_REGION: str = "europe-west3"  # Frankfurt, EU data residency
    GOOGLE_CLOUD_PROJECT: Optional[str] = None
    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = None  # Path to service account JSON
    VERTEX_AI_SERVICE_ACCOUNT_KEY: Optional[str] = None  # Inline service account JSON

    # === Requesty (OpenAI-compatible router) ===
    REQUESTY_API_KEY: Optional[str] = None
    REQUESTY_MODEL: str = "openai/gpt-4o"
    REQUESTY_BASE_URL: str = "https://router.eu.requesty.ai/v1"

    # === Ollama (local) ===
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llama3.1:8b"
    OLLAMA_API_KEY: Optional[str] = None  # Only for authenticated reverse proxies

    # === LLM Generation Parameters ===
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 4096
    LLM_TIMEOUT: int = 180  # seconds, per HTTP attempt

    # === Retry ===
    RETRY_ENABLED: bool = True
    RETRY_MAX_RETRIES: int = 3
    RETRY_INITIAL_DELAY_MS: int = 1000
    RETRY_MULTIPLIER: float = 2.0  # Exponential backoff multiplier
    RETRY_MAX_DELAY_MS: int = 30000
    RETRY_JITTER: bool = True

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True  # Adapter request/latency/token metrics

    def default_retry_policy(self) -> RetryPolicy:
        """Retry policy used when a request does not carry its own."""
        return RetryPolicy(
            enabled=self.RETRY_ENABLED,
            max_retries=self.RETRY_MAX_RETRIES,
            initial_delay_ms=self.RETRY_INITIAL_DELAY_MS,
            multiplier=self.RETRY_MULTIPLIER,
            max_delay_ms=self.RETRY_MAX_DELAY_MS,
            jitter=self.RETRY_JITTER,
        )


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance shared by clients built without explicit settings."""
    return Settings()


class ModelConfig(BaseModel):
    """
    Resolved model configuration for one opaque config key (e.g. MODEL1).

    Lets callers pick a model by name in configuration rather than in code.
    """
    name: str = Field(..., min_length=1, description="Provider-specific model name")
    base_url: Optional[str] = Field(default=None, description="API base URL override")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    bearer_token: Optional[str] = Field(default=None, description="Auth token for the model endpoint")
    region: Optional[str] = Field(default=None, description="Vertex AI region, if any")


class _ModelConfigEnv(BaseSettings):
    """Reads <KEY>_NAME, <KEY>_URL, ... for a single key."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    NAME: Optional[str] = None
    URL: Optional[str] = None
    TEMPERATURE: float = 0.7
    TOKEN: Optional[str] = None
    REGION: Optional[str] = None


def resolve_model_config(key: str) -> ModelConfig:
    """
    Resolve an opaque model config key into a ModelConfig.

    Reads <KEY>_NAME (required), <KEY>_URL, <KEY>_TEMPERATURE,
    <KEY>_TOKEN and <KEY>_REGION from the environment.

    Args:
        key: Config key, e.g. "MODEL1"

    Returns:
        ModelConfig for the key

    Raises:
        LLMConfigurationError: <KEY>_NAME is not set
    """
    from llm_middleware.llm.exceptions import LLMConfigurationError

    prefix = f"{key.upper()}_"
    env = _ModelConfigEnv(_env_prefix=prefix)
    if not env.NAME:
        raise LLMConfigurationError(
            f"Model configuration '{key}' is incomplete: {prefix}NAME is not set",
            details={"key": key},
        )
    return ModelConfig(
        name=env.NAME,
        base_url=env.URL,
        temperature=env.TEMPERATURE,
        bearer_token=env.TOKEN,
        region=env.REGION,
    )
