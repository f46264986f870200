"""
Configuration module using Pydantic Settings.

Loads upstream endpoints, credentials, token budgets and prompt defaults
from environment variables. Supports .env files for local development.
"""

from functools import lru_cache

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant. Follow the user's instructions carefully. "
    "Respond using markdown."
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # OpenAI
    openai_api_key: SecretStr = SecretStr("")
    openai_api_host: str = "https://api.openai.com"
    embedding_model: str = "text-embedding-ada-002"
    completion_max_tokens: int = Field(default=1000, gt=0)
    completion_temperature: float = Field(default=0.0, ge=0.0, le=2.0)

    # Context window
    tokenizer_encoding: str = "cl100k_base"
    token_budgets: dict[str, int] = Field(
        default={"standard": 3000, "advanced": 6000},
    )
    # Tier for requests that name a model but no tier
    model_tiers: dict[str, str] = Field(default={"gpt-4": "advanced"})
    default_tier: str = "standard"
    default_system_prompt: str = DEFAULT_SYSTEM_PROMPT

    # Pinecone
    pinecone_api_key: SecretStr = SecretStr("")
    pinecone_index_host: str = ""
    pinecone_namespace: str = "default"
    retrieval_top_k: int = Field(default=3, gt=0)

    # Prompt rendering
    reference_link_template: str = "https://www.youtube.com/watch?v={ytid}"
    assistant_name: str = "Shadow"

    # Notification webhook
    notification_webhook_url: str = ""

    # Timeouts (seconds)
    request_timeout_seconds: float = Field(default=60.0, gt=0)
    notification_timeout_seconds: float = Field(default=10.0, gt=0)

    # Application Insights
    applicationinsights_connection_string: str = ""

    # App
    log_level: str = "INFO"
    allowed_origins: str = "http://localhost:3000"

    @model_validator(mode="after")
    def _default_tier_has_budget(self) -> "Settings":
        if self.default_tier not in self.token_budgets:
            msg = f"default_tier {self.default_tier!r} has no entry in token_budgets"
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def _model_tiers_have_budgets(self) -> "Settings":
        unknown = sorted(set(self.model_tiers.values()) - set(self.token_budgets))
        if unknown:
            msg = f"model_tiers refer to tiers without a budget: {unknown}"
            raise ValueError(msg)
        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    def token_budget_for(self, tier: str | None, model_id: str | None = None) -> int:
        """
        Return the token budget for a model tier.

        A missing or unknown tier falls back to the tier mapped from the
        model id, then to the default tier.
        """
        if tier and tier in self.token_budgets:
            return self.token_budgets[tier]
        if model_id and model_id in self.model_tiers:
            return self.token_budgets[self.model_tiers[model_id]]
        return self.token_budgets[self.default_tier]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Factory for cached settings instance."""
    return Settings()
