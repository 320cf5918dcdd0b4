"""Configuration management for the hairstyle pipeline."""

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiConfig(BaseModel):
    """Gemini API connection settings."""
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    analysis_model: str = "gemini-2.5-flash"
    suggestion_model: str = "gemini-2.5-pro"
    description_model: str = "gemini-2.5-flash"
    image_model: str = "gemini-2.5-flash-image"
    thinking_budget: int = 32768
    request_timeout: float = 120.0  # seconds, per HTTP request

    def model_url(self, model: str) -> str:
        return f"{self.base_url}/models/{model}:generateContent"


class PipelineConfig(BaseSettings):
    """Main pipeline configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        env_nested_delimiter="__",
        extra="ignore",
        populate_by_name=True,
    )

    # Credentials (loaded from .env)
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY"),
    )

    # Workflow
    suggestion_count: int = Field(default=4, ge=1)
    call_timeout_seconds: float = Field(default=120.0, gt=0)

    log_level: str = "INFO"

    # Sub-configs
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)


def load_config() -> PipelineConfig:
    """Load configuration from environment and defaults."""
    return PipelineConfig()
