"""
Configuration management using Pydantic Settings.

Environment variables (case-insensitive, also read from .env):
- LLM_PROVIDER: 'openai' (any OpenAI-compatible endpoint) or 'ollama'
- LLM_API_KEY / LLM_BASE_URL: credentials and endpoint for the provider
- DETECTION_MODEL, FAST_MODEL, DEFAULT_MODEL, QUALITY_MODEL: model per task/mode
- DATABASE_URL: SQLAlchemy database URL (cache, failure log, prompts)
- GENERATION_CONCURRENCY: number of concurrent generation workers
"""
import os
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_DB_PATH = os.path.join(
    os.path.dirname(os.path.dirname(__file__)),
    'explanations.db'
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # LLM Provider
    llm_provider: str = Field(default="openai")
    llm_api_key: Optional[str] = Field(default=None)
    llm_base_url: Optional[str] = Field(default=None)
    ollama_base_url: str = Field(default="http://localhost:11434")
    llm_timeout: int = Field(default=300)

    # Models
    detection_model: str = Field(default="gpt-4o-2024-11-20")
    fast_model: str = Field(default="gpt-4o-mini")
    default_model: str = Field(default="gpt-4o-2024-11-20")
    quality_model: str = Field(default="gpt-4.1")

    # Database Configuration
    database_url: str = Field(default=f"sqlite:///{DEFAULT_DB_PATH}")

    # Image Parameters
    render_dpi: int = Field(default=200)
    max_image_size: int = Field(default=2048)
    detection_max_width: int = Field(default=1500)
    crop_padding: int = Field(default=20)

    # Generation Scheduling
    generation_concurrency: int = Field(default=3, ge=1)
    retry_max_attempts: int = Field(default=3, ge=1)
    retry_initial_delay: float = Field(default=2.0, ge=0.0)

    # API Configuration
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8002)

    log_level: str = Field(default="INFO")

    def get_mode_models(self) -> dict:
        """Get explanation-mode to model mapping."""
        return {
            'fast': self.fast_model,
            'default': self.default_model,
            'quality': self.quality_model,
        }

    def get_client_config(self) -> dict:
        """Get LLM client configuration as dictionary."""
        return {
            'api_key': self.llm_api_key,
            'base_url': self.llm_base_url,
            'ollama_base_url': self.ollama_base_url,
            'ollama_timeout': self.llm_timeout,
        }


# Settings for the CLI / HTTP entry points; services receive theirs explicitly
settings = Settings()
