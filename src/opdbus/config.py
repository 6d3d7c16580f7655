"""Configuration settings for the application."""

from typing import (
    List,
    Literal,
)

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # Define the settings with default values and types
    # These will be loaded from environment variables or a .env file if not provided
    API_PORT: int = 8000
    DEBUG: bool = True
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical

    # Provider Configuration
    PROVIDER: str = "stub"  # Provider id active at startup
    OPENAI_API_KEY: str | None = None
    OPENAI_MODELS: List[str] = ["gpt-4o-mini", "gpt-4o"]
    ANTHROPIC_API_KEY: str | None = None
    ANTHROPIC_MODELS: List[str] = ["claude-3-5-haiku-latest", "claude-3-5-sonnet-latest"]
    PROVIDER_MAX_TOKENS: int = 4096

    # Orchestration
    STEP_DELAY_SECONDS: float = 0.6  # Pause before each plan step is revealed
    UNRESOLVED_TOOL_POLICY: Literal["reject", "delegate"] = "reject"

    # Registry
    REGISTRY_URL: str | None = None  # Read the registry from another opdbus API when set
    REGISTRY_LATENCY_SECONDS: float = 0.0

    class Config:
        """Configuration for Pydantic settings."""

        # Load environment variables from a .env file
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
