"""
Configuration management for deckgen
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load environment variables with error handling
try:
    load_dotenv()
except (PermissionError, FileNotFoundError):
    # Fall back to the process environment
    pass


class AIConfig(BaseSettings):
    """Remote generation service settings"""

    # OpenAI Configuration
    openai_api_key: Optional[str] = Field(default=None)
    openai_base_url: str = Field(default="https://api.openai.com/v1")
    openai_model: str = Field(default="gpt-4-turbo-preview")
    image_model: str = Field(default="dall-e-3")

    # Generation Parameters
    temperature: float = Field(default=0.7)
    max_tokens: int = Field(default=2000)
    slide_max_tokens: int = Field(default=500)
    top_p: float = Field(default=1.0)
    presence_penalty: float = Field(default=0.0)
    frequency_penalty: float = Field(default=0.0)

    # Image Parameters
    image_size: str = Field(default="1024x1024")
    image_quality: str = Field(default="hd")
    image_style: str = Field(default="natural")
    kids_image_quality: str = Field(default="standard")
    kids_image_style: str = Field(default="vivid")

    # Timeouts (seconds)
    request_timeout: float = Field(default=30.0)
    image_request_timeout: float = Field(default=60.0)

    # Retry Policy
    max_retries: int = Field(default=3, ge=1)
    retry_base_delay: float = Field(default=2.0, ge=0)
    rate_limit_cooldown: float = Field(default=60.0, ge=0)

    # Logging
    log_ai_requests: bool = Field(default=False)

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore"
    }

    def is_configured(self) -> bool:
        """Check if a credential is available from the environment"""
        return bool(self.openai_api_key)


class AppConfig(BaseSettings):
    """Application configuration"""

    # Storage
    data_dir: Path = Field(default=Path("data"))

    # Pipeline
    max_concurrency: int = Field(default=4, ge=1)
    min_text_length: int = Field(default=100, ge=1)
    max_text_length: int = Field(default=50000, ge=1)
    min_slide_count: int = Field(default=3, ge=1)
    max_slide_count: int = Field(default=50, ge=1)
    filter_image_prompts: bool = Field(default=False)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore"
    }


def load_settings(**overrides) -> Tuple[AIConfig, AppConfig]:
    """Build fresh configuration objects from the environment.

    Keyword overrides are routed to whichever config declares the field.
    """
    ai_fields = {k: v for k, v in overrides.items() if k in AIConfig.model_fields}
    app_fields = {k: v for k, v in overrides.items() if k in AppConfig.model_fields}
    unknown = set(overrides) - set(ai_fields) - set(app_fields)
    if unknown:
        logger.warning(f"Ignoring unknown settings: {sorted(unknown)}")
    return AIConfig(**ai_fields), AppConfig(**app_fields)
