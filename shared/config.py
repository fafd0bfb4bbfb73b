"""
Shared configuration management for render-rules.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="RENDER_RULES_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local", description="Deployment environment")
    log_level: str = Field(default="info", description="Log level for configure_logging")

    # Evaluation defaults
    treat_missing_row_as_false: bool = Field(
        default=True,
        description="Evaluate a missing row as false instead of reporting an error"
    )
    max_rule_depth: Optional[int] = Field(
        default=None,
        ge=0,
        description="Maximum rule nesting depth; unlimited when unset"
    )


def get_config(**overrides) -> BaseConfig:
    """Get configuration, reading the environment and optional overrides."""
    return BaseConfig(**overrides)
