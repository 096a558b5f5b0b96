#promotion_engine\config.py

from typing import Literal, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from promotion_engine.core.image_reference import DEFAULT_REGISTRY_HOST_PATTERN
from promotion_engine.core.transformer import ExternalContainerPolicy


class PromotionSettings(BaseSettings):
    """Promotion engine configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # AWS
    aws_region: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("aws_region", "aws_default_region"),
    )
    registry_host_pattern: str = DEFAULT_REGISTRY_HOST_PATTERN

    # History
    history_backend: Literal["ssm", "postgres", "memory"] = "ssm"
    ssm_parameter_prefix: str = "/promotion-engine/history"
    history_max_entries: int = Field(default=10, ge=1)

    # Notifications
    slack_webhook_url: Optional[str] = None

    # Pipeline
    poll_interval_seconds: float = Field(default=10.0, gt=0)
    convergence_timeout_seconds: float = Field(default=900.0, gt=0)
    retag_max_workers: int = Field(default=4, ge=1)
    external_container_policy: ExternalContainerPolicy = ExternalContainerPolicy.DROP

    @field_validator("history_backend", mode="before")
    @classmethod
    def _lower_backend(cls, value):
        return value.lower() if isinstance(value, str) else value

    @field_validator("external_container_policy", mode="before")
    @classmethod
    def _lower_policy(cls, value):
        return value.lower() if isinstance(value, str) else value

    @field_validator("slack_webhook_url", mode="before")
    @classmethod
    def _blank_webhook_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


settings = PromotionSettings()
