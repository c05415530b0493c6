"""Configuration management for the campaign workflow service.

Provides Pydantic-based configuration classes for type-safe, validated configuration
management using environment variables.
"""

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Database configuration."""

    url: str | None = Field(default=None, description="Database connection URL")
    type: str = Field(default="postgresql", description="Database type")
    query_timeout: int = Field(default=30, description="Statement timeout in seconds")
    connect_timeout: int = Field(default=10, description="Connection timeout in seconds")
    pool_timeout: int = Field(default=30, description="Seconds to wait for a pooled connection")

    model_config = SettingsConfigDict(env_prefix="DATABASE_", case_sensitive=False)


class WorkflowEngineConfig(BaseSettings):
    """Defaults used by the stage engine when a tenant leaves a setting unset."""

    idempotency_ttl_seconds: int = Field(default=3600, description="Lifetime of cached transition results")
    default_reservation_ttl_hours: int = Field(default=72, description="Inventory hold TTL at the 90% stage")
    default_invoice_day: int = Field(default=15, description="Invoice day of month for billing schedules")
    default_timezone: str = Field(default="America/Los_Angeles", description="Timezone for billing schedules")
    default_contract_template_id: str = Field(default="contract_default", description="Fallback contract template")

    model_config = SettingsConfigDict(env_prefix="WORKFLOW_", case_sensitive=False)

    @field_validator("default_invoice_day")
    @classmethod
    def validate_invoice_day(cls, v):
        """Invoice day must exist in every month."""
        if not 1 <= v <= 28:
            raise ValueError("WORKFLOW_DEFAULT_INVOICE_DAY must be between 1 and 28")
        return v

    @field_validator("idempotency_ttl_seconds", "default_reservation_ttl_hours")
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("TTL values must be positive")
        return v


class NotificationConfig(BaseSettings):
    """Notification delivery configuration."""

    in_app_enabled: bool = Field(default=True, description="Persist in-app notification rows")
    slack_webhook_url: str | None = Field(default=None, description="Slack webhook for workflow events")

    model_config = SettingsConfigDict(env_prefix="NOTIFICATIONS_", case_sensitive=False)


class AppConfig(BaseSettings):
    """Main application configuration."""

    debug: bool = Field(default=False, description="Enable debug mode")
    environment: str = Field(default="development", description="Environment: production, staging, or development")

    # BaseSettings subclasses read from environment; mypy doesn't understand this pattern
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    workflow: WorkflowEngineConfig = Field(default_factory=WorkflowEngineConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)


# Global configuration instance
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next call re-reads the environment."""
    global _config
    _config = None


def validate_configuration() -> None:
    """Validate all configuration at startup.

    Raises:
        RuntimeError: If configuration validation fails
    """
    try:
        config = get_config()

        print("✅ Configuration validation passed")
        print(f"   Database: {'✅ Configured' if config.database.url else '❌ Not configured'}")
        print(f"   Idempotency TTL: {config.workflow.idempotency_ttl_seconds}s")
        print(f"   Reservation TTL: {config.workflow.default_reservation_ttl_hours}h")
        slack_status = "✅ Configured" if config.notifications.slack_webhook_url else "⚪ Not configured"
        print(f"   Slack: {slack_status}")

    except Exception as e:
        raise RuntimeError(f"Configuration validation failed: {str(e)}") from e


def get_workflow_config() -> WorkflowEngineConfig:
    """Get stage engine defaults."""
    return get_config().workflow


def is_production() -> bool:
    """Check if running in production environment.

    Returns:
        bool: True if ENVIRONMENT=production, False otherwise
    """
    return os.getenv("ENVIRONMENT", "development").lower() == "production"
