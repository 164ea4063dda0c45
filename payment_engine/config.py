"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from enum import Enum

from pydantic_settings import BaseSettings, SettingsConfigDict


class WithdrawalDisputePolicy(str, Enum):
    """How disputes against withdrawal transactions are handled"""
    PERMISSIVE = "permissive"  # Allowed if available assets cover the disputed amount
    STRICT = "strict"          # Always denied


class EngineSettings(BaseSettings):
    """Payment engine configuration"""

    model_config = SettingsConfigDict(
        env_prefix="PAYMENT_ENGINE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Business rules
    withdrawal_dispute_policy: WithdrawalDisputePolicy = WithdrawalDisputePolicy.PERMISSIVE
    redispute_after_resolve: bool = True  # Resolved transactions return to CLEAN

    # Output
    sort_output: bool = False  # Order snapshot rows by client id

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text


# Global configuration instance
settings = EngineSettings()


def get_settings() -> EngineSettings:
    """Get global configuration instance"""
    return settings


def reload_settings() -> EngineSettings:
    """Reload configuration from environment"""
    global settings
    settings = EngineSettings()
    return settings
