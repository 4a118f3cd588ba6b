"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Scoring tables stay in code; only tunable defaults live here
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()


class ScoringConfig(BaseModel):
    """Defaults applied when a health snapshot is assembled from logged data."""

    default_symptom_severity: int = Field(
        default=5, ge=1, le=10, description="Severity given to symptoms logged without one"
    )
    default_sleep_score: float = Field(
        default=70.0, ge=0.0, le=100.0, description="Sleep score assumed when nothing is logged"
    )
    sleep_average_window: int = Field(
        default=7, gt=0, description="Number of recent sleep entries in the rolling average"
    )


class AccessKeyConfig(BaseModel):
    """Clinician access key settings."""

    ttl_hours: float = Field(default=24.0, gt=0.0, description="Hours before an issued key expires")
    max_generation_attempts: int = Field(
        default=5, gt=0, description="Attempts to find an unused display key before giving up"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    access_keys: AccessKeyConfig = Field(default_factory=AccessKeyConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    scoring_config = ScoringConfig(
        default_symptom_severity=int(os.getenv("DEFAULT_SYMPTOM_SEVERITY", "5")),
        default_sleep_score=float(os.getenv("DEFAULT_SLEEP_SCORE", "70")),
        sleep_average_window=int(os.getenv("SLEEP_AVERAGE_WINDOW", "7")),
    )

    access_key_config = AccessKeyConfig(
        ttl_hours=float(os.getenv("ACCESS_KEY_TTL_HOURS", "24")),
        max_generation_attempts=int(os.getenv("ACCESS_KEY_MAX_ATTEMPTS", "5")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        scoring=scoring_config,
        access_keys=access_key_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"✅ Configuration loaded for {config.environment} environment")
    except Exception as e:
        print(f"❌ Configuration validation failed: {e}")
        raise


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\n🔧 CONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\n🩺 SCORING CONFIGURATION")
    print(f"Default Symptom Severity: {config.scoring.default_symptom_severity}")
    print(f"Default Sleep Score: {config.scoring.default_sleep_score}")
    print(f"Sleep Average Window: {config.scoring.sleep_average_window} entries")

    print("\n🔑 ACCESS KEY CONFIGURATION")
    print(f"Key Lifetime: {config.access_keys.ttl_hours}h")
    print(f"Generation Attempts: {config.access_keys.max_generation_attempts}")


if __name__ == "__main__":
    validate_config()
    print_config_summary()
