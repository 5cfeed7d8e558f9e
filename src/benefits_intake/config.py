"""Configuration system for the benefits intake core.

This module provides Pydantic Settings-based configuration with environment
variable support and sensible defaults for the application wizard.

Usage:
    from benefits_intake.config import IntakeConfig

    # Load from environment variables and .env file
    config = IntakeConfig()

    # Which policy governs the Income step?
    print(config.navigation.policy_for(StepId.INCOME))

    # Prefill settings
    if config.prefill.enabled:
        print(config.prefill.simulated_latency)
"""

import logging
from typing import Any, Optional

import structlog
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from benefits_intake.exceptions import ConfigurationError
from benefits_intake.models.enums import NavigationPolicy, StepId


# Identity and household steps block on errors; later steps commit as entered.
DEFAULT_STEP_POLICIES: dict[StepId, NavigationPolicy] = {
    StepId.PROGRAM_SELECTION: NavigationPolicy.STRICT,
    StepId.APPLICANT_INFO: NavigationPolicy.STRICT,
    StepId.HOUSEHOLD: NavigationPolicy.STRICT,
    StepId.INCOME: NavigationPolicy.LENIENT,
    StepId.RESOURCES: NavigationPolicy.LENIENT,
    StepId.PROGRAM_SPECIFIC: NavigationPolicy.LENIENT,
    StepId.AUTHORIZED_REPRESENTATIVE: NavigationPolicy.LENIENT,
    StepId.REVIEW: NavigationPolicy.STRICT,
}


class NavigationConfig(BaseSettings):
    """Navigation policy settings.

    Each step is governed by exactly one ``NavigationPolicy``. Supports
    environment variables with the prefix BENEFITS_INTAKE_NAVIGATION_.

    Environment Variables:
        BENEFITS_INTAKE_NAVIGATION_DEFAULT_POLICY: Policy forced on every step
        BENEFITS_INTAKE_NAVIGATION_STEP_POLICIES: JSON object of step -> policy
        BENEFITS_INTAKE_NAVIGATION_REVALIDATE_ON_SUBMIT: Re-check every
            committed step (including person references) on submit
    """

    model_config = SettingsConfigDict(
        env_prefix="BENEFITS_INTAKE_NAVIGATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_policy: Optional[NavigationPolicy] = Field(
        default=None,
        description="When set, applies to every step and overrides step_policies",
    )
    step_policies: dict[StepId, NavigationPolicy] = Field(
        default_factory=lambda: dict(DEFAULT_STEP_POLICIES),
        description="Policy per step; steps not listed are strict",
    )
    revalidate_on_submit: bool = Field(
        default=True,
        description="Re-validate all committed steps against the household on submit",
    )

    def policy_for(self, step: StepId) -> NavigationPolicy:
        """Return the policy governing ``next`` on a step."""
        if self.default_policy is not None:
            return self.default_policy
        return self.step_policies.get(step, NavigationPolicy.STRICT)


class PrefillConfig(BaseSettings):
    """Document prefill settings.

    Environment Variables:
        BENEFITS_INTAKE_PREFILL_ENABLED: Enable document prefill
        BENEFITS_INTAKE_PREFILL_SIMULATED_LATENCY: Demo provider delay in seconds
        BENEFITS_INTAKE_PREFILL_MAX_FILES: Maximum documents per batch
        BENEFITS_INTAKE_PREFILL_MAX_FILE_BYTES: Maximum size of one document
    """

    model_config = SettingsConfigDict(
        env_prefix="BENEFITS_INTAKE_PREFILL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    enabled: bool = Field(
        default=True,
        description="Enable document prefill",
    )
    simulated_latency: float = Field(
        default=1.5,
        ge=0,
        le=30,
        description="Delay used by the demo provider, in seconds",
    )
    max_files: int = Field(
        default=10,
        gt=0,
        le=50,
        description="Maximum documents accepted in one batch",
    )
    max_file_bytes: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Documents larger than this are skipped",
    )


class IntakeConfig(BaseSettings):
    """Root configuration for the benefits intake core.

    Environment Variables:
        BENEFITS_INTAKE_ENV: Environment name (development, staging, production, test)
        BENEFITS_INTAKE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)

    Example:
        # Load all configuration from environment
        config = IntakeConfig()

        # Override specific settings
        config = IntakeConfig(
            navigation=NavigationConfig(default_policy=NavigationPolicy.STRICT),
            prefill=PrefillConfig(simulated_latency=0),
        )
    """

    model_config = SettingsConfigDict(
        env_prefix="BENEFITS_INTAKE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment settings
    env: str = Field(
        default="development",
        description="Environment name (development, staging, production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    # Nested configuration
    navigation: NavigationConfig = Field(default_factory=NavigationConfig)
    prefill: PrefillConfig = Field(default_factory=PrefillConfig)

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment name."""
        valid_envs = {"development", "staging", "production", "test"}
        v_lower = v.lower().strip()
        if v_lower not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {valid_envs}")
        return v_lower

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper().strip()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {valid_levels}")
        return v_upper

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.env == "development"

    @property
    def is_debug(self) -> bool:
        """Check if debug logging is enabled."""
        return self.log_level == "DEBUG"


def load_config(**overrides: Any) -> IntakeConfig:
    """Load configuration, reporting invalid settings as ConfigurationError.

    Raises:
        ConfigurationError: If any setting fails validation
    """
    try:
        return IntakeConfig(**overrides)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(part) for part in first.get("loc", ()))
        raise ConfigurationError(
            f"Invalid configuration: {first.get('msg', 'invalid value')}",
            config_key=key or None,
            expected=first.get("type"),
            actual=first.get("input"),
        ) from e


def configure_logging(config: IntakeConfig) -> None:
    """Apply the configured log level to structlog."""
    level = logging.getLevelName(config.log_level)
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))


__all__ = [
    "DEFAULT_STEP_POLICIES",
    "NavigationConfig",
    "PrefillConfig",
    "IntakeConfig",
    "load_config",
    "configure_logging",
]
