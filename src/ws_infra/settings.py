# src/ws_infra/settings.py
import logging
from typing import Optional, List
from pydantic import Field, validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


VALID_CAPABILITIES = [
    "CAPABILITY_IAM",
    "CAPABILITY_NAMED_IAM",
    "CAPABILITY_AUTO_EXPAND",
]


class Settings(BaseSettings):
    """
    Single source of truth for infrastructure deployment settings.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Command-line options override these values for a single invocation.

    Usage:
        from ws_infra.settings import get_settings
        settings = get_settings()
        stack_name = settings.stack_name
    """

    # Stack Settings
    stack_name: str = Field(
        default="ws-api-infrastructure",
        description="CloudFormation stack name"
    )

    # AWS Core Settings
    aws_region: str = Field(
        default="us-east-1",
        alias="AWS_DEFAULT_REGION"
    )

    aws_profile: Optional[str] = Field(
        default=None,
        alias="AWS_PROFILE",
        description="Named profile from the AWS CLI configuration (SSO etc.)"
    )

    aws_endpoint_url: Optional[str] = Field(
        default=None,
        alias="AWS_ENDPOINT_URL",
        description="Alternate endpoint, e.g. LocalStack or a moto server"
    )

    # Template Configuration
    template_file: str = Field(
        default="cloudformation/infrastructure.yaml",
        description="CloudFormation template describing the resource graph"
    )

    parameters_file: str = Field(
        default="cloudformation/parameters.json",
        description="Parameter overrides applied at deploy time"
    )

    key_pair_placeholder: str = Field(
        default="YOUR_KEY_PAIR_NAME_HERE",
        description="Token left in the parameters file until the key pair is filled in"
    )

    capabilities: List[str] = Field(
        default=["CAPABILITY_IAM"],
        description="Capabilities acknowledged when creating change sets"
    )

    # Change Set Configuration
    change_set_prefix: str = Field(
        default="ws-infra-",
        description="Prefix for generated change set names"
    )

    fail_on_empty_changeset: bool = Field(
        default=False,
        description="Treat a change set without changes as a failure"
    )

    # Waiter Configuration
    stack_waiter_delay: int = Field(
        default=30,
        description="Seconds between stack status polls"
    )

    stack_waiter_max_attempts: int = Field(
        default=120,
        description="Stack status polls before giving up"
    )

    change_set_waiter_delay: int = Field(
        default=5,
        description="Seconds between change set status polls"
    )

    change_set_waiter_max_attempts: int = Field(
        default=120,
        description="Change set status polls before giving up"
    )

    # Logging
    log_level: str = Field(
        default="WARNING",
        description="Logging level"
    )

    @validator('log_level', pre=True)
    def normalize_log_level(cls, v):
        """Accept lower-case level names."""
        return v.upper() if isinstance(v, str) else v

    @validator('log_level')
    def validate_log_level(cls, v):
        """Validate log level is one the logging module knows."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v not in valid_levels:
            raise ValueError(f"Invalid log_level: {v}. Must be one of {valid_levels}")
        return v

    @validator('capabilities')
    def validate_capabilities(cls, v):
        """Validate capabilities are CloudFormation capability names."""
        for capability in v:
            if capability not in VALID_CAPABILITIES:
                raise ValueError(f"Invalid capability: {capability}. Must be one of {VALID_CAPABILITIES}")
        return v

    @validator('stack_waiter_delay', 'stack_waiter_max_attempts',
               'change_set_waiter_delay', 'change_set_waiter_max_attempts')
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("Waiter delay and attempts must be at least 1")
        return v

    @property
    def logging_level(self) -> int:
        """Numeric level for logging.basicConfig."""
        return getattr(logging, self.log_level)

    def stack_waiter_config(self) -> dict:
        """WaiterConfig for stack create/update/delete waiters."""
        return {
            'Delay': self.stack_waiter_delay,
            'MaxAttempts': self.stack_waiter_max_attempts,
        }

    def change_set_waiter_config(self) -> dict:
        """WaiterConfig for the change set create waiter."""
        return {
            'Delay': self.change_set_waiter_delay,
            'MaxAttempts': self.change_set_waiter_max_attempts,
        }

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
