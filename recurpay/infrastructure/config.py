"""Configuration for the billing program.

Values come from keyword arguments or from ``RECURPAY_*`` environment
variables, optionally loaded from a ``.env`` file first.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..domain.constants import (
    DEFAULT_PROGRAM_ID,
    MAX_PERIOD_DURATION,
    MIN_PERIOD_DURATION,
    PAYMENT_GRACE_PERIOD,
)


class BillingConfig(BaseModel):
    """Strongly-typed settings for one billing program deployment."""

    model_config = ConfigDict(strict=True, frozen=True, extra="forbid")

    program_id: str = Field(
        default=DEFAULT_PROGRAM_ID,
        min_length=1,
        max_length=32,
        description="Namespace mixed into every derived address",
    )
    grace_period_seconds: int = Field(
        default=PAYMENT_GRACE_PERIOD,
        ge=0,
        description="How long before the due time collection is already allowed",
    )
    min_period_seconds: int = Field(
        default=MIN_PERIOD_DURATION, gt=0, description="Shortest billing period"
    )
    max_period_seconds: int = Field(
        default=MAX_PERIOD_DURATION, gt=0, description="Longest billing period"
    )

    # Payment processor sweep
    processor_batch_size: int = Field(
        default=100, gt=0, le=10_000, description="Max collections per sweep"
    )
    processor_interval_seconds: float = Field(
        default=60.0, gt=0, description="Pause between sweeps"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper

    @model_validator(mode="after")
    def validate_period_bounds(self) -> BillingConfig:
        if self.min_period_seconds > self.max_period_seconds:
            raise ValueError("min_period_seconds must not exceed max_period_seconds")
        if self.grace_period_seconds >= self.min_period_seconds:
            raise ValueError("grace_period_seconds must be shorter than the minimum period")
        return self

    @classmethod
    def from_env(
        cls, prefix: str = "RECURPAY_", env_file: str | Path | None = None
    ) -> BillingConfig:
        """Create configuration from environment variables.

        Args:
            prefix: Environment variable prefix
            env_file: Optional ``.env`` file loaded first (existing variables win)

        Returns:
            Configuration instance populated from environment
        """
        if env_file is not None:
            load_dotenv(env_file, override=False)

        env_data: dict[str, object] = {}
        for field_name, field_info in cls.model_fields.items():
            env_value = os.getenv(f"{prefix}{field_name.upper()}")
            if env_value is None:
                continue

            # Convert string to appropriate type
            field_type = field_info.annotation
            if field_type is int:
                env_data[field_name] = int(env_value)
            elif field_type is float:
                env_data[field_name] = float(env_value)
            else:
                env_data[field_name] = env_value

        return cls(**env_data)
