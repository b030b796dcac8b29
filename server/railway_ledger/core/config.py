"""Configuration settings for the reservation ledger."""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with Pydantic validation."""

    # Persistence settings
    database_url: str = Field(
        default="sqlite:///railway_ledger.db",
        description="SQLAlchemy database URL holding the ledger snapshot"
    )

    reference_counter_path: Path = Field(
        default=Path("pnr_counter.txt"),
        description="File holding the last issued booking reference"
    )

    transaction_log_path: Path = Field(
        default=Path("transactions.log"),
        description="Append-only transaction log"
    )

    # Environment settings
    environment: str = Field(
        default="development",
        description="Application environment"
    )

    # Logging settings
    log_level: str = Field(
        default="WARNING",
        description="Application log level"
    )

    # Booking policy settings
    reference_floor: int = Field(
        default=100_000_000_000,
        ge=0,
        description="Smallest value the reference counter may hold"
    )

    cancellation_refund_ratio: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Share of the fare refunded when a confirmed booking is cancelled"
    )

    max_booking_groups: int = Field(
        default=5,
        ge=1,
        description="Maximum number of groups in one multi-group booking"
    )

    max_riders_per_group: int = Field(
        default=6,
        ge=1,
        description="Maximum number of riders in one booking group"
    )

    # Payment simulation settings
    payment_success_rate: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Probability that a simulated payment succeeds"
    )

    payment_seed: Optional[int] = Field(
        default=None,
        description="Seed for the simulated payment gateway"
    )

    # Observability settings
    metrics_port: Optional[int] = Field(
        default=None,
        description="Serve Prometheus metrics on this port when set"
    )

    otlp_endpoint: Optional[str] = Field(
        default=None,
        description="OTLP collector endpoint for traces"
    )

    # Seed data settings
    seed_defaults: bool = Field(
        default=True,
        description="Populate default services and users when the snapshot is empty"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_environments = ["development", "test", "production"]
        if v.lower() not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level value."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @property
    def debug(self) -> bool:
        """Return True if in development mode."""
        return self.environment == "development"

    model_config = {
        "env_prefix": "RAILWAY_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }
