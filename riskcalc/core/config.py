"""Core configuration management module."""
from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, field_validator

from riskcalc.allocation import AllocationSettings


class SystemConfig(BaseModel):
    """System-level configuration."""

    model_config = ConfigDict(use_enum_values=True)

    name: str = "RiskCalc"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_dir: str | None = None
    log_backup_days: int = 14

    @field_validator("log_backup_days")
    @classmethod
    def validate_backup_days(cls, v: int) -> int:
        if v < 1:
            raise ValueError("log_backup_days must be at least 1")
        return v


class AllocationConfig(BaseModel):
    """Risk budget defaults, in percent of capital."""

    model_config = ConfigDict(use_enum_values=True)

    total_risk: float = 2.0
    max_risk: float = 1.0
    usefulness_share: float = 0.8

    @field_validator("total_risk", "max_risk")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        """Negative budgets are not supported."""
        if v < 0:
            raise ValueError("Risk percentages must not be negative")
        return v

    @field_validator("usefulness_share")
    @classmethod
    def validate_share(cls, v: float) -> float:
        """Validate that usefulness_share is between 0 and 1."""
        if not 0 <= v <= 1:
            raise ValueError("usefulness_share must be between 0 and 1")
        return v

    def to_settings(self) -> AllocationSettings:
        return AllocationSettings(
            total_risk=self.total_risk,
            max_risk=self.max_risk,
            usefulness_share=self.usefulness_share,
        )


class AccountConfig(BaseModel):
    """Trading account used for lot sizing."""

    model_config = ConfigDict(use_enum_values=True)

    deposit: float = 10_000.0
    currency: str = "USD"
    lot_step: float = 0.01

    @field_validator("deposit", "lot_step")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("deposit and lot_step must be positive")
        return v

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Validate and upper-case the deposit currency."""
        if not isinstance(v, str) or not v.strip():
            raise ValueError("currency must be a non-empty string")
        return v.strip().upper()


class PricingConfig(BaseModel):
    """Quote source configuration."""

    model_config = ConfigDict(use_enum_values=True)

    enabled: bool = True
    timeout_seconds: float = 10.0
    refresh_interval_seconds: int = 60

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout_seconds must be positive")
        return v


class StorageConfig(BaseModel):
    """Location of the JSON trade store."""

    model_config = ConfigDict(use_enum_values=True)

    data_dir: str = "data"


class Settings(BaseModel):
    """Root settings configuration."""

    model_config = ConfigDict(use_enum_values=True)

    system: SystemConfig = SystemConfig()
    allocation: AllocationConfig = AllocationConfig()
    account: AccountConfig = AccountConfig()
    pricing: PricingConfig = PricingConfig()
    storage: StorageConfig = StorageConfig()


def load_settings(path: Path | str) -> Settings:
    """Load settings from a YAML configuration file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Settings instance with loaded configuration.

    Raises:
        FileNotFoundError: If configuration file does not exist.
        yaml.YAMLError: If YAML is invalid.
        ValueError: If configuration is invalid.
    """
    config_path = Path(path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        raw_config = {}

    return Settings.model_validate(raw_config)
