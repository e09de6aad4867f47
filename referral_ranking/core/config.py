"""Configuration models and YAML loader for the referral ranking engine."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/referrals.db"


class ScoringConfig(BaseModel):
    """Weights and windows for response scoring.

    All components are additive. The cap is a ceiling for future weight
    additions; the default weights top out at 60.
    """

    success_rate_weight: float = Field(default=30.0, ge=0.0)
    candidate_active_bonus: float = Field(default=5.0, ge=0.0)
    recent_interest_bonus: float = Field(default=10.0, ge=0.0)
    direct_circle_bonus: float = Field(default=10.0, ge=0.0)
    indirect_circle_bonus: float = Field(default=5.0, ge=0.0)
    premium_bonus: float = Field(default=5.0, ge=0.0)
    score_cap: float = Field(default=100.0, gt=0.0, le=100.0)
    active_window_days: int = Field(default=7, ge=1)
    interest_window_days: int = Field(default=14, ge=1)

    @model_validator(mode="after")
    def direct_outranks_indirect(self) -> "ScoringConfig":
        if self.indirect_circle_bonus > self.direct_circle_bonus:
            msg = "indirect_circle_bonus must not exceed direct_circle_bonus"
            raise ValueError(msg)
        return self


class PaginationConfig(BaseModel):
    """Page size defaults for ranked listings."""

    default_limit: int = Field(default=10, ge=1)
    max_limit: int = Field(default=100, ge=1)

    @model_validator(mode="after")
    def default_within_max(self) -> "PaginationConfig":
        if self.default_limit > self.max_limit:
            msg = "default_limit must not exceed max_limit"
            raise ValueError(msg)
        return self


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
