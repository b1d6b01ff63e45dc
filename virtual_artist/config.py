"""Configuration management for the virtual artist career engine."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import yaml


@dataclass
class LevelBand:
    """One row of the level table: experience range [min_experience, max_experience)."""
    name: str
    min_experience: int
    max_experience: Optional[int] = None  # None = open-ended


def _default_level_bands() -> List[LevelBand]:
    return [
        LevelBand("Fan", 0, 100),
        LevelBand("Artist", 100, 500),
        LevelBand("Producer", 500, 2000),
        LevelBand("A&R", 2000, 5000),
        LevelBand("Label Executive", 5000, 10000),
        LevelBand("Music Mogul", 10000, None),
    ]


@dataclass
class ProgressionSettings:
    """Experience table and per-event awards."""
    level_bands: List[LevelBand] = field(default_factory=_default_level_bands)
    card_experience_award: int = 50
    card_influence_award: int = 10


@dataclass
class EconomySettings:
    """Credit economy settings."""
    renewal_period_days: int = 30
    welcome_credits: int = 500
    additional_generation_cost: int = 500
    monthly_credits: Dict[str, int] = field(default_factory=lambda: {
        "Free": 0,
        "Tier2": 1000,
        "Tier3": 3000,
        "Pro": 9000,
    })
    # -1 = unlimited
    free_generations: Dict[str, int] = field(default_factory=lambda: {
        "Free": 2,
        "Tier2": 7,
        "Tier3": 17,
        "Pro": -1,
    })


@dataclass
class ScoringSettings:
    """Release scoring thresholds. Hand-tuned display cut-offs."""
    positive_quality: float = 0.7
    negative_quality: float = 0.4
    alias_similarity: float = 0.9
    family_similarity: float = 0.7
    unknown_similarity: float = 0.5
    cross_family_similarity: float = 0.3
    family_shift_intensity: float = 0.3
    cross_family_shift_intensity: float = 0.8
    fame_impact_pivot: int = 50
    fame_impact_step: int = 10
    fanbase_quality_pivot: float = 0.4
    fanbase_per_quality: int = 1000
    mastery_threshold: float = 1.3
    pioneer_shift_intensity: float = 0.7
    high_quality: float = 0.8
    trend_threshold: float = 0.1
    fan_favorite_count: int = 3


@dataclass
class GrowthSettings:
    """Daily growth tick settings."""
    fame_divisor: float = 20.0
    min_base_growth: int = 1
    streak_bonus: float = 0.02
    streak_cap: int = 30
    streams_per_fame: int = 20
    fans_per_fame: float = 0.5
    downloads_per_fame: float = 1.0
    physical_per_fame: float = 0.1


@dataclass
class ChartSettings:
    """Chart ranking settings."""
    chart_size: int = 100


@dataclass
class BillingSettings:
    """Billing collaborator settings."""
    api_token_env_var: str = "BILLING_API_TOKEN"
    api_base_url: str = ""
    timeout_seconds: float = 30.0

    @property
    def api_token(self) -> Optional[str]:
        return os.environ.get(self.api_token_env_var)

    @property
    def configured(self) -> bool:
        return bool(self.api_base_url and self.api_token)


@dataclass
class DatabaseSettings:
    """PostgreSQL settings."""
    url_env_var: str = "DATABASE_URL"

    @property
    def url(self) -> str:
        return os.environ.get(self.url_env_var, "")


@dataclass
class Settings:
    """Application settings."""
    progression: ProgressionSettings = field(default_factory=ProgressionSettings)
    economy: EconomySettings = field(default_factory=EconomySettings)
    scoring: ScoringSettings = field(default_factory=ScoringSettings)
    growth: GrowthSettings = field(default_factory=GrowthSettings)
    charts: ChartSettings = field(default_factory=ChartSettings)
    billing: BillingSettings = field(default_factory=BillingSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)


def _load_progression(data: dict) -> ProgressionSettings:
    bands = data.pop("level_bands", None)
    progression = ProgressionSettings(**data)
    if bands:
        progression.level_bands = [LevelBand(**band) for band in bands]
    return progression


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Load settings from YAML configuration file."""
    if config_path is None:
        config_path = Path(__file__).parent.parent / "config" / "settings.yaml"

    if not config_path.exists():
        return Settings()

    with config_path.open() as f:
        data = yaml.safe_load(f) or {}

    return Settings(
        progression=_load_progression(dict(data.get("progression", {}))),
        economy=EconomySettings(**data.get("economy", {})),
        scoring=ScoringSettings(**data.get("scoring", {})),
        growth=GrowthSettings(**data.get("growth", {})),
        charts=ChartSettings(**data.get("charts", {})),
        billing=BillingSettings(**data.get("billing", {})),
        database=DatabaseSettings(**data.get("database", {})),
    )


# Global settings instance
settings = load_settings()
