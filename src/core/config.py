"""Configuration models and YAML loader for the flight browser."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from src.core.schemas import SortAlgorithm, SortKey, SortOrder

CRITERIA_PROVIDERS = ("heuristic", "anthropic", "openai", "ollama")


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/flights.db"


class PaginationConfig(BaseModel):
    """Paging and prefetch limits."""

    page_size: int = Field(default=500, ge=1)
    prefetch_threshold: int = Field(default=1000, ge=0)
    load_more_margin: int = Field(default=50, ge=0)


class PipelineConfig(BaseModel):
    """Recompute pipeline tuning and default sort selection."""

    debounce_seconds: float = Field(default=0.25, ge=0.0)
    fast_path: bool = True
    yield_every: int = Field(default=2048, ge=1)
    sort_key: SortKey = SortKey.DATE
    sort_order: SortOrder = SortOrder.ASCENDING
    sort_algorithm: SortAlgorithm = SortAlgorithm.MERGE


class CriteriaParserConfig(BaseModel):
    """Natural-language criteria parser selection."""

    provider: str = "heuristic"
    model: str | None = None

    @field_validator("provider")
    @classmethod
    def provider_known(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in CRITERIA_PROVIDERS:
            msg = f"provider must be one of {list(CRITERIA_PROVIDERS)}, got '{v}'"
            raise ValueError(msg)
        return v


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    criteria_parser: CriteriaParserConfig = Field(default_factory=CriteriaParserConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
