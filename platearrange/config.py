"""Configuration management for platearrange."""

from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Arrangement settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ARRANGE_",
        extra="ignore",
    )

    # Spacing
    min_object_distance: float = Field(default=6.0, ge=0.0, description="Minimum clearance between objects (mm)")

    # Objective function
    big_item_threshold: float = Field(default=0.02, gt=0.0, lt=1.0, description="Bed area fraction above which an item is big")

    # Placer
    accuracy: float = Field(default=0.65, ge=0.0, le=1.0, description="Placement search accuracy (0-1)")
    parallel: bool = Field(default=True, description="Evaluate placement candidates in parallel")
    rotations: List[float] = Field(default_factory=lambda: [0.0], description="Rotation candidates in radians")

    # Overflow
    stride_padding: float = Field(default=1.2, gt=1.0, description="Bed width multiplier between overflow batches")
    first_bin_only: bool = Field(default=False, description="Only apply the first bed's placement")

    # Diagnostics
    log_level: str = Field(default="WARNING", description="Logging level")
    debug_svg_dir: Optional[Path] = Field(default=None, description="Directory for per-step SVG snapshots")


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def configure(settings: Settings) -> None:
    """Override global settings."""
    global _settings
    _settings = settings
