# src/restyle/core/config.py
"""
Configuration schema and loading for restyle.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction. Runtime components do
not consume these models directly; they build small runtime dataclasses via
``from_settings()`` factories (see engine.retry.RetryConfig and
engine.batching.BatchSizerConfig).
"""

from pathlib import Path
from typing import Self

from pydantic import BaseModel, Field, field_validator, model_validator


class BatchSettings(BaseModel):
    """Adaptive batch sizing.

    Large batches keep per-item overhead low; any failure drops straight to
    ``min_size`` and the size grows back by ``growth_step`` after
    ``success_threshold`` clean batches in a row.

    Example YAML:
        batch:
          initial_size: 100
          min_size: 25
          max_size: 100
    """

    model_config = {"frozen": True, "extra": "forbid"}

    initial_size: int = Field(default=100, gt=0, description="Batch size for the first batch")
    min_size: int = Field(default=25, gt=0, description="Batch size after any failure")
    max_size: int = Field(default=100, gt=0, description="Ceiling for batch growth")
    success_threshold: int = Field(default=5, gt=0, description="Clean batches in a row before growing")
    growth_step: int = Field(default=25, gt=0, description="Size increase after the threshold is reached")
    inter_batch_delay_ms: int = Field(default=10, ge=0, description="Cooperative pause between batches")

    @model_validator(mode="after")
    def _validate_size_bounds(self) -> Self:
        if self.min_size > self.max_size:
            raise ValueError(f"min_size ({self.min_size}) cannot exceed max_size ({self.max_size})")
        if not self.min_size <= self.initial_size <= self.max_size:
            raise ValueError(f"initial_size ({self.initial_size}) must be within [{self.min_size}, {self.max_size}]")
        return self


class RetrySettings(BaseModel):
    """Retry behavior for individual item mutations.

    Only failures classified as transient are retried. ``max_retries`` counts
    retries, not attempts: 3 means up to 4 attempts in total.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    max_retries: int = Field(default=3, ge=0, description="Additional attempts after the first")
    backoff_delays_ms: tuple[int, ...] = Field(
        default=(1000, 2000, 4000),
        description="Delay before each retry; the last value is reused past the end",
    )

    @field_validator("backoff_delays_ms")
    @classmethod
    def validate_delays(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if not v:
            raise ValueError("backoff_delays_ms must contain at least one delay")
        if any(delay < 0 for delay in v):
            raise ValueError(f"backoff delays must be non-negative, got {list(v)}")
        return v


class ProgressSettings(BaseModel):
    """Progress notification throttling."""

    model_config = {"frozen": True, "extra": "forbid"}

    throttle_interval_ms: int = Field(default=150, ge=0, description="Minimum gap between progress updates")


class CheckpointSettings(BaseModel):
    """Checkpoint naming."""

    model_config = {"frozen": True, "extra": "forbid"}

    title_format: str = Field(
        default="{operation} - {timestamp}",
        description="Format for snapshot titles; receives {operation} and {timestamp}",
    )
    timestamp_format: str = Field(default="%Y-%m-%d %H:%M:%S", description="strftime format for {timestamp}")

    @field_validator("title_format")
    @classmethod
    def validate_title_format(cls, v: str) -> str:
        if "{operation}" not in v:
            raise ValueError("title_format must include {operation}")
        try:
            v.format(operation="x", timestamp="y")
        except (KeyError, IndexError) as e:
            raise ValueError(f"title_format has unknown placeholder: {e}") from e
        return v


class RestyleSettings(BaseModel):
    """Root settings for a replacement engine."""

    model_config = {"frozen": True, "extra": "forbid"}

    batch: BatchSettings = Field(default_factory=BatchSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    progress: ProgressSettings = Field(default_factory=ProgressSettings)
    checkpoint: CheckpointSettings = Field(default_factory=CheckpointSettings)


# Dynaconf bookkeeping keys that must not reach the Pydantic model
_DYNACONF_INTERNAL_KEYS = frozenset({"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"})


def _lowercase_keys(value: object) -> object:
    if isinstance(value, dict):
        return {str(k).lower(): _lowercase_keys(v) for k, v in value.items()}
    return value


def load_settings(config_path: Path) -> RestyleSettings:
    """Load settings from a YAML file with environment variable overrides.

    Precedence:
    1. Environment variables (RESTYLE_*) - highest priority
    2. Config file
    3. Defaults from the Pydantic schema - lowest priority

    Nested keys use a double underscore: ``RESTYLE_BATCH__MIN_SIZE=10``.

    Raises:
        FileNotFoundError: If the config file doesn't exist
        pydantic.ValidationError: If the merged configuration is invalid
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="RESTYLE",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    raw_config = {k.lower(): _lowercase_keys(v) for k, v in dynaconf_settings.as_dict().items() if k not in _DYNACONF_INTERNAL_KEYS}
    return RestyleSettings.model_validate(raw_config)
