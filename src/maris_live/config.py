# Area: Shared
"""
maris_live.config - Live game configuration
===========================================

Tunables for range checks, location decay, assignment distribution and
I/O timeouts. Values come from defaults, then ``MARIS_LIVE_*`` environment
variables (a ``.env`` file is read first), then explicit overrides.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

logger = logging.getLogger("maris_live.config")

ENV_PREFIX = "MARIS_LIVE_"


class RangeHysteresis(str, Enum):
    """
    Which radius applies depending on the remembered range state.

    STICKY:  enter at ``point_range``, leave beyond ``point_active_range``.
    INVERSE: enter at ``point_active_range``, leave beyond ``point_range``.
    """
    STICKY = "sticky"
    INVERSE = "inverse"


class LiveConfig(BaseModel):
    """Validated configuration for one game manager."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    point_range: float = Field(default=10.0, gt=0)
    point_active_range: float = Field(default=15.0, gt=0)
    range_hysteresis: RangeHysteresis = RangeHysteresis.STICKY
    location_decay_seconds: float = Field(default=30.0, gt=0)
    location_update_interval: float = Field(default=5.0, gt=0)
    io_timeout_seconds: float = Field(default=10.0, gt=0)
    point_min_clean: int = Field(default=3, ge=0)
    point_assignment_count: int = Field(default=2, ge=1)

    @model_validator(mode="after")
    def _check_ranges(self) -> "LiveConfig":
        if self.point_active_range < self.point_range:
            raise ValueError("point_active_range must be >= point_range")
        return self

    def enter_radius(self) -> float:
        """Radius a user must be within to enter a point's range."""
        if self.range_hysteresis is RangeHysteresis.STICKY:
            return self.point_range
        return self.point_active_range

    def exit_radius(self) -> float:
        """Radius a user already in range must stay within to remain."""
        if self.range_hysteresis is RangeHysteresis.STICKY:
            return self.point_active_range
        return self.point_range


def _env_values() -> Dict[str, Any]:
    """Collect config values from MARIS_LIVE_* environment variables."""
    values: Dict[str, Any] = {}
    for name in LiveConfig.model_fields:
        raw = os.environ.get(ENV_PREFIX + name.upper())
        if raw is not None:
            values[name] = raw
    return values


def load_config(
    overrides: Optional[Dict[str, Any]] = None,
    env_file: Optional[str] = None,
    use_env: bool = True,
) -> LiveConfig:
    """
    Build a LiveConfig.

    Args:
        overrides: Values that take precedence over the environment
        env_file: Explicit .env path; the default search is used if None
        use_env: If False, skip the environment entirely

    Returns:
        Validated LiveConfig

    Raises:
        ValueError: If any value fails validation
    """
    values: Dict[str, Any] = {}
    if use_env:
        load_dotenv(env_file)
        values.update(_env_values())
    if overrides:
        values.update(overrides)

    try:
        config = LiveConfig(**values)
    except ValidationError as e:
        bad_keys = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
        raise ValueError(f"Invalid config values: {bad_keys or str(e)}") from e

    logger.debug("Live config loaded: %s", config.model_dump())
    return config
