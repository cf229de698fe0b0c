"""
Runtime configuration for the A/B test engine.

This module centralizes environment-driven settings: which text diff
alignment is used for detailed comparisons, how long a substituted
generation may run, and the labels applied to captured snapshots.

Configuration is read-only at runtime.
"""

from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from abtest.app.diff.text_diff import DiffStrategy


class ABTestConfig(BaseModel):
    """
    Runtime configuration for the A/B test engine.

    Values are parsed once and remain immutable.
    """

    # ------------------------------------------------------------------
    # Diff behaviour
    # ------------------------------------------------------------------

    DIFF_STRATEGY: DiffStrategy = Field(
        DiffStrategy.POSITIONAL,
        description=(
            "Alignment used for line/word comparisons. Positional suits "
            "short configuration fields; edit_distance is opt-in for "
            "long-form text."
        ),
    )

    # ------------------------------------------------------------------
    # Substitution limits
    # ------------------------------------------------------------------

    GENERATION_TIMEOUT_SECONDS: Optional[float] = Field(
        300.0,
        description=(
            "Upper bound on one substituted generation call. None disables "
            "the bound. Restoration runs after a timeout."
        ),
    )

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------

    DEFAULT_PRESET_LABEL: str = Field(
        "Unknown Preset",
        description="Preset label used when the host reports none",
    )

    CURRENT_SNAPSHOT_NAME: str = Field(
        "Current Config",
        description="Name given to a live capture placed in slot B",
    )

    # ------------------------------------------------------------------
    # Validators (Pydantic v2)
    # ------------------------------------------------------------------

    @field_validator("GENERATION_TIMEOUT_SECONDS")
    @classmethod
    def timeout_positive(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError(
                "GENERATION_TIMEOUT_SECONDS must be positive or unset."
            )
        return v

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> "ABTestConfig":
        """
        Load configuration from environment variables.

        An empty or zero ABTEST_GENERATION_TIMEOUT_SECONDS disables the
        generation bound.
        """

        raw_strategy = os.getenv("ABTEST_DIFF_STRATEGY", "positional")
        try:
            strategy = DiffStrategy(raw_strategy.strip().lower())
        except ValueError:
            allowed = sorted(s.value for s in DiffStrategy)
            raise ValueError(
                f"Unsupported ABTEST_DIFF_STRATEGY '{raw_strategy}'. "
                f"Allowed values: {allowed}"
            ) from None

        raw_timeout = os.getenv("ABTEST_GENERATION_TIMEOUT_SECONDS", "300")
        timeout: Optional[float] = (
            float(raw_timeout) if raw_timeout.strip() else None
        )
        if timeout == 0:
            timeout = None

        return cls(
            DIFF_STRATEGY=strategy,
            GENERATION_TIMEOUT_SECONDS=timeout,
            DEFAULT_PRESET_LABEL=os.getenv(
                "ABTEST_DEFAULT_PRESET_LABEL", "Unknown Preset"
            ),
            CURRENT_SNAPSHOT_NAME=os.getenv(
                "ABTEST_CURRENT_SNAPSHOT_NAME", "Current Config"
            ),
        )

    model_config = {
        "frozen": True,
    }
