from __future__ import annotations

from typing import Any, Dict, Optional
from enum import Enum
from datetime import datetime, timezone
from uuid import uuid4, UUID

from pydantic import BaseModel, Field, ConfigDict


# ----------------------------------------------------------------------
# Event Types (Finite)
# ----------------------------------------------------------------------
class ABTestEventType(str, Enum):
    """
    Progression events emitted while comparing and substituting snapshots.

    NOTE:
    This enum is finite. New entries must preserve observational semantics.
    """

    # ------------------------------------------------------------------
    # A/B run lifecycle
    # ------------------------------------------------------------------
    AB_TEST_STARTED = "ab_test_started"
    AB_TEST_COMPLETED = "ab_test_completed"

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------
    COMPARISON_COMPUTED = "comparison_computed"

    # ------------------------------------------------------------------
    # State substitution
    # ------------------------------------------------------------------
    SUBSTITUTION_STARTED = "substitution_started"
    SNAPSHOT_APPLIED = "snapshot_applied"
    STATE_RESTORED = "state_restored"

    # ------------------------------------------------------------------
    # Generation (observational, non-authoritative)
    # ------------------------------------------------------------------
    GENERATION_STARTED = "generation_started"
    GENERATION_COMPLETED = "generation_completed"
    GENERATION_FAILED = "generation_failed"


# ----------------------------------------------------------------------
# Event Model
# ----------------------------------------------------------------------
class ABTestEvent(BaseModel):
    """
    An immutable observation of a step in a comparison or substitution.

    Events are strictly observational and never drive control flow.
    """

    event_id: UUID = Field(default_factory=uuid4)
    run_id: str = Field(..., description="Identifier of the A/B run")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    event_type: ABTestEventType

    # Optional contextual metadata (slot, snapshot name, counts, etc.)
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )
