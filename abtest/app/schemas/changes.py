"""
Structural change records.

Each record describes one typed difference between the prompt sets of
two snapshots. Records are ephemeral: they are recomputed on every
comparison and never persisted.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ChangeType(str, Enum):
    REMOVED = "removed"
    ADDED = "added"
    CONTENT_CHANGED = "content_changed"
    ENABLED_CHANGED = "enabled_changed"


class _ChangeBase(BaseModel):
    identifier: str = Field(
        ...,
        description="Prompt identifier the change applies to",
    )

    name: Optional[str] = Field(
        None,
        description="Display label (taken from A, or B for additions)",
    )

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )


class RemovedChange(_ChangeBase):
    type: Literal[ChangeType.REMOVED] = ChangeType.REMOVED


class AddedChange(_ChangeBase):
    type: Literal[ChangeType.ADDED] = ChangeType.ADDED


class ContentChange(_ChangeBase):
    type: Literal[ChangeType.CONTENT_CHANGED] = ChangeType.CONTENT_CHANGED

    content_a: Optional[str] = None
    content_b: Optional[str] = None


class EnabledChange(_ChangeBase):
    """
    Enabled flag differs between snapshots.

    None means the identifier appears in no ordering list of that
    snapshot.
    """

    type: Literal[ChangeType.ENABLED_CHANGED] = ChangeType.ENABLED_CHANGED

    enabled_a: Optional[bool] = None
    enabled_b: Optional[bool] = None


ChangeRecord = Annotated[
    Union[RemovedChange, AddedChange, ContentChange, EnabledChange],
    Field(discriminator="type"),
]
