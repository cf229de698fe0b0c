from __future__ import annotations

from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


class DiffKind(str, Enum):
    """
    Per-line and per-word diff classification.

    CHANGED applies to lines only; EMPTY is the placeholder a side gets
    when the other side has a line it lacks.
    """

    SAME = "same"
    ADDED = "added"
    REMOVED = "removed"
    EMPTY = "empty"
    CHANGED = "changed"


class WordDiffRecord(BaseModel):
    text: str
    kind: DiffKind

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )


class LineDiffRecord(BaseModel):
    text: str
    kind: DiffKind

    # Populated only when kind == CHANGED
    words: Tuple[WordDiffRecord, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )
