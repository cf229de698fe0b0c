"""
Snapshot value types.

A snapshot is an immutable capture of a prompt set: the keyed prompt
fragments, the ordering lists that enable or disable them, and the
provenance of the capture. Snapshots are compared, applied and restored,
but never mutated in place.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ----------------------------------------------------------------------
# Prompt fragments
# ----------------------------------------------------------------------
class PromptFragment(BaseModel):
    """
    One keyed unit of prompt text within a snapshot.

    Host-specific keys that are not modelled here are preserved as
    extra fields so a capture can be written back without loss.
    """

    identifier: str = Field(
        ...,
        description="Opaque key, unique within a snapshot",
    )

    name: Optional[str] = Field(
        None,
        description="Display label",
    )

    content: Optional[str] = Field(
        None,
        description="Text body",
    )

    role: Optional[str] = Field(
        "system",
        description="Free-form role tag",
    )

    marker: Optional[bool] = Field(
        False,
        description="Structural placeholder, not real content",
    )

    system_prompt: Optional[bool] = Field(
        False,
        description="Host-defined system prompt flag",
    )

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
    )


# ----------------------------------------------------------------------
# Ordering
# ----------------------------------------------------------------------
class OrderItem(BaseModel):
    identifier: str

    # None when the host item carries no flag
    enabled: Optional[bool] = None

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
    )


class OrderEntry(BaseModel):
    """
    A named ordering list asserting which fragments are active.

    Items may reference identifiers that no fragment carries; those are
    treated as unresolved, never as errors.
    """

    character_id: Optional[Union[int, str]] = Field(
        None,
        description="Owner of this ordering list",
    )

    order: Optional[Tuple[OrderItem, ...]] = Field(
        None,
        description="Ordered items with per-list enabled flags",
    )

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
    )

    def find(self, identifier: str) -> Optional[OrderItem]:
        for item in self.order or ():
            if item.identifier == identifier:
                return item
        return None


class ActivePrompt(BaseModel):
    """
    A resolved fragment as it appears in an ordering list.
    """

    fragment: PromptFragment
    enabled: Optional[bool]

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )


# ----------------------------------------------------------------------
# Snapshot
# ----------------------------------------------------------------------
class Snapshot(BaseModel):
    """
    Immutable capture of a prompt set.

    IMPORTANT:
    - `prompts` identifiers are unique
    - `prompt_order` may reference unknown identifiers
    - renaming or assigning an id returns a new snapshot
    """

    id: Optional[int] = Field(
        None,
        description="Assigned by the snapshot store; absent when transient",
    )

    prompts: Tuple[PromptFragment, ...] = Field(
        default_factory=tuple,
    )

    prompt_order: Tuple[OrderEntry, ...] = Field(
        default_factory=tuple,
        alias="promptOrder",
    )

    preset_name: str = Field(
        "",
        alias="presetName",
        description="Provenance label",
    )

    enabled_count: int = Field(
        0,
        ge=0,
        alias="enabledCount",
        description="Enabled, non-marker order items at capture time",
    )

    timestamp: int = Field(
        0,
        description="Capture instant (epoch milliseconds)",
    )

    name: str = Field(
        "",
        description="User-facing label",
    )

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
    )

    @field_validator("prompts")
    @classmethod
    def identifiers_unique(
        cls, v: Tuple[PromptFragment, ...]
    ) -> Tuple[PromptFragment, ...]:
        seen = set()
        for fragment in v:
            if fragment.identifier in seen:
                raise ValueError(
                    f"Duplicate prompt identifier '{fragment.identifier}'"
                )
            seen.add(fragment.identifier)
        return v

    # ------------------------------------------------------------------
    # Derived views (read-only)
    # ------------------------------------------------------------------

    def prompt_map(self) -> Dict[str, PromptFragment]:
        return {p.identifier: p for p in self.prompts}

    def resolve_enabled(self, identifier: str) -> Optional[bool]:
        """
        Enabled flag of `identifier` in the first ordering list that
        contains it, or None when no list does.
        """
        for entry in self.prompt_order:
            item = entry.find(identifier)
            if item is not None:
                return item.enabled
        return None

    def active_prompts(self) -> List[ActivePrompt]:
        """
        Fragments in ordering-list order, markers and unresolved
        identifiers skipped.
        """
        by_id = self.prompt_map()
        active: List[ActivePrompt] = []

        for entry in self.prompt_order:
            for item in entry.order or ():
                fragment = by_id.get(item.identifier)
                if fragment is None or fragment.marker:
                    continue
                active.append(
                    ActivePrompt(fragment=fragment, enabled=item.enabled)
                )

        return active

    def content_prompt_count(self) -> int:
        return sum(
            1 for p in self.prompts if not p.marker and not p.system_prompt
        )

    @staticmethod
    def count_enabled(
        prompts: Tuple[PromptFragment, ...],
        prompt_order: Tuple[OrderEntry, ...],
    ) -> int:
        markers = {p.identifier for p in prompts if p.marker}
        return sum(
            1
            for entry in prompt_order
            for item in entry.order or ()
            if item.enabled and item.identifier not in markers
        )

    # ------------------------------------------------------------------
    # Copies
    # ------------------------------------------------------------------

    def renamed(self, name: str) -> "Snapshot":
        return self.model_copy(update={"name": name})

    def with_id(self, snapshot_id: int) -> "Snapshot":
        return self.model_copy(update={"id": snapshot_id})

    # ------------------------------------------------------------------
    # Host / storage shapes
    # ------------------------------------------------------------------

    def host_prompts(self) -> List[Dict[str, Any]]:
        """
        Fresh copies of the fragments in the host's raw shape.
        """
        return [
            p.model_dump(mode="json", exclude_unset=True)
            for p in self.prompts
        ]

    def host_prompt_order(self) -> List[Dict[str, Any]]:
        return [
            e.model_dump(mode="json", exclude_unset=True)
            for e in self.prompt_order
        ]

    def to_record(self) -> Dict[str, Any]:
        """
        Persisted record layout used by snapshot stores.
        """
        record: Dict[str, Any] = {
            "prompts": self.host_prompts(),
            "promptOrder": self.host_prompt_order(),
            "presetName": self.preset_name,
            "enabledCount": self.enabled_count,
            "timestamp": self.timestamp,
            "name": self.name,
        }
        if self.id is not None:
            record["id"] = self.id
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Snapshot":
        return cls.model_validate(record)
