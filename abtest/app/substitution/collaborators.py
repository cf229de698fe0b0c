"""
Host collaborator interfaces.

The engine never owns live state. It reads and writes the host's prompt
configuration, transcript, generation backend and snapshot storage
through the protocols below, all in-process.
"""

from __future__ import annotations

from typing import (
    Any,
    Callable,
    Dict,
    List,
    MutableSequence,
    Optional,
    Protocol,
)

from pydantic import BaseModel, ConfigDict, Field

from abtest.app.schemas.snapshot import Snapshot


PartialTextCallback = Callable[[str], None]


# ----------------------------------------------------------------------
# Live prompt configuration
# ----------------------------------------------------------------------
class LiveConfiguration(BaseModel):
    """
    The host's current prompt configuration, in its raw shape.
    """

    prompts: List[Dict[str, Any]] = Field(default_factory=list)
    prompt_order: List[Dict[str, Any]] = Field(default_factory=list)
    preset_label: Optional[str] = None


class ConfigurationStore(Protocol):
    def get_current(self) -> Optional[LiveConfiguration]:
        """
        Current configuration, or None when the host is not initialized.
        """
        ...

    def replace(
        self,
        prompts: List[Dict[str, Any]],
        prompt_order: List[Dict[str, Any]],
    ) -> None:
        """
        Overwrite the live configuration and trigger a host re-render.
        """
        ...


# ----------------------------------------------------------------------
# Transcript
# ----------------------------------------------------------------------
class TranscriptMessage(BaseModel):
    speaker: str
    is_user: bool
    text: str
    timestamp: int = Field(
        ...,
        description="Send instant (epoch milliseconds)",
    )

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
    )


class Transcript(Protocol):
    user_name: str
    messages: MutableSequence[TranscriptMessage]


# ----------------------------------------------------------------------
# Generation backend
# ----------------------------------------------------------------------
class GenerationService(Protocol):
    async def generate(
        self,
        mode: str,
        *,
        skip_context_injection: bool,
        force_responder_name: bool,
        on_partial_text: PartialTextCallback,
    ) -> Optional[str]:
        """
        Generate one response from the live configuration and transcript.

        May raise. `on_partial_text` may be called any number of times,
        each call superseding the previous text.
        """
        ...


# ----------------------------------------------------------------------
# Snapshot storage
# ----------------------------------------------------------------------
class SnapshotStore(Protocol):
    def add(self, snapshot: Snapshot) -> int:
        ...

    def get_all(self) -> List[Snapshot]:
        ...

    def delete(self, snapshot_id: int) -> None:
        ...


# ----------------------------------------------------------------------
# Presets
# ----------------------------------------------------------------------
class PresetManager(Protocol):
    def list_presets(self) -> List[str]:
        ...

    def selected_preset(self) -> Optional[str]:
        ...

    async def select_preset(self, name: str) -> bool:
        """
        Switch the host to preset `name`. False if it does not exist.
        """
        ...
