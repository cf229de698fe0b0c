"""
In-process fakes for host collaborators.

IMPORTANT:
- Deterministic
- CI-safe
- No external services
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

import anyio

from abtest.app.schemas.snapshot import Snapshot
from abtest.app.substitution.collaborators import (
    LiveConfiguration,
    PartialTextCallback,
    TranscriptMessage,
)


FIXED_NOW = 1_700_000_000.0


def fixed_clock() -> float:
    return FIXED_NOW


def make_snapshot(
    prompts: List[Dict[str, Any]],
    order: Optional[List[Dict[str, Any]]] = None,
    name: str = "snapshot",
) -> Snapshot:
    """
    Build a snapshot from raw prompt dicts and a single ordering list.
    """
    prompt_order = [{"character_id": 100001, "order": order}] if order is not None else []
    return Snapshot(
        prompts=prompts,
        prompt_order=prompt_order,
        preset_name="Test Preset",
        timestamp=0,
        name=name,
    )


def sample_prompts() -> List[Dict[str, Any]]:
    return [
        {
            "identifier": "main",
            "name": "Main Prompt",
            "content": "Write the next reply.",
            "role": "system",
            "system_prompt": True,
        },
        {
            "identifier": "chatHistory",
            "name": "Chat History",
            "marker": True,
            "system_prompt": True,
        },
        {
            "identifier": "jailbreak",
            "name": "Post-History Instructions",
            "content": "Stay in character.",
            "injection_depth": 4,
        },
    ]


def sample_order() -> List[Dict[str, Any]]:
    return [
        {
            "character_id": 100001,
            "order": [
                {"identifier": "main", "enabled": True},
                {"identifier": "chatHistory", "enabled": True},
                {"identifier": "jailbreak", "enabled": False},
            ],
        }
    ]


# ----------------------------------------------------------------------
# Configuration store
# ----------------------------------------------------------------------
class FakeConfigurationStore:
    def __init__(
        self,
        prompts: Optional[List[Dict[str, Any]]] = None,
        prompt_order: Optional[List[Dict[str, Any]]] = None,
        preset_label: Optional[str] = "Default",
        available: bool = True,
    ) -> None:
        self.prompts = prompts if prompts is not None else sample_prompts()
        self.prompt_order = (
            prompt_order if prompt_order is not None else sample_order()
        )
        self.preset_label = preset_label
        self.available = available

        # Observability for tests
        self.render_count = 0
        self.replaced_with: List[List[Dict[str, Any]]] = []

    def get_current(self) -> Optional[LiveConfiguration]:
        if not self.available:
            return None
        # Hands out the live lists, as a host would
        live = LiveConfiguration(preset_label=self.preset_label)
        live.prompts = self.prompts
        live.prompt_order = self.prompt_order
        return live

    def replace(self, prompts, prompt_order) -> None:
        self.prompts = prompts
        self.prompt_order = prompt_order
        self.render_count += 1
        self.replaced_with.append(copy.deepcopy(prompts))

    def state(self) -> Dict[str, Any]:
        return copy.deepcopy(
            {"prompts": self.prompts, "prompt_order": self.prompt_order}
        )


# ----------------------------------------------------------------------
# Transcript
# ----------------------------------------------------------------------
class FakeTranscript:
    def __init__(self, messages: Optional[List[TranscriptMessage]] = None) -> None:
        self.user_name = "User"
        self.messages: List[TranscriptMessage] = (
            messages
            if messages is not None
            else [
                TranscriptMessage(
                    speaker="Assistant",
                    is_user=False,
                    text="Hello there.",
                    timestamp=1,
                ),
                TranscriptMessage(
                    speaker="User",
                    is_user=True,
                    text="Hi!",
                    timestamp=2,
                ),
            ]
        )


# ----------------------------------------------------------------------
# Generation service
# ----------------------------------------------------------------------
class FakeGenerationService:
    """
    Scripted generator.

    mode:
    - "success": streams `partials`, then returns `final`
    - "stream_only": streams `partials`, then returns None
    - "fail": streams `partials`, then raises RuntimeError
    - "hang": sleeps far beyond any test timeout
    """

    def __init__(
        self,
        *,
        mode: str = "success",
        partials: Optional[List[str]] = None,
        final: Optional[str] = "Final reply.",
        config_store: Optional[FakeConfigurationStore] = None,
        transcript: Optional[FakeTranscript] = None,
    ) -> None:
        self._mode = mode
        self._partials = partials or []
        self._final = final
        self._config_store = config_store
        self._transcript = transcript

        # Observability for tests
        self.calls: List[Dict[str, Any]] = []
        self.seen_prompts: List[List[Dict[str, Any]]] = []
        self.seen_messages: List[List[TranscriptMessage]] = []

    async def generate(
        self,
        mode: str,
        *,
        skip_context_injection: bool,
        force_responder_name: bool,
        on_partial_text: PartialTextCallback,
    ) -> Optional[str]:
        self.calls.append(
            {
                "mode": mode,
                "skip_context_injection": skip_context_injection,
                "force_responder_name": force_responder_name,
            }
        )

        if self._config_store is not None:
            self.seen_prompts.append(copy.deepcopy(self._config_store.prompts))
        if self._transcript is not None:
            self.seen_messages.append(list(self._transcript.messages))

        for text in self._partials:
            on_partial_text(text)
            await anyio.sleep(0)

        if self._mode == "fail":
            raise RuntimeError("backend rejected the request")

        if self._mode == "hang":
            await anyio.sleep(3600)

        if self._mode == "stream_only":
            return None

        return self._final


# ----------------------------------------------------------------------
# Presets
# ----------------------------------------------------------------------
class FakePresetManager:
    def __init__(
        self,
        presets: Dict[str, List[Dict[str, Any]]],
        config_store: FakeConfigurationStore,
        selected: Optional[str] = None,
    ) -> None:
        self._presets = presets
        self._config_store = config_store
        self._selected = selected

    def list_presets(self) -> List[str]:
        return list(self._presets)

    def selected_preset(self) -> Optional[str]:
        return self._selected

    async def select_preset(self, name: str) -> bool:
        if name not in self._presets:
            return False
        self._selected = name
        self._config_store.prompts = copy.deepcopy(self._presets[name])
        self._config_store.preset_label = name
        return True
