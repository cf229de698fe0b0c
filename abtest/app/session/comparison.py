"""
Comparison session.

Holds the A/B slot selection and the loaded snapshot list for one user
session, and wires the diff engine and the substitution controller to
them. Selection state lives here, not in module globals.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from abtest.app.config import ABTestConfig
from abtest.app.diff.structural import diff_snapshots
from abtest.app.diff.text_diff import LineDiff, compare_change
from abtest.app.events import (
    ABTestEvent,
    ABTestEventEmitter,
    ABTestEventType,
    emit_safely,
    resolve_emitter,
)
from abtest.app.schemas.changes import ChangeRecord, ContentChange
from abtest.app.schemas.snapshot import Snapshot
from abtest.app.session.result import ABTestRun
from abtest.app.substitution.collaborators import (
    ConfigurationStore,
    GenerationService,
    PresetManager,
    SnapshotStore,
    Transcript,
)
from abtest.app.substitution.controller import (
    ERROR_PREFIX,
    OutputSink,
    SubstitutionController,
)
from abtest.app.substitution.snapshot_model import Clock, capture

logger = logging.getLogger(__name__)


class ComparisonSession:
    """
    Slot selection and orchestration for one A/B comparison.

    Slot rules:
    - selecting while A is empty, or while both slots are full, puts the
      snapshot in A and clears B
    - otherwise the snapshot fills B
    """

    def __init__(
        self,
        *,
        store: SnapshotStore,
        controller: Optional[SubstitutionController] = None,
        config_store: Optional[ConfigurationStore],
        transcript: Transcript,
        generator: Optional[GenerationService] = None,
        config: Optional[ABTestConfig] = None,
        preset_manager: Optional[PresetManager] = None,
        emitter: Optional[ABTestEventEmitter] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store
        self._config_store = config_store
        self._transcript = transcript
        self._config = config or ABTestConfig()
        self._preset_manager = preset_manager
        self._emitter = resolve_emitter(emitter)
        self._clock = clock

        if controller is None:
            controller = SubstitutionController.from_config(
                self._config,
                config_store=config_store,
                transcript=transcript,
                generator=generator,
                emitter=emitter,
                clock=clock,
            )
        self._controller = controller

        self.snapshots: List[Snapshot] = []
        self.slot_a: Optional[Snapshot] = None
        self.slot_b: Optional[Snapshot] = None

    # ------------------------------------------------------------------
    # Snapshot list
    # ------------------------------------------------------------------
    def refresh(self) -> List[Snapshot]:
        try:
            self.snapshots = list(self._store.get_all())
        except Exception as exc:
            logger.error("Failed to load snapshots: %s", exc)
            self.snapshots = []
        return self.snapshots

    def capture_current(self) -> Optional[Snapshot]:
        try:
            return capture(
                self._config_store,
                clock=self._clock,
                default_preset_label=self._config.DEFAULT_PRESET_LABEL,
            )
        except Exception as exc:
            logger.error("Failed to capture current configuration: %s", exc)
            return None

    def save_current(self, name: Optional[str] = None) -> Optional[Snapshot]:
        """
        Capture the live configuration and store it.

        Returns the stored snapshot (with its id), or None when the
        configuration is unavailable.
        """
        snapshot = self.capture_current()
        if snapshot is None:
            return None

        if not name:
            name = f"Snapshot {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"

        snapshot_id = self._store.add(snapshot.renamed(name))
        self.refresh()
        logger.info("Saved snapshot %d '%s'", snapshot_id, name)
        return self._find(snapshot_id)

    def delete(self, snapshot_id: int) -> None:
        self._store.delete(snapshot_id)
        self.refresh()

        if self.slot_a is not None and self.slot_a.id == snapshot_id:
            self.slot_a = None
        if self.slot_b is not None and self.slot_b.id == snapshot_id:
            self.slot_b = None

    # ------------------------------------------------------------------
    # Presets
    # ------------------------------------------------------------------
    def available_presets(self) -> List[str]:
        if self._preset_manager is None:
            return []
        try:
            return list(self._preset_manager.list_presets())
        except Exception as exc:
            logger.error("Failed to get presets: %s", exc)
            return []

    def current_preset(self) -> str:
        if self._preset_manager is not None:
            try:
                selected = self._preset_manager.selected_preset()
            except Exception as exc:
                logger.error("Failed to get current preset: %s", exc)
            else:
                if selected:
                    return selected

        live = (
            self._config_store.get_current()
            if self._config_store is not None
            else None
        )
        if live is not None and live.preset_label:
            return live.preset_label
        return self._config.DEFAULT_PRESET_LABEL

    async def switch_preset(
        self,
        preset_name: str,
        *,
        save: bool = False,
        snapshot_name: Optional[str] = None,
    ) -> Optional[Snapshot]:
        """
        Switch the host preset, optionally saving the resulting state.

        Returns the saved snapshot when `save` is set, otherwise a
        transient capture of the switched state. None if the switch
        failed.
        """
        if self._preset_manager is None:
            logger.warning("Preset switch skipped: preset manager unavailable")
            return None

        try:
            switched = await self._preset_manager.select_preset(preset_name)
        except Exception as exc:
            logger.error("Failed to switch preset '%s': %s", preset_name, exc)
            return None

        if not switched:
            logger.warning("Preset '%s' not found", preset_name)
            return None

        if save:
            return self.save_current(snapshot_name)
        return self.capture_current()

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------
    def select(self, snapshot_id: int) -> bool:
        snapshot = self._find(snapshot_id)
        if snapshot is None:
            return False

        if self.slot_a is None or self.slot_b is not None:
            self.slot_a = snapshot
            self.slot_b = None
        else:
            self.slot_b = snapshot
        return True

    def use_current(self) -> Optional[Snapshot]:
        current = self.capture_current()
        if current is not None:
            self.slot_b = current.renamed(self._config.CURRENT_SNAPSHOT_NAME)
        return self.slot_b

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------
    def differences(self) -> List[ChangeRecord]:
        if self.slot_a is None or self.slot_b is None:
            return []
        return diff_snapshots(self.slot_a, self.slot_b)

    def compare(self, change: ContentChange) -> LineDiff:
        return compare_change(change, self._config.DIFF_STRATEGY)

    # ------------------------------------------------------------------
    # A/B run
    # ------------------------------------------------------------------
    async def run(
        self,
        test_input: str = "",
        sink_a: Optional[OutputSink] = None,
        sink_b: Optional[OutputSink] = None,
        run_id: Optional[str] = None,
    ) -> ABTestRun:
        """
        Generate once with slot A and once with slot B, sequentially.

        Slot B defaults to a capture of the live configuration.
        """
        if self.slot_a is None:
            return ABTestRun(
                executed=False,
                skipped_reason="Select a snapshot for slot A",
            )

        state_b = self.slot_b or self.capture_current()
        if state_b is None:
            return ABTestRun(
                executed=False,
                skipped_reason="Select a snapshot or use the current config for slot B",
            )

        if len(self._transcript.messages) == 0:
            return ABTestRun(
                executed=False,
                skipped_reason="No chat history available",
            )

        run_id = run_id or str(uuid4())
        test_input = test_input.strip()

        await self._emit(
            run_id,
            ABTestEventType.AB_TEST_STARTED,
            {
                "snapshot_a": self.slot_a.name,
                "snapshot_b": state_b.name,
            },
        )

        await self._emit(
            run_id,
            ABTestEventType.COMPARISON_COMPUTED,
            {"differences_count": len(diff_snapshots(self.slot_a, state_b))},
        )

        output_a = await self._controller.run_with_substituted_state(
            self.slot_a, test_input, sink_a, run_id=run_id
        )
        output_b = await self._controller.run_with_substituted_state(
            state_b, test_input, sink_b, run_id=run_id
        )

        await self._emit(
            run_id,
            ABTestEventType.AB_TEST_COMPLETED,
            {
                "slot_a_failed": output_a.startswith(ERROR_PREFIX),
                "slot_b_failed": output_b.startswith(ERROR_PREFIX),
            },
        )

        return ABTestRun(
            executed=True,
            snapshot_a_name=self.slot_a.name,
            snapshot_b_name=state_b.name,
            output_a=output_a,
            output_b=output_b,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _find(self, snapshot_id: int) -> Optional[Snapshot]:
        for snapshot in self.snapshots:
            if snapshot.id == snapshot_id:
                return snapshot
        return None

    async def _emit(
        self,
        run_id: str,
        event_type: ABTestEventType,
        details: Optional[dict],
    ) -> None:
        await emit_safely(
            self._emitter,
            ABTestEvent(run_id=run_id, event_type=event_type, details=details),
        )
