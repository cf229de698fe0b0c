"""
State substitution controller.

Temporarily applies a snapshot to the live session, runs one quiet
generation against it, and restores the prior configuration and
transcript.

IMPORTANT:
- Restoration runs on every exit path: success, recovered failure,
  timeout and cancellation.
- Generation failures are returned as an error string, never raised.
- Substitutions are serialized; the controller mutates one shared live
  configuration and one shared transcript.
"""

from __future__ import annotations

import copy
import logging
from typing import Callable, List, Optional

import anyio

from abtest.app.config import ABTestConfig
from abtest.app.events import (
    ABTestEvent,
    ABTestEventEmitter,
    ABTestEventType,
    emit_safely,
    resolve_emitter,
)
from abtest.app.schemas.snapshot import Snapshot
from abtest.app.substitution.collaborators import (
    ConfigurationStore,
    GenerationService,
    PartialTextCallback,
    Transcript,
    TranscriptMessage,
)
from abtest.app.substitution.snapshot_model import (
    Clock,
    capture,
    epoch_millis,
    materialize,
)

logger = logging.getLogger(__name__)

OutputSink = Callable[[str], None]

GENERATION_MODE = "quiet"

ERROR_PREFIX = "Error: "


class GenerationUnavailableError(RuntimeError):
    pass


class SubstitutionController:
    """
    Apply, generate, restore.

    One controller instance guards one live session. Concurrent calls on
    the same instance wait for the running substitution to finish.
    """

    def __init__(
        self,
        *,
        config_store: Optional[ConfigurationStore],
        transcript: Transcript,
        generator: Optional[GenerationService],
        timeout_seconds: Optional[float] = None,
        emitter: Optional[ABTestEventEmitter] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._config_store = config_store
        self._transcript = transcript
        self._generator = generator
        self._timeout_seconds = timeout_seconds
        self._emitter = resolve_emitter(emitter)
        self._clock = clock
        self._lock = anyio.Lock()

    @classmethod
    def from_config(
        cls,
        config: ABTestConfig,
        *,
        config_store: Optional[ConfigurationStore],
        transcript: Transcript,
        generator: Optional[GenerationService],
        emitter: Optional[ABTestEventEmitter] = None,
        clock: Optional[Clock] = None,
    ) -> "SubstitutionController":
        """
        Build a controller bounded by the configured generation timeout.
        """
        return cls(
            config_store=config_store,
            transcript=transcript,
            generator=generator,
            timeout_seconds=config.GENERATION_TIMEOUT_SECONDS,
            emitter=emitter,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def run_with_substituted_state(
        self,
        snapshot: Snapshot,
        test_input: Optional[str] = None,
        sink: Optional[OutputSink] = None,
        run_id: Optional[str] = None,
    ) -> str:
        """
        Generate one response with `snapshot` applied.

        Returns the generated text, or "Error: <message>" when any step
        between applying the snapshot and generating fails.
        """
        async with self._lock:
            return await self._run_locked(snapshot, test_input, sink, run_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _run_locked(
        self,
        snapshot: Snapshot,
        test_input: Optional[str],
        sink: Optional[OutputSink],
        run_id: Optional[str],
    ) -> str:
        # --------------------------------------------------------------
        # Rollback baseline
        # --------------------------------------------------------------
        try:
            baseline = capture(self._config_store, clock=self._clock)
        except Exception:
            logger.exception(
                "Could not capture rollback baseline before substituting '%s'",
                snapshot.name,
            )
            baseline = None

        if baseline is None:
            logger.warning(
                "Rollback baseline unavailable; configuration will not be "
                "restored after substituting '%s'",
                snapshot.name,
            )

        original_messages: List[TranscriptMessage] = copy.deepcopy(
            list(self._transcript.messages)
        )

        await self._emit(
            run_id,
            ABTestEventType.SUBSTITUTION_STARTED,
            {
                "snapshot_name": snapshot.name,
                "baseline_captured": baseline is not None,
            },
        )

        try:
            # ----------------------------------------------------------
            # Apply + optional test input
            # ----------------------------------------------------------
            applied = materialize(self._config_store, snapshot)
            await self._emit(
                run_id,
                ABTestEventType.SNAPSHOT_APPLIED,
                {"snapshot_name": snapshot.name, "applied": applied},
            )

            message = (test_input or "").strip()
            if message:
                self._transcript.messages.append(
                    TranscriptMessage(
                        speaker=self._transcript.user_name,
                        is_user=True,
                        text=message,
                        timestamp=epoch_millis(self._clock),
                    )
                )

            # ----------------------------------------------------------
            # Generate (the only suspension point)
            # ----------------------------------------------------------
            output = await self._generate(sink, run_id)

            await self._emit(
                run_id,
                ABTestEventType.GENERATION_COMPLETED,
                {"output_chars": len(output)},
            )

        except Exception as exc:
            logger.exception(
                "Generation with snapshot '%s' failed", snapshot.name
            )
            output = f"{ERROR_PREFIX}{exc}"

            await self._emit(
                run_id,
                ABTestEventType.GENERATION_FAILED,
                {
                    "error_type": type(exc).__name__,
                    "raw_error": str(exc),
                },
            )

        finally:
            self._restore(original_messages, baseline)

        await self._emit(
            run_id,
            ABTestEventType.STATE_RESTORED,
            {"configuration_restored": baseline is not None},
        )

        return output

    async def _generate(
        self,
        sink: Optional[OutputSink],
        run_id: Optional[str],
    ) -> str:
        if self._generator is None:
            raise GenerationUnavailableError("generation service unavailable")

        partial_text = ""

        def on_partial_text(text: str) -> None:
            nonlocal partial_text
            partial_text = text
            if sink is not None:
                sink(text)

        await self._emit(run_id, ABTestEventType.GENERATION_STARTED, None)

        if self._timeout_seconds is None:
            result = await self._call_generator(on_partial_text)
        else:
            try:
                with anyio.fail_after(self._timeout_seconds):
                    result = await self._call_generator(on_partial_text)
            except TimeoutError:
                raise TimeoutError(
                    f"generation timed out after {self._timeout_seconds:g}s"
                ) from None

        # A final result supersedes any partial text
        full_text = result or partial_text
        if sink is not None:
            sink(full_text)

        return full_text

    async def _call_generator(
        self,
        on_partial_text: PartialTextCallback,
    ) -> Optional[str]:
        return await self._generator.generate(
            GENERATION_MODE,
            skip_context_injection=False,
            force_responder_name=True,
            on_partial_text=on_partial_text,
        )

    def _restore(
        self,
        original_messages: List[TranscriptMessage],
        baseline: Optional[Snapshot],
    ) -> None:
        """
        Put the transcript and configuration back exactly as captured.

        Synchronous so that it cannot be interrupted by cancellation.
        """
        # Truncate and refill in place; the host holds this sequence
        del self._transcript.messages[:]
        self._transcript.messages.extend(original_messages)

        if baseline is not None:
            materialize(self._config_store, baseline)

        logger.debug(
            "Restored transcript (%d messages)%s",
            len(original_messages),
            "" if baseline is not None else " without configuration rollback",
        )

    async def _emit(
        self,
        run_id: Optional[str],
        event_type: ABTestEventType,
        details: Optional[dict],
    ) -> None:
        if run_id is None:
            return
        await emit_safely(
            self._emitter,
            ABTestEvent(
                run_id=run_id,
                event_type=event_type,
                details=details,
            ),
        )
