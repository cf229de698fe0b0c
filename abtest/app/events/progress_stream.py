from __future__ import annotations

import math
from typing import AsyncIterator, Optional

import anyio

from abtest.app.events.models import ABTestEvent, ABTestEventType
from abtest.app.events.emitter import ABTestEventEmitter


class RunProgressStream(ABTestEventEmitter):
    """
    Progress feed for one A/B run, consumed by a single reader.

    The stream follows `run_id`, or the run of the first event it receives
    when none is given. Events of other runs are dropped. It ends once the
    run reports AB_TEST_COMPLETED, whether or not a slot failed.
    """

    def __init__(self, run_id: Optional[str] = None) -> None:
        self.run_id = run_id
        self.failed_slots: list[str] = []
        self._send, self._receive = anyio.create_memory_object_stream[
            ABTestEvent
        ](math.inf)
        self._closed = False

    async def emit(self, event: ABTestEvent) -> None:
        if self._closed:
            return
        if self.run_id is None:
            self.run_id = event.run_id
        elif event.run_id != self.run_id:
            return

        self._send.send_nowait(event)

        if event.event_type == ABTestEventType.AB_TEST_COMPLETED:
            details = event.details or {}
            self.failed_slots = [
                slot for slot in ("a", "b") if details.get(f"slot_{slot}_failed")
            ]
            await self.close()

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            await self._send.aclose()

    async def stream(self) -> AsyncIterator[ABTestEvent]:
        async with self._receive:
            async for event in self._receive:
                yield event
